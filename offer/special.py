from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

NO_GROUP = "ungrouped"
NO_TOTAL = "no-total"
NO_HANDICAP = "no-handicap"

HANDICAP_KEYS = ("hcp", "handicap")


@dataclass(frozen=True)
class SpecialValues:
    total: Optional[str] = None
    handicap: Optional[str] = None


def parse_special_params(sv: Optional[str]) -> Dict[str, str]:
    """Split "total=2.5,hcp=-1" into {"total": "2.5", "hcp": "-1"}. Items without '=' are ignored."""
    out: Dict[str, str] = {}
    if not sv:
        return out
    for part in str(sv).split(","):
        key, sep, value = part.partition("=")
        key = key.strip()
        if not key or not sep:
            continue
        out[key] = value.strip()
    return out


def parse_special_value(sv: Optional[str]) -> SpecialValues:
    params = parse_special_params(sv)
    total = params.get("total") or None
    handicap = next((params[k] for k in HANDICAP_KEYS if params.get(k)), None)
    return SpecialValues(total=total, handicap=handicap)


def grouping_key(group_id: Optional[int], special: SpecialValues) -> str:
    """Deterministic key for collapsing scheduled picks into one multi-outcome line."""
    return "|".join((
        str(group_id) if group_id is not None else NO_GROUP,
        special.total or NO_TOTAL,
        special.handicap or NO_HANDICAP,
    ))
