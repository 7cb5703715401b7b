from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Set

from offer.channel import LivePatch
from offer.models import MatchHeader

ACTIVE_STATUSES = ("RUNNING", "HT", "FT")
IN_PLAY_STATUSES = ("RUNNING", "HT")


def active_matches(headers: Iterable[MatchHeader]) -> List[MatchHeader]:
    return [h for h in headers if h.live_status in ACTIVE_STATUSES]


def betting_allowed_matches(headers: Iterable[MatchHeader]) -> List[MatchHeader]:
    return [h for h in headers if h.betting_allowed]


def top_matches(headers: Iterable[MatchHeader]) -> List[MatchHeader]:
    return [h for h in headers if h.top_match]


def is_match_live(header: MatchHeader) -> bool:
    return header.live_status in IN_PLAY_STATUSES


def matches_by_league(headers: Iterable[MatchHeader], league_id: int) -> List[MatchHeader]:
    return [h for h in headers if h.league_id == league_id]


def normalize_filter_values(value: Any) -> Set[str]:
    """
    Accept str (comma-separated), list/tuple/set, or scalar and normalize to a set of stripped strings.
    """
    if value is None:
        return set()
    if isinstance(value, str):
        cand = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        cand = [str(it) for it in value]
    else:
        cand = [str(value)]
    return {c.strip() for c in cand if c.strip()}


def _to_ints(values: Set[str]) -> Set[int]:
    out: Set[int] = set()
    for v in values:
        try:
            out.add(int(v))
        except ValueError:
            continue
    return out


@dataclass(frozen=True)
class FilterSets:
    match_ids: Set[int]
    leagues: Set[str]

    @staticmethod
    def from_prefs(filters: Dict[str, Any]) -> "FilterSets":
        return FilterSets(
            match_ids=_to_ints(normalize_filter_values(filters.get("matches") or filters.get("match"))),
            leagues={v.lower() for v in normalize_filter_values(filters.get("league"))},
        )

    @property
    def empty(self) -> bool:
        return not self.match_ids and not self.leagues

    def header_ok(self, h: MatchHeader) -> bool:
        if self.match_ids and h.id not in self.match_ids:
            return False
        if self.leagues and (h.league or "").strip().lower() not in self.leagues:
            return False
        return True

    def apply(self, patch: LivePatch, headers_by_id: Dict[int, MatchHeader]) -> LivePatch:
        """Narrow a patch to what this connection asked for. Odds are kept when their
        match passes (looked up in the current store headers)."""
        if self.empty:
            return patch
        hdrs = tuple(h for h in patch.headers if self.header_ok(h))

        def odds_ok(match_id) -> bool:
            h = headers_by_id.get(match_id)
            if h is None:
                return bool(self.match_ids) and not self.leagues and match_id in self.match_ids
            return self.header_ok(h)

        odds = tuple(q for q in patch.odds if odds_ok(q.match_id))
        return LivePatch(headers=hdrs, odds=odds, received_at=patch.received_at)
