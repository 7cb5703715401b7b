from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .models import MatchHeader, SportEntry, logger

SUPPORTED_SPORTS = ("football", "tennis", "basketball")

# provider (Serbian) sport name -> internal sport key
SPORT_NAME_MAP = {
    "FUDBAL": "football",
    "KOŠARKA": "basketball",
    "KOSARKA": "basketball",
    "TENIS": "tennis",
}

# used when the catalog has no entry for the sport
FALLBACK_CODES = {
    "football": "S",
    "tennis": "T",
    "basketball": "V",
}


@dataclass(frozen=True)
class SportMapping:
    name: str
    code: str
    key: str


class SportMappingTable:
    """Resolve internal sport keys (football/tennis/basketball) to provider codes."""

    def __init__(self, mappings: Dict[str, SportMapping] | None = None):
        self._by_key: Dict[str, SportMapping] = dict(mappings or {})

    @classmethod
    def from_catalog(cls, sports: Iterable[SportEntry]) -> "SportMappingTable":
        out: Dict[str, SportMapping] = {}
        for s in sports:
            key = SPORT_NAME_MAP.get((s.name or "").strip().upper())
            if key and key not in out:
                out[key] = SportMapping(name=s.name, code=s.code, key=key)
                logger.debug("mapped %s (%s) -> %s", s.name, s.code, key)
        logger.info("initialized %d sport mappings", len(out))
        return cls(out)

    def __len__(self) -> int:
        return len(self._by_key)

    def get(self, sport: str) -> Optional[SportMapping]:
        return self._by_key.get((sport or "").strip().lower())

    def code_for(self, sport: str) -> Optional[str]:
        m = self.get(sport)
        return m.code if m else None

    def resolve(self, sport: str) -> str:
        """Code for `sport`, falling back to the static table. Raises KeyError for unknown sports."""
        code = self.code_for(sport)
        if code:
            return code
        key = (sport or "").strip().lower()
        if key not in FALLBACK_CODES:
            raise KeyError(f"unsupported sport: {sport!r}")
        logger.warning("no sport code in catalog for %s, using fallback %s", key, FALLBACK_CODES[key])
        return FALLBACK_CODES[key]

    def filter_headers(self, headers: Iterable[MatchHeader], sport: str) -> List[MatchHeader]:
        code = self.code_for(sport)
        if not code:
            logger.warning("no sport code found for %s", sport)
            return []
        return [h for h in headers if h.sport_code == code]

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        return {k: {"name": m.name, "code": m.code} for k, m in self._by_key.items()}
