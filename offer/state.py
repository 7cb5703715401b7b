from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, TypeVar

from .models import MatchHeader, OddsQuote, decode_header_patch, decode_odds_patch, logger

R = TypeVar("R")

# A decoded patch: (id, fields present in the raw record)
Patch = Tuple[int, Dict[str, Any]]


def merge_patches(target: Dict[int, R], patches: Iterable[Patch], factory: Callable[..., R]) -> int:
    """Shallow-merge decoded patches into `target` (id -> record), in order.

    Existing ids get only the present fields overwritten; unknown ids are
    inserted as-is. Returns the number of records touched.
    """
    n = 0
    for rid, values in patches:
        cur = target.get(rid)
        if cur is None:
            target[rid] = factory(id=rid, **values)
        elif values:
            target[rid] = dataclasses.replace(cur, **values)
        n += 1
    return n


def decode_all(raw: Any, decoder: Callable[[Any], Optional[Patch]]) -> list[Patch]:
    if not isinstance(raw, list):
        return []
    return [p for p in (decoder(r) for r in raw) if p is not None]


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable point-in-time view of the live offer."""
    headers: Mapping[int, MatchHeader] = field(default_factory=lambda: MappingProxyType({}))
    odds: Mapping[int, OddsQuote] = field(default_factory=lambda: MappingProxyType({}))
    watermark: Optional[int] = None
    updated_at: Optional[datetime] = None

    def header(self, match_id: int) -> Optional[MatchHeader]:
        return self.headers.get(match_id)

    def odds_for_match(self, match_id: int) -> list[OddsQuote]:
        return [q for q in self.odds.values() if q.match_id == match_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": [h.to_dict() for h in self.headers.values()],
            "odds": [q.to_dict() for q in self.odds.values()],
            "watermark": self.watermark,
        }


class LiveStateStore:
    """Authoritative in-memory live offer.

    Writers are serialized by a lock and publish a fresh immutable
    StoreSnapshot; readers just grab the current reference, so a reader sees
    a patch either entirely or not at all.
    """

    def __init__(self) -> None:
        self._write_lock = threading.Lock()
        self._snap = StoreSnapshot()

    def snapshot(self) -> StoreSnapshot:
        return self._snap

    @property
    def watermark(self) -> Optional[int]:
        return self._snap.watermark

    def load(
        self,
        headers: Iterable[MatchHeader],
        odds: Iterable[OddsQuote],
        watermark: Optional[int],
    ) -> StoreSnapshot:
        """Replace the whole state (initial snapshot)."""
        with self._write_lock:
            self._snap = StoreSnapshot(
                headers=MappingProxyType({h.id: h for h in headers}),
                odds=MappingProxyType({q.id: q for q in odds}),
                watermark=watermark,
                updated_at=datetime.now(timezone.utc),
            )
            return self._snap

    def clear(self) -> None:
        with self._write_lock:
            self._snap = StoreSnapshot()

    def apply_patch(self, headers: Iterable[Patch] = (), odds: Iterable[Patch] = ()) -> StoreSnapshot:
        """Apply header and odds patches in one atomic swap."""
        headers = list(headers)
        odds = list(odds)
        with self._write_lock:
            cur = self._snap
            if not headers and not odds:
                return cur
            new_headers = dict(cur.headers)
            new_odds = dict(cur.odds)
            merge_patches(new_headers, headers, MatchHeader)
            merge_patches(new_odds, odds, OddsQuote)
            self._snap = StoreSnapshot(
                headers=MappingProxyType(new_headers),
                odds=MappingProxyType(new_odds),
                watermark=cur.watermark,
                updated_at=datetime.now(timezone.utc),
            )
            logger.debug("patch applied: headers=%d odds=%d", len(headers), len(odds))
            return self._snap

    def apply_header_patch(self, records: Iterable[Any]) -> StoreSnapshot:
        """Merge raw provider header dicts (malformed ones are skipped)."""
        return self.apply_patch(headers=decode_all(list(records), decode_header_patch))

    def apply_odds_patch(self, records: Iterable[Any]) -> StoreSnapshot:
        """Merge raw provider bet dicts (malformed ones are skipped)."""
        return self.apply_patch(odds=decode_all(list(records), decode_odds_patch))
