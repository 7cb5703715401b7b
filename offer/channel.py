from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Optional, Tuple

from .models import MatchHeader, OddsQuote, logger


@dataclass(frozen=True)
class LivePatch:
    """One incremental update as applied to the store."""
    headers: Tuple[MatchHeader, ...] = ()
    odds: Tuple[OddsQuote, ...] = ()
    received_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headers": [h.to_dict() for h in self.headers],
            "odds": [q.to_dict() for q in self.odds],
            "timestamp": int(self.received_at * 1000),
        }


class PatchChannel:
    """Bounded single-consumer queue between the subscription thread and observers.

    Producers never block: when full, the oldest queued patch is dropped and
    counted in `dropped`.
    """

    def __init__(self, maxsize: int = 256):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self._items: Deque[LivePatch] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self.dropped = 0

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, patch: LivePatch) -> bool:
        """Queue a patch. Returns False if the channel is closed."""
        with self._cond:
            if self._closed:
                return False
            if len(self._items) >= self.maxsize:
                self._items.popleft()
                self.dropped += 1
                if self.dropped == 1 or self.dropped % 100 == 0:
                    logger.warning("patch channel full, dropped=%d", self.dropped)
            self._items.append(patch)
            self._cond.notify()
            return True

    def get(self, timeout: Optional[float] = None) -> Optional[LivePatch]:
        """Next patch, or None on timeout or once closed and drained."""
        with self._cond:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._items:
                if self._closed:
                    return None
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return None
                self._cond.wait(remaining)
            return self._items.popleft()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def reopen(self) -> None:
        """Accept patches again after close(). Anything still queued is kept."""
        with self._cond:
            self._closed = False
