from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

import requests
from requests import RequestException

from offer.models import LiveSport, MatchHeader, OddsQuote, decode_header_patch, decode_live_sport, decode_odds_patch
from offer.state import decode_all, merge_patches
from .config import LIVE_EVENTS_URL, logger
from .errors import Aborted, IncompleteSnapshot, ParseError, TransportError
from .framing import FrameBuffer, decode_frame
from .http import open_stream


@dataclass
class LiveSnapshot:
    """Initial aggregate produced by the bulk feed."""
    sport: str
    watermark: int
    sports: List[LiveSport] = field(default_factory=list)
    headers: List[MatchHeader] = field(default_factory=list)
    odds: List[OddsQuote] = field(default_factory=list)
    frames_skipped: int = 0
    initialized_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class _Accumulator:
    def __init__(self) -> None:
        self.sports: List[LiveSport] = []
        self.headers: Dict[int, MatchHeader] = {}
        self.odds: Dict[int, OddsQuote] = {}
        self.skipped = 0

    def add(self, payload: dict) -> None:
        found = False
        if "liveSports" in payload:
            found = True
            raw = payload.get("liveSports")
            self.sports.extend(s for s in (decode_live_sport(r) for r in (raw if isinstance(raw, list) else [])) if s)
        if "liveHeaders" in payload:
            found = True
            merge_patches(self.headers, decode_all(payload.get("liveHeaders"), decode_header_patch), MatchHeader)
        if "liveBets" in payload:
            found = True
            merge_patches(self.odds, decode_all(payload.get("liveBets"), decode_odds_patch), OddsQuote)
        if not found:
            logger.debug("bulk payload without expected fields: %s", sorted(payload.keys())[:10])


def fetch_snapshot(
    sport: str,
    *,
    session: Optional[requests.Session] = None,
    url: str = LIVE_EVENTS_URL,
    delimiter: str = "\n\n",
    timeout: float = 30.0,
    cancel: Optional[threading.Event] = None,
) -> LiveSnapshot:
    """Read the bulk live feed up to its END sentinel and return the aggregate.

    Raises IncompleteSnapshot if the stream ends first, TransportError on
    connect/read failure or when `timeout` elapses, Aborted if `cancel` is set.
    """
    logger.info("fetching live snapshot for %s from %s", sport, url)
    deadline = time.monotonic() + timeout
    if cancel is not None and cancel.is_set():
        raise Aborted("snapshot fetch cancelled before connect")
    r = open_stream(url, timeout=(min(5.0, timeout), timeout), session=session)
    acc = _Accumulator()
    frames = FrameBuffer(delimiter)
    watermark: Optional[int] = None
    try:
        try:
            for chunk in r.iter_content(chunk_size=None, decode_unicode=True):
                if cancel is not None and cancel.is_set():
                    raise Aborted("snapshot fetch cancelled")
                if time.monotonic() > deadline:
                    raise TransportError(f"snapshot not complete after {timeout:.0f}s")
                watermark = _consume(frames.feed(chunk), acc)
                if watermark is not None:
                    break
        except RequestException as e:
            if cancel is not None and cancel.is_set():
                raise Aborted("snapshot fetch cancelled") from e
            raise TransportError(f"bulk feed read failed: {e}") from e
        if watermark is None:
            tail = frames.flush()
            if tail is not None:
                watermark = _consume([tail], acc)
    finally:
        r.close()

    if watermark is None:
        raise IncompleteSnapshot("bulk feed ended without END sentinel")

    snap = LiveSnapshot(
        sport=sport,
        watermark=watermark,
        sports=acc.sports,
        headers=list(acc.headers.values()),
        odds=list(acc.odds.values()),
        frames_skipped=acc.skipped,
    )
    logger.info(
        "live snapshot complete: watermark=%d headers=%d bets=%d skipped=%d",
        watermark, len(snap.headers), len(snap.odds), acc.skipped,
    )
    return snap


def _consume(raw_frames: list[str], acc: _Accumulator) -> Optional[int]:
    """Feed frames into the accumulator; return the watermark once the sentinel shows up."""
    for raw in raw_frames:
        try:
            frame = decode_frame(raw)
        except ParseError as e:
            acc.skipped += 1
            logger.debug("skipping bulk frame: %s", e)
            continue
        if frame is None:
            continue
        if frame.is_sentinel:
            logger.info("received END sentinel %d", frame.watermark)
            return frame.watermark
        acc.add(frame.payload)
    return None
