from __future__ import annotations

import enum
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from offer.channel import PatchChannel
from offer.enrich import (
    CatalogView,
    EnrichedOdds,
    EnrichedScheduledMatch,
    build_catalog_view,
    enrich_match_odds,
    enrich_scheduled_matches,
)
from offer.models import Catalog, LiveSport, MatchHeader, ScheduledMatch, SportEntry
from offer.sport_map import SUPPORTED_SPORTS, SportMappingTable
from offer.state import LiveStateStore, StoreSnapshot
from soccerbet.catalogue import get_scheduled_matches, load_catalog
from soccerbet.errors import Aborted
from soccerbet.snapshot import fetch_snapshot
from soccerbet.subscribe import SubscriptionLoop

from .config import Settings

logger = logging.getLogger("server")

INTERVALS = ("1min", "10min", "30min", "1hour")


class Mode(str, enum.Enum):
    LIVE = "live"
    SCHEDULED = "scheduled"


MODE_ALIASES = {
    "live": Mode.LIVE,
    "scheduled": Mode.SCHEDULED,
    "pre-game": Mode.SCHEDULED,
    "pregame": Mode.SCHEDULED,
}


class Phase(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


def parse_mode(value: Any) -> Mode:
    m = MODE_ALIASES.get(str(value or "").strip().lower())
    if m is None:
        raise ValueError(f"unsupported mode: {value!r}")
    return m


def parse_sport(value: Any) -> str:
    s = str(value or "").strip().lower()
    if s not in SUPPORTED_SPORTS:
        raise ValueError(f"unsupported sport: {value!r}")
    return s


def parse_interval(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    s = str(value).strip().lower()
    if s not in INTERVALS:
        raise ValueError(f"unsupported interval: {value!r}")
    return s


@dataclass
class OfferContext:
    """Everything one started session owns. Replaced as a whole on initialize/reset."""
    mode: Mode
    sport: str
    sport_code: Optional[str]
    catalog: Catalog
    sports_table: SportMappingTable
    view: CatalogView
    interval: Optional[str] = None
    store: Optional[LiveStateStore] = None
    loop: Optional[SubscriptionLoop] = None
    live_sports: List[LiveSport] = field(default_factory=list)
    scheduled: Tuple[ScheduledMatch, ...] = ()
    initialized_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def summary(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "mode": self.mode.value,
            "sport": self.sport,
            "sport_code": self.sport_code,
            "interval": self.interval,
            "initialized_at": self.initialized_at.isoformat(),
            "sports_count": len(self.catalog.sports),
            "betting_options_count": len(self.catalog.bet_types),
        }
        if self.store is not None:
            snap = self.store.snapshot()
            out["headers_count"] = len(snap.headers)
            out["odds_count"] = len(snap.odds)
            out["watermark"] = snap.watermark
        if self.mode is Mode.SCHEDULED:
            out["scheduled_count"] = len(self.scheduled)
        return out


class ModeOrchestrator:
    """Sequences catalog load -> live snapshot + subscription, or catalog load ->
    scheduled fetch, and owns the reset-to-empty lifecycle.

    A new context is built completely before it replaces the current one, so a
    failed initialize leaves the running session untouched.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        session: Optional[requests.Session] = None,
        channel: Optional[PatchChannel] = None,
        catalog_loader: Callable[..., Catalog] = load_catalog,
        snapshot_fetcher: Callable[..., Any] = fetch_snapshot,
        scheduled_fetcher: Callable[..., List[ScheduledMatch]] = get_scheduled_matches,
        loop_factory: Optional[Callable[[LiveStateStore], SubscriptionLoop]] = None,
    ):
        self.settings = settings or Settings()
        self.session = session
        self.channel = channel if channel is not None else PatchChannel(self.settings.patch_queue_size)
        self._load_catalog = catalog_loader
        self._fetch_snapshot = snapshot_fetcher
        self._fetch_scheduled = scheduled_fetcher
        self._loop_factory = loop_factory or self._default_loop
        self._lock = threading.Lock()
        self._ctx: Optional[OfferContext] = None
        self._phase = Phase.UNINITIALIZED
        self._cancel: Optional[threading.Event] = None

    def _default_loop(self, store: LiveStateStore) -> SubscriptionLoop:
        s = self.settings
        return SubscriptionLoop(
            store,
            channel=self.channel,
            session=self.session,
            delimiter=s.live_frame_delimiter,
            connect_timeout=s.connect_timeout,
            end_delay=s.reconnect_end_delay,
            error_delay=s.reconnect_error_delay,
        )

    # -- lifecycle -----------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    def initialize(self, mode: Any, sport: Any, interval: Any = None) -> OfferContext:
        m = parse_mode(mode)
        sp = parse_sport(sport)
        iv = parse_interval(interval)
        with self._lock:
            if self._phase is Phase.INITIALIZING:
                raise RuntimeError("initialization already in progress")
            self._phase = Phase.INITIALIZING
            cancel = self._cancel = threading.Event()
        logger.info("initializing %s mode, sport=%s%s", m.value, sp, f", interval={iv}" if iv else "")
        try:
            ctx = self._build(m, sp, iv, cancel)
            with self._lock:
                if cancel.is_set():
                    raise Aborted("reset during initialization")
                old, self._ctx = self._ctx, ctx
                self._phase = Phase.READY
                self._cancel = None
        except Exception:
            with self._lock:
                self._phase = Phase.READY if self._ctx is not None else Phase.UNINITIALIZED
                self._cancel = None
            logger.exception("failed to initialize %s mode for %s", m.value, sp)
            raise

        if old is not None and old.loop is not None:
            old.loop.stop()
        with self._lock:
            # a reset() after the commit owns the loop now
            if self._ctx is not ctx:
                logger.info("session reset before %s subscription started", m.value)
                return ctx
            if ctx.loop is not None:
                ctx.loop.start()
        logger.info("initialization completed for %s mode", m.value)
        return ctx

    def _build(self, mode: Mode, sport: str, interval: Optional[str], cancel: threading.Event) -> OfferContext:
        s = self.settings
        catalog = self._load_catalog(timeout=s.catalog_timeout, session=self.session)
        table = SportMappingTable.from_catalog(catalog.sports)

        if mode is Mode.LIVE:
            code = table.code_for(sport)
            view = build_catalog_view(catalog, code)
            snap = self._fetch_snapshot(
                sport,
                session=self.session,
                delimiter=s.bulk_frame_delimiter,
                timeout=s.snapshot_timeout,
                cancel=cancel,
            )
            headers = table.filter_headers(snap.headers, sport)
            logger.info("filtered live headers to %d matches for %s", len(headers), sport)
            store = LiveStateStore()
            store.load(headers, snap.odds, snap.watermark)
            return OfferContext(
                mode=mode, sport=sport, sport_code=code, catalog=catalog, sports_table=table,
                view=view, interval=interval, store=store, loop=self._loop_factory(store),
                live_sports=list(snap.sports),
            )

        code = table.resolve(sport)
        view = build_catalog_view(catalog, code)
        matches = self._fetch_scheduled(code, timeout=s.scheduled_timeout, session=self.session)
        return OfferContext(
            mode=mode, sport=sport, sport_code=code, catalog=catalog, sports_table=table,
            view=view, interval=interval, scheduled=tuple(matches),
        )

    def reset(self) -> None:
        with self._lock:
            ctx, self._ctx = self._ctx, None
            if self._cancel is not None:
                self._cancel.set()
            if self._phase is Phase.READY:
                self._phase = Phase.UNINITIALIZED
        if ctx is None:
            return
        if ctx.loop is not None:
            ctx.loop.stop()
        if ctx.store is not None:
            ctx.store.clear()
        logger.info("offer state reset")

    # -- queries -------------------------------------------------------------

    def get_session(self) -> Optional[OfferContext]:
        return self._ctx

    def _live(self) -> Optional[OfferContext]:
        ctx = self._ctx
        if ctx is None or ctx.mode is not Mode.LIVE or ctx.store is None:
            return None
        return ctx

    def get_live_data(self) -> Optional[StoreSnapshot]:
        ctx = self._live()
        return ctx.store.snapshot() if ctx else None

    def is_streaming(self) -> bool:
        ctx = self._live()
        return bool(ctx and ctx.loop and ctx.loop.is_streaming)

    def get_enriched_match_odds(self, match_id: int) -> List[EnrichedOdds]:
        ctx = self._live()
        if ctx is None:
            return []
        return enrich_match_odds(match_id, ctx.view, ctx.store.snapshot())

    def get_enriched_scheduled_matches(self) -> List[EnrichedScheduledMatch]:
        ctx = self._ctx
        if ctx is None or ctx.mode is not Mode.SCHEDULED or not ctx.sport_code:
            return []
        return enrich_scheduled_matches(ctx.scheduled, ctx.view, ctx.sport_code)

    def get_filtered_headers_by_sport(self) -> List[MatchHeader]:
        ctx = self._live()
        if ctx is None:
            return []
        return ctx.sports_table.filter_headers(ctx.store.snapshot().headers.values(), ctx.sport)

    def get_filtered_sports(self) -> List[SportEntry]:
        ctx = self._ctx
        if ctx is None or not ctx.sport_code:
            return []
        return [s for s in ctx.catalog.sports if s.code == ctx.sport_code and s.active]

    def get_filtered_catalog(self) -> Optional[Dict[str, Any]]:
        ctx = self._ctx
        if ctx is None:
            return None
        bet_types = {k: v for k, v in ctx.catalog.bet_types.items() if v.sport == ctx.sport_code}
        out = ctx.view.to_dict()
        out["bet_types"] = {k: asdict(v) for k, v in bet_types.items()}
        out["total_bet_types"] = len(ctx.catalog.bet_types)
        return out
