from __future__ import annotations

import enum
import threading
import time
from typing import Callable, Optional

import requests
from requests import RequestException

from offer.channel import LivePatch, PatchChannel
from offer.models import decode_header_patch, decode_odds_patch
from offer.state import LiveStateStore, decode_all
from .config import LIVE_SUBSCRIBE_URL, logger
from .errors import Aborted, ParseError, TransportError
from .framing import FrameBuffer, decode_frame
from .http import open_stream


class LoopState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    ENDED = "ended"
    FAILED = "failed"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class SubscriptionLoop:
    """Long-lived incremental feed: apply each patch to the store, publish it,
    reconnect on end or failure until stopped.

    Runs on one daemon thread. `stop()` may be called from any thread; it
    closes the in-flight response so a blocked read returns, and no backoff
    that wakes up afterwards will reconnect.
    """

    def __init__(
        self,
        store: LiveStateStore,
        *,
        channel: Optional[PatchChannel] = None,
        session: Optional[requests.Session] = None,
        url: str = LIVE_SUBSCRIBE_URL,
        delimiter: str = "\n",
        connect_timeout: float = 10.0,
        end_delay: float = 1.0,
        error_delay: float = 5.0,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.channel = channel
        self.session = session
        self.url = url
        self.delimiter = delimiter
        self.connect_timeout = connect_timeout
        self.end_delay = end_delay
        self.error_delay = error_delay
        self._clock = clock

        self._stop_evt = threading.Event()
        self._lock = threading.Lock()
        self._response: Optional[requests.Response] = None
        self._thread: Optional[threading.Thread] = None
        self._state = LoopState.IDLE
        self._state_changed = threading.Condition()

        self.connect_attempts = 0
        self.patches_applied = 0
        self.frames_skipped = 0
        self.last_error: Optional[str] = None

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        return self._state

    def _set_state(self, state: LoopState) -> None:
        with self._state_changed:
            if self._state is LoopState.STOPPED:
                return
            if state is not self._state:
                logger.debug("subscription %s -> %s", self._state.value, state.value)
            self._state = state
            self._state_changed.notify_all()

    def wait_for(self, state: LoopState, timeout: Optional[float] = None) -> bool:
        """Block until the loop reaches `state` (mostly for tests and shutdown)."""
        with self._state_changed:
            return self._state_changed.wait_for(lambda: self._state is state, timeout)

    @property
    def is_streaming(self) -> bool:
        return self._state in (LoopState.CONNECTING, LoopState.STREAMING)

    @property
    def is_active(self) -> bool:
        t = self._thread
        return t is not None and t.is_alive() and not self._stop_evt.is_set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_evt.is_set()

    # -- control -------------------------------------------------------------

    def start(self) -> None:
        if self.store.watermark is None:
            raise RuntimeError("no watermark available, load a live snapshot first")
        if self._stop_evt.is_set():
            raise RuntimeError("subscription loop was stopped; create a new one")
        if self._thread is not None:
            logger.info("live subscription already running")
            return
        logger.info("starting live subscription from watermark %s", self.store.watermark)
        self._thread = threading.Thread(target=self._run, name="live-subscription", daemon=True)
        self._thread.start()

    def stop(self, join_timeout: Optional[float] = None) -> None:
        self._stop_evt.set()
        with self._lock:
            r = self._response
            self._response = None
        if r is not None:
            try:
                r.close()
            except Exception:
                logger.debug("error closing live response", exc_info=True)
        with self._state_changed:
            self._state = LoopState.STOPPED
            self._state_changed.notify_all()
        t = self._thread
        if join_timeout is not None and t is not None and t is not threading.current_thread():
            t.join(join_timeout)
        logger.info("live subscription stopped")

    # -- loop ----------------------------------------------------------------

    def _run(self) -> None:
        last_init_id: Optional[int] = self.store.watermark
        while not self._stop_evt.is_set():
            try:
                self._stream_once(last_init_id)
                outcome, delay = LoopState.ENDED, self.end_delay
                logger.info("live subscription stream ended, reconnecting in %.1fs", delay)
            except Aborted:
                break
            except TransportError as e:
                self.last_error = str(e)
                outcome, delay = LoopState.FAILED, self.error_delay
                logger.warning("live subscription failed: %s; retrying in %.1fs", e, delay)
            except Exception as e:
                self.last_error = str(e)
                outcome, delay = LoopState.FAILED, self.error_delay
                logger.exception("unexpected error in live subscription; retrying in %.1fs", delay)
            self._set_state(outcome)
            last_init_id = int(self._clock() * 1000)
            self._set_state(LoopState.BACKOFF)
            if self._stop_evt.wait(delay):
                break
        self._set_state(LoopState.STOPPED)

    def _stream_once(self, last_init_id: Optional[int]) -> None:
        self._set_state(LoopState.CONNECTING)
        self.connect_attempts += 1
        params = {"lastInitId": last_init_id if last_init_id is not None else int(self._clock() * 1000)}
        # connect timeout only: the live feed idles between updates
        r = open_stream(self.url, params, timeout=(self.connect_timeout, None), session=self.session)
        with self._lock:
            if self._stop_evt.is_set():
                r.close()
                raise Aborted("stopped while connecting")
            self._response = r
        self._set_state(LoopState.STREAMING)
        frames = FrameBuffer(self.delimiter)
        try:
            chunks = r.iter_content(chunk_size=None, decode_unicode=True)
            while True:
                # only the read is guarded; frame handling errors are not transport faults
                try:
                    chunk = next(chunks)
                except StopIteration:
                    break
                except (RequestException, AttributeError, ValueError, OSError) as e:
                    # closing the response from stop() surfaces as one of these
                    if self._stop_evt.is_set():
                        raise Aborted("stopped") from e
                    raise TransportError(f"live feed read failed: {e}") from e
                if self._stop_evt.is_set():
                    raise Aborted("stopped")
                for raw in frames.feed(chunk):
                    self._handle_frame(raw)
            tail = frames.flush()
            if tail is not None:
                self._handle_frame(tail)
        finally:
            with self._lock:
                if self._response is r:
                    self._response = None
            r.close()
        if self._stop_evt.is_set():
            raise Aborted("stopped")

    def _handle_frame(self, raw: str) -> None:
        try:
            frame = decode_frame(raw)
        except ParseError as e:
            self.frames_skipped += 1
            logger.debug("skipping live frame: %s", e)
            return
        if frame is None or frame.payload is None:
            return
        payload = frame.payload
        headers = decode_all(payload.get("liveHeaders"), decode_header_patch)
        odds = decode_all(payload.get("liveBets"), decode_odds_patch)
        if not headers and not odds:
            if "liveHeaders" not in payload and "liveBets" not in payload:
                logger.debug("live payload without expected fields: %s", sorted(payload.keys())[:10])
            return
        snap = self.store.apply_patch(headers=headers, odds=odds)
        self.patches_applied += 1
        if self.channel is not None:
            self.channel.publish(LivePatch(
                headers=tuple(snap.headers[hid] for hid, _ in headers),
                odds=tuple(snap.odds[bid] for bid, _ in odds),
            ))
        logger.debug("live update: %d headers, %d bets", len(headers), len(odds))
