from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Set

from fastapi import WebSocket

from offer.channel import LivePatch, PatchChannel
from offer.models import MatchHeader

from .config import Settings
from .filters import FilterSets, normalize_filter_values

logger = logging.getLogger("server")

FILTER_KEYS = ("matches", "league")


class Hub:
    """
    Connection hub that tracks per-connection preferences and fans live patches
    out to matching recipients. Patches are pulled from a PatchChannel filled by
    the subscription thread.
    """
    def __init__(
        self,
        settings: Settings,
        channel: PatchChannel,
        headers_lookup: Optional[Callable[[], Mapping[int, MatchHeader]]] = None,
    ):
        self.settings = settings
        self.channel = channel
        self.headers_lookup = headers_lookup or (lambda: {})
        self.connections: Set[WebSocket] = set()
        self.prefs: Dict[WebSocket, Dict[str, Any]] = {}
        self.lock = asyncio.Lock()
        self._pump_task: Optional[asyncio.Task] = None
        self.sent = 0

    async def connect(self, ws: WebSocket):
        await ws.accept()
        async with self.lock:
            self.connections.add(ws)
            self.prefs[ws] = {
                "filters": {k: set() for k in FILTER_KEYS},
                "quiet_controls": True,
            }

    async def disconnect(self, ws: WebSocket):
        async with self.lock:
            self.connections.discard(ws)
            self.prefs.pop(ws, None)

    async def set_quiet(self, ws: WebSocket, quiet: bool):
        async with self.lock:
            if ws in self.prefs:
                self.prefs[ws]["quiet_controls"] = bool(quiet)

    async def update_filters(self, ws: WebSocket, updates: Dict[str, Any], *, reset: bool = False):
        """
        Update per-connection filters, normalizing values. "match" is accepted as an alias of "matches".
        """
        async with self.lock:
            if ws not in self.prefs:
                return
            if reset:
                self.prefs[ws]["filters"] = {k: set() for k in FILTER_KEYS}
            f = self.prefs[ws]["filters"]
            for k in ("matches", "match", "league"):
                if k in updates:
                    f["matches" if k == "match" else k] = normalize_filter_values(updates.get(k))
            ack = {k: sorted(f.get(k) or []) for k in FILTER_KEYS}
            quiet = bool(self.prefs[ws].get("quiet_controls", False))
        if not quiet:
            await self._send(ws, {"control": "filters_updated", "filters": ack})

    async def _send(self, ws: WebSocket, obj: Dict[str, Any]) -> bool:
        try:
            await ws.send_text(json.dumps(obj, ensure_ascii=False))
            return True
        except Exception as e:
            if self.settings.ws_debug:
                logger.debug("send failed: %s", e)
            return False

    async def broadcast(self, patch: LivePatch):
        """
        Send a patch to every connection, narrowed by that connection's filters.
        Connections that fail to receive are dropped.
        """
        async with self.lock:
            targets = [(ws, FilterSets.from_prefs(self.prefs.get(ws, {}).get("filters") or {}))
                       for ws in self.connections]
        if not targets:
            return

        headers_by_id = dict(self.headers_lookup() or {})
        dead: list = []
        for ws, fs in targets:
            out = fs.apply(patch, headers_by_id)
            if not out.headers and not out.odds:
                continue
            if await self._send(ws, {"type": "patch", "payload": out.to_dict()}):
                self.sent += 1
            else:
                dead.append(ws)

        if dead:
            async with self.lock:
                for ws in dead:
                    self.connections.discard(ws)
                    self.prefs.pop(ws, None)
            logger.info("dropped %d dead websocket connection(s)", len(dead))

    async def pump(self, poll_timeout: float = 1.0):
        """Drain the patch channel until it is closed."""
        while True:
            patch = await asyncio.to_thread(self.channel.get, poll_timeout)
            if patch is None:
                if self.channel.closed:
                    break
                continue
            try:
                await self.broadcast(patch)
            except Exception:
                logger.exception("broadcast failed")

    def start(self):
        # a previous stop() closed the channel; the hub may be started again
        if self.channel.closed:
            self.channel.reopen()
        if self._pump_task is None or self._pump_task.done():
            self._pump_task = asyncio.get_running_loop().create_task(self.pump())

    async def stop(self):
        self.channel.close()
        if self._pump_task is not None:
            await self._pump_task
            self._pump_task = None
