from __future__ import annotations

import json
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import uvicorn

from offer.enrich import cluster_by_group
from server.config import Settings
from server.hub import Hub
from server.orchestrator import Mode, ModeOrchestrator
from server.transform import (
    envelope,
    format_match,
    live_stats,
    match_with_bets,
    scheduled_stats,
    sort_by_kickoff,
    unique_leagues,
)

TRUTHY = ("1", "true", "yes", "on")


def _fail(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content=envelope(False, message))


def create_app(orchestrator: Optional[ModeOrchestrator] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or (orchestrator.settings if orchestrator is not None else Settings())
    orch = orchestrator or ModeOrchestrator(settings)

    def current_headers():
        snap = orch.get_live_data()
        return snap.headers if snap is not None else {}

    hub = Hub(settings, orch.channel, headers_lookup=current_headers)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        hub.start()
        try:
            yield
        finally:
            orch.reset()
            await hub.stop()

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.orchestrator = orch
    app.state.hub = hub

    @app.get("/health")
    async def health():
        return PlainTextResponse("ok")

    # Blocking handlers are plain defs so FastAPI runs them in its thread pool.
    @app.post("/api/start")
    def start(payload: Optional[Dict[str, Any]] = Body(None)):
        body = payload or {}
        try:
            ctx = orch.initialize(body.get("mode"), body.get("sport"), body.get("interval"))
        except ValueError as e:
            return _fail(400, str(e))
        except Exception as e:
            return _fail(500, f"initialization failed: {e}")
        return envelope(True, f"{ctx.mode.value} mode started for {ctx.sport}", ctx.summary())

    @app.post("/api/stop")
    def stop():
        orch.reset()
        return envelope(True, "stopped")

    @app.get("/api/data")
    def data():
        ctx = orch.get_session()
        if ctx is None:
            return _fail(400, "no active session, call /api/start first")
        return envelope(True, "ok", {
            "session": ctx.summary(),
            "streaming": orch.is_streaming(),
            "sports": [asdict(s) for s in orch.get_filtered_sports()],
            "catalog": orch.get_filtered_catalog(),
        })

    def _live_required() -> Optional[JSONResponse]:
        ctx = orch.get_session()
        if ctx is None or ctx.mode is not Mode.LIVE:
            return _fail(400, "live mode is not active")
        return None

    @app.get("/api/live-data")
    def live_data():
        err = _live_required()
        if err is not None:
            return err
        headers = orch.get_filtered_headers_by_sport()
        matches = []
        total_bets = 0
        for h in headers:
            bets = orch.get_enriched_match_odds(h.id)
            total_bets += len(bets)
            matches.append(match_with_bets(h, bets))
        ctx = orch.get_session()
        return envelope(True, "ok", {
            "matches": matches,
            "stats": live_stats(headers, total_bets, ctx.sport_code if ctx else None),
            "streaming": orch.is_streaming(),
        })

    @app.get("/api/live-matches")
    def live_matches():
        err = _live_required()
        if err is not None:
            return err
        headers = sort_by_kickoff(orch.get_filtered_headers_by_sport())
        snap = orch.get_live_data()
        total_bets = len(snap.odds) if snap is not None else 0
        ctx = orch.get_session()
        return envelope(True, "ok", {
            "matches": [format_match(h) for h in headers],
            "leagues": unique_leagues(headers),
            "stats": live_stats(headers, total_bets, ctx.sport_code if ctx else None),
        })

    @app.get("/api/live-bets/{match_id}")
    def live_bets(match_id: int):
        err = _live_required()
        if err is not None:
            return err
        snap = orch.get_live_data()
        header = snap.header(match_id) if snap is not None else None
        bets = orch.get_enriched_match_odds(match_id)
        ctx = orch.get_session()
        groups = cluster_by_group(bets, ctx.view) if ctx is not None else []
        return envelope(True, "ok", {
            "match": format_match(header) if header is not None else None,
            "bets": [b.to_dict() for b in bets],
            "groups": [{"group": g["group"], "bets": [b.to_dict() for b in g["bets"]]} for g in groups],
        })

    @app.get("/api/pregame-data")
    def pregame_data():
        ctx = orch.get_session()
        if ctx is None or ctx.mode is not Mode.SCHEDULED:
            return _fail(400, "scheduled mode is not active")
        matches = orch.get_enriched_scheduled_matches()
        return envelope(True, "ok", {
            "matches": [m.to_dict() for m in matches],
            "stats": scheduled_stats(matches, ctx.sport_code),
        })

    @app.websocket("/stream")
    async def stream(ws: WebSocket):
        await hub.connect(ws)
        try:
            # Keep the websocket open; accept control messages to set filters and ack verbosity
            while True:
                msg = await ws.receive_text()
                try:
                    data = json.loads(msg)
                except ValueError:
                    data = None
                if not isinstance(data, dict):
                    continue
                if "quiet" in data:
                    await hub.set_quiet(ws, bool(data.get("quiet")))
                filter_updates = {k: data[k] for k in ("matches", "match", "league") if k in data}
                reset = False
                fobj = data.get("filters")
                if isinstance(fobj, dict):
                    if not fobj:
                        reset = True
                    for k in ("matches", "match", "league"):
                        if k in fobj:
                            filter_updates[k] = fobj[k]
                    if str(fobj.get("reset") or fobj.get("clear") or "").strip().lower() in TRUTHY:
                        reset = True
                if filter_updates or reset:
                    await hub.update_filters(ws, filter_updates, reset=reset)
        except WebSocketDisconnect:
            pass
        finally:
            await hub.disconnect(ws)

    return app


settings = Settings()
app = create_app(settings=settings)


if __name__ == "__main__":
    uvicorn.run("app:app", host=settings.host, port=settings.port, reload=False)
