from __future__ import annotations

import os
from dataclasses import dataclass

from soccerbet.framing import parse_delimiter


def _env_bool(name: str, default: bool = False) -> bool:
    return (os.getenv(name, str(int(default))) or "").strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except Exception:
        return default


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name, default)
    return default if v is None else str(v)


@dataclass(frozen=True)
class Settings:
    # Framing per feed: bulk feed separates frames by a blank line, live feed by a newline
    bulk_frame_delimiter: str = parse_delimiter(_env_str("BULK_FRAME_DELIMITER", "\\n\\n"))
    live_frame_delimiter: str = parse_delimiter(_env_str("LIVE_FRAME_DELIMITER", "\\n"))

    # Timeouts (seconds)
    catalog_timeout: float = _env_float("CATALOG_TIMEOUT", 10.0)
    snapshot_timeout: float = _env_float("SNAPSHOT_TIMEOUT", 30.0)
    scheduled_timeout: float = _env_float("SCHEDULED_TIMEOUT", 30.0)
    connect_timeout: float = _env_float("CONNECT_TIMEOUT", 10.0)

    # Reconnect backoff (seconds)
    reconnect_end_delay: float = _env_float("RECONNECT_END_DELAY", 1.0)
    reconnect_error_delay: float = _env_float("RECONNECT_ERROR_DELAY", 5.0)

    # Patch fan-out
    patch_queue_size: int = _env_int("PATCH_QUEUE_SIZE", 256)

    # Debugging / behavior
    ws_debug: bool = _env_bool("WS_DEBUG", False)

    # Ports / run
    host: str = _env_str("HOST", "0.0.0.0")
    port: int = _env_int("PORT", 8000)
