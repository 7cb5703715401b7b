from __future__ import annotations

import os
import logging
from dotenv import load_dotenv

# Load overrides from .env (if present)
load_dotenv()

# Soccerbet endpoints
BASE_URL = os.getenv("SOCCERBET_BASE", "https://www.soccerbet.rs").rstrip("/")
DESKTOP_VERSION = os.getenv("SOCCERBET_DESKTOP_VERSION", "2.40.3.23")
REST_BASE = f"{BASE_URL}/restapi"
LIVE_BASE = f"{BASE_URL}/live"

SPORTS_URL = f"{REST_BASE}/translate/sr/sports"
BETTING_OPTIONS_URL = f"{REST_BASE}/offer/sr/ttg_lang"
SCHEDULED_URL = f"{REST_BASE}/offer/sr/sport/{{sport_code}}/mob"
LIVE_EVENTS_URL = f"{LIVE_BASE}/events/sr"
LIVE_SUBSCRIBE_URL = f"{LIVE_BASE}/subscribe/sr"

USER_AGENT = os.getenv(
    "SOCCERBET_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
)

JSON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "sr-RS,sr;q=0.9,en;q=0.8",
    "Referer": f"{BASE_URL}/",
    "Origin": BASE_URL,
}

STREAM_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/event-stream",
    "Cache-Control": "no-cache",
    "Accept-Language": "sr-RS,sr;q=0.9,en;q=0.8",
    "Referer": f"{BASE_URL}/",
}

# Tracing / logging setup
TRACE_ENABLED = os.getenv("TRACE", "0").strip().lower() in ("1", "true", "yes", "on")
if TRACE_ENABLED:
    logging.basicConfig(
        filename=os.getenv("TRACE_FILE", "trace.log"),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
logger = logging.getLogger("soccerbet")
