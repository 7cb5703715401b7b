from __future__ import annotations

from typing import Dict, Any, Optional
import requests
from requests.exceptions import RequestException
from .config import DESKTOP_VERSION, JSON_HEADERS, STREAM_HEADERS, TRACE_ENABLED, logger
from .errors import TransportError


def get_json(
    url: str,
    params: Dict[str, Any] | None = None,
    *,
    timeout: float = 30,
    session: Optional[requests.Session] = None,
) -> Any:
    """GET a JSON resource. Raises TransportError on any request or decode failure."""
    params = dict(params or {})
    params.setdefault("desktopVersion", DESKTOP_VERSION)
    getter = session.get if session is not None else requests.get
    try:
        r = getter(url, params=params, headers=JSON_HEADERS, timeout=timeout)
        if TRACE_ENABLED:
            logger.debug("GET %s status=%s", url, getattr(r, "status_code", None))
        r.raise_for_status()
        return r.json()
    except RequestException as e:
        logger.warning("GET failed for %s: %s", url, e)
        raise TransportError(f"GET {url} failed: {e}") from e
    except ValueError as e:
        raise TransportError(f"GET {url} returned invalid JSON: {e}") from e


def open_stream(
    url: str,
    params: Dict[str, Any] | None = None,
    *,
    timeout: Any = None,
    session: Optional[requests.Session] = None,
) -> requests.Response:
    """Open a streaming GET and return the response with its body unread.

    `timeout` is passed to requests as-is: a (connect, read) tuple bounds the
    bulk feed, a bare connect timeout with read=None leaves the live feed idle.
    """
    getter = session.get if session is not None else requests.get
    try:
        r = getter(url, params=params, headers=STREAM_HEADERS, timeout=timeout, stream=True)
    except RequestException as e:
        raise TransportError(f"stream open failed for {url}: {e}") from e
    if r.status_code != 200:
        body = ""
        try:
            body = (r.text or "")[:200]
        except Exception:
            pass
        r.close()
        raise TransportError(f"stream {url} returned status {r.status_code}: {body}")
    if not r.encoding:
        r.encoding = "utf-8"
    return r
