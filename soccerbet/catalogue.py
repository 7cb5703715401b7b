from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from offer.models import (
    BetTypeEntry,
    Catalog,
    PickEntry,
    PickGroupEntry,
    ScheduledMatch,
    SportEntry,
    decode_bet_type,
    decode_pick,
    decode_pick_group,
    decode_scheduled_match,
    decode_sport,
)
from .config import SPORTS_URL, BETTING_OPTIONS_URL, SCHEDULED_URL, logger
from .errors import TransportError
from .http import get_json


def get_sports(*, timeout: float = 10, session: Optional[requests.Session] = None) -> list[SportEntry]:
    data = get_json(SPORTS_URL, timeout=timeout, session=session)
    if not isinstance(data, list):
        raise TransportError(f"sports endpoint returned {type(data).__name__}, expected a list")
    out = [s for s in (decode_sport(it) for it in data) if s is not None]
    logger.info("fetched %d sports", len(out))
    return out


def get_betting_options(*, timeout: float = 10, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    data = get_json(BETTING_OPTIONS_URL, timeout=timeout, session=session)
    if not isinstance(data, dict):
        raise TransportError(f"betting options endpoint returned {type(data).__name__}, expected an object")
    return data


def parse_betting_options(data: Dict[str, Any]) -> tuple[dict, dict, dict]:
    """Decode betMap / betPickMap / betPickGroupMap, dropping malformed entries."""
    bet_types: Dict[str, BetTypeEntry] = {}
    for k, v in (data.get("betMap") or {}).items():
        bt = decode_bet_type(v)
        if bt is not None:
            bet_types[str(k)] = bt
    picks: Dict[str, PickEntry] = {}
    for k, v in (data.get("betPickMap") or {}).items():
        p = decode_pick(k, v)
        if p is not None:
            picks[str(k)] = p
    groups: Dict[str, PickGroupEntry] = {}
    for k, v in (data.get("betPickGroupMap") or {}).items():
        g = decode_pick_group(v)
        if g is not None:
            groups[str(k)] = g
    return bet_types, picks, groups


def load_catalog(*, timeout: float = 10, session: Optional[requests.Session] = None) -> Catalog:
    """Fetch sports and the bet/pick/group dictionaries. Any failure raises TransportError."""
    sports = get_sports(timeout=timeout, session=session)
    options = get_betting_options(timeout=timeout, session=session)
    bet_types, picks, groups = parse_betting_options(options)
    logger.info(
        "catalog loaded: sports=%d bet_types=%d picks=%d groups=%d",
        len(sports), len(bet_types), len(picks), len(groups),
    )
    return Catalog(
        sports=tuple(sports),
        bet_types=bet_types,
        picks=picks,
        groups=groups,
        system_time=options.get("systemTime"),
    )


def get_scheduled_matches(
    sport_code: str,
    *,
    timeout: float = 30,
    session: Optional[requests.Session] = None,
) -> List[ScheduledMatch]:
    url = SCHEDULED_URL.format(sport_code=requests.utils.quote(str(sport_code), safe=""))
    data = get_json(url, params={"annex": 0, "locale": "sr"}, timeout=timeout, session=session)
    if not isinstance(data, dict):
        raise TransportError(f"scheduled offer returned {type(data).__name__}, expected an object")
    arr = data.get("esMatches") or []
    if not isinstance(arr, list):
        arr = []
    matches = [m for m in (decode_scheduled_match(it) for it in arr) if m is not None]
    logger.info("fetched %d scheduled matches for sport %s (raw=%d)", len(matches), sport_code, len(arr))
    return matches
