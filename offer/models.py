from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Mapping, Optional, Tuple

logger = logging.getLogger("offer")


# ---------------------------------------------------------------------------
# Reference catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SportEntry:
    name: str
    code: str
    active: bool = True
    active_in_live: bool = False
    order_number: int = 0
    short_name: Optional[str] = None


@dataclass(frozen=True)
class BetTypeEntry:
    code: int
    caption: str
    sport: str
    order_number: int = 0
    use_specifiers: bool = False


@dataclass(frozen=True)
class PickEntry:
    key: str
    label: str
    caption: str
    tip_type_code: int
    bet_pick_code: Optional[int] = None
    bet_code: Optional[int] = None
    tip_type_name: Optional[str] = None
    position: Optional[str] = None


@dataclass(frozen=True)
class PickGroupEntry:
    id: int
    name: str
    description: str
    sport: str
    order_number: int = 0
    tip_types: Tuple[int, ...] = ()
    line_code: Optional[int] = None
    favorite: bool = False
    handicap_param: Optional[str] = None


@dataclass(frozen=True)
class Catalog:
    sports: Tuple[SportEntry, ...]
    bet_types: Mapping[str, BetTypeEntry]
    picks: Mapping[str, PickEntry]
    groups: Mapping[str, PickGroupEntry]
    system_time: Optional[str] = None


# ---------------------------------------------------------------------------
# Live offer
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Outcome:
    value: Optional[float]
    pick_code: Optional[int]


@dataclass(frozen=True)
class MatchHeader:
    id: int
    match_code: Optional[int] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    league: Optional[str] = None
    league_short: Optional[str] = None
    league_id: Optional[int] = None
    kickoff_time: Optional[int] = None
    live_status: Optional[str] = None
    betting_allowed: Optional[bool] = None
    top_match: Optional[bool] = None
    show_in_live: Optional[bool] = None
    sport_code: Optional[str] = None
    sport_name: Optional[str] = None
    match_info: Optional[str] = None
    external_id: Optional[str] = None
    last_change_time: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OddsQuote:
    id: int
    bet_code: Optional[int] = None
    match_id: Optional[int] = None
    match_code: Optional[int] = None
    special_value: Optional[str] = None
    status: Optional[str] = None
    disabled: Optional[bool] = None
    last_change_time: Optional[int] = None
    outcomes: Mapping[str, Outcome] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["outcomes"] = {k: {"value": o.value, "pick_code": o.pick_code} for k, o in self.outcomes.items()}
        return d


@dataclass(frozen=True)
class RawPick:
    pick_code: Optional[int]
    tip_type: Optional[int]
    status: Optional[str]
    odds_value: Optional[float]
    bet_code: Optional[int]
    special_value: Optional[str]


@dataclass(frozen=True)
class ScheduledMatch:
    id: int
    match_code: Optional[int] = None
    home: Optional[str] = None
    away: Optional[str] = None
    kickoff_time: Optional[int] = None
    sport: Optional[str] = None
    league_id: Optional[int] = None
    league_name: Optional[str] = None
    league_short: Optional[str] = None
    status: Optional[int] = None
    blocked: bool = False
    favourite: bool = False
    bet_map: Mapping[str, Mapping[str, RawPick]] = field(default_factory=dict)

    def to_dict(self, *, include_bets: bool = False) -> Dict[str, Any]:
        d = {f.name: getattr(self, f.name) for f in fields(self) if f.name != "bet_map"}
        if include_bets:
            d["bet_map"] = {
                bk: {sv: asdict(p) for sv, p in inner.items()}
                for bk, inner in self.bet_map.items()
            }
        return d


# ---------------------------------------------------------------------------
# Decoding: raw provider dicts -> typed entities. Fail closed (None) on shape
# mismatch of identity or known fields.
# ---------------------------------------------------------------------------

class _Reject(Exception):
    pass


def _int(v: Any) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, bool):
        raise _Reject("bool where int expected")
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, str):
        try:
            return int(v.strip())
        except ValueError:
            pass
    raise _Reject(f"not an int: {v!r}")


def _float(v: Any) -> Optional[float]:
    if v is None:
        return None
    if isinstance(v, bool):
        raise _Reject("bool where number expected")
    if isinstance(v, (int, float)):
        return float(v)
    if isinstance(v, str):
        try:
            return float(v)
        except ValueError:
            pass
    raise _Reject(f"not a number: {v!r}")


def _str(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    raise _Reject(f"not a string: {v!r}")


def _bool(v: Any) -> Optional[bool]:
    if v is None:
        return None
    if isinstance(v, bool):
        return v
    if isinstance(v, int) and v in (0, 1):
        return bool(v)
    raise _Reject(f"not a bool: {v!r}")


# provider short key -> (attribute, coercer)
HEADER_FIELDS = {
    "mc": ("match_code", _int),
    "h": ("home_team", _str),
    "a": ("away_team", _str),
    "lg": ("league", _str),
    "lsh": ("league_short", _str),
    "lid": ("league_id", _int),
    "kot": ("kickoff_time", _int),
    "ls": ("live_status", _str),
    "ba": ("betting_allowed", _bool),
    "tm": ("top_match", _bool),
    "liv": ("show_in_live", _bool),
    "s": ("sport_code", _str),
    "sn": ("sport_name", _str),
    "inf": ("match_info", _str),
    "eid": ("external_id", _str),
    "lct": ("last_change_time", _int),
}

ODDS_FIELDS = {
    "bc": ("bet_code", _int),
    "mId": ("match_id", _int),
    "mc": ("match_code", _int),
    "sv": ("special_value", _str),
    "st": ("status", _str),
    "d": ("disabled", _bool),
    "lct": ("last_change_time", _int),
}


def _decode_fields(raw: Mapping[str, Any], table: Mapping[str, tuple]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, (attr, coerce) in table.items():
        if key in raw:
            out[attr] = coerce(raw[key])
    return out


def _decode_outcomes(om: Any) -> Dict[str, Outcome]:
    if not isinstance(om, dict):
        raise _Reject("outcome map is not an object")
    out: Dict[str, Outcome] = {}
    for k, v in om.items():
        if not isinstance(v, dict):
            raise _Reject(f"outcome {k!r} is not an object")
        out[str(k)] = Outcome(value=_float(v.get("ov")), pick_code=_int(v.get("bpc")))
    return out


def decode_header_patch(raw: Any) -> Optional[Tuple[int, Dict[str, Any]]]:
    """Return (id, present-fields) for a raw live header, or None if malformed."""
    try:
        if not isinstance(raw, dict):
            raise _Reject("header is not an object")
        hid = _int(raw.get("id"))
        if hid is None:
            raise _Reject("header without id")
        return hid, _decode_fields(raw, HEADER_FIELDS)
    except _Reject as e:
        logger.debug("skipping header: %s", e)
        return None


def decode_odds_patch(raw: Any) -> Optional[Tuple[int, Dict[str, Any]]]:
    """Return (id, present-fields) for a raw live bet, or None if malformed."""
    try:
        if not isinstance(raw, dict):
            raise _Reject("bet is not an object")
        bid = _int(raw.get("id"))
        if bid is None:
            raise _Reject("bet without id")
        out = _decode_fields(raw, ODDS_FIELDS)
        if "om" in raw:
            out["outcomes"] = _decode_outcomes(raw["om"])
        return bid, out
    except _Reject as e:
        logger.debug("skipping bet: %s", e)
        return None


def decode_sport(raw: Any) -> Optional[SportEntry]:
    try:
        if not isinstance(raw, dict):
            raise _Reject("sport is not an object")
        name = _str(raw.get("name"))
        code = _str(raw.get("sportTypeCode"))
        if not name or not code:
            raise _Reject("sport without name/code")
        return SportEntry(
            name=name,
            code=code,
            active=bool(_bool(raw.get("active")) if raw.get("active") is not None else True),
            active_in_live=bool(_bool(raw.get("activeInLive"))),
            order_number=_int(raw.get("orderNumber")) or 0,
            short_name=_str(raw.get("shortName")),
        )
    except _Reject as e:
        logger.debug("skipping sport: %s", e)
        return None


def decode_bet_type(raw: Any) -> Optional[BetTypeEntry]:
    try:
        if not isinstance(raw, dict):
            raise _Reject("bet type is not an object")
        code = _int(raw.get("code"))
        if code is None:
            raise _Reject("bet type without code")
        return BetTypeEntry(
            code=code,
            caption=_str(raw.get("caption")) or "",
            sport=_str(raw.get("sport")) or "",
            order_number=_int(raw.get("orderNumber")) or 0,
            use_specifiers=bool(_bool(raw.get("useSpecifiers"))),
        )
    except _Reject as e:
        logger.debug("skipping bet type: %s", e)
        return None


def decode_pick(key: str, raw: Any) -> Optional[PickEntry]:
    try:
        if not isinstance(raw, dict):
            raise _Reject("pick is not an object")
        tip = _int(raw.get("tipTypeCode"))
        if tip is None:
            raise _Reject("pick without tipTypeCode")
        return PickEntry(
            key=str(key),
            label=_str(raw.get("label")) or "",
            caption=_str(raw.get("caption")) or "",
            tip_type_code=tip,
            bet_pick_code=_int(raw.get("betPickCode")),
            bet_code=_int(raw.get("betCode")),
            tip_type_name=_str(raw.get("tipTypeName")),
            position=_str(raw.get("position")),
        )
    except _Reject as e:
        logger.debug("skipping pick %s: %s", key, e)
        return None


def decode_pick_group(raw: Any) -> Optional[PickGroupEntry]:
    try:
        if not isinstance(raw, dict):
            raise _Reject("group is not an object")
        gid = _int(raw.get("id"))
        if gid is None:
            raise _Reject("group without id")
        tips = raw.get("tipTypes") or []
        if not isinstance(tips, list):
            raise _Reject("tipTypes is not a list")
        return PickGroupEntry(
            id=gid,
            name=_str(raw.get("name")) or "",
            description=_str(raw.get("description")) or "",
            sport=_str(raw.get("sport")) or "",
            order_number=_int(raw.get("orderNumber")) or 0,
            tip_types=tuple(t for t in (_int(x) for x in tips) if t is not None),
            line_code=_int(raw.get("lineCode")),
            favorite=bool(_bool(raw.get("favorite"))),
            handicap_param=_str(raw.get("handicapParam")),
        )
    except _Reject as e:
        logger.debug("skipping group: %s", e)
        return None


def decode_raw_pick(raw: Any) -> RawPick:
    if not isinstance(raw, dict):
        raise _Reject("raw pick is not an object")
    return RawPick(
        pick_code=_int(raw.get("bpc")),
        tip_type=_int(raw.get("tt")),
        status=_str(raw.get("s")),
        odds_value=_float(raw.get("ov")),
        bet_code=_int(raw.get("bc")),
        special_value=_str(raw.get("sv")),
    )


def decode_scheduled_match(raw: Any) -> Optional[ScheduledMatch]:
    try:
        if not isinstance(raw, dict):
            raise _Reject("match is not an object")
        mid = _int(raw.get("id"))
        if mid is None:
            raise _Reject("match without id")
        bm_raw = raw.get("betMap") or {}
        if not isinstance(bm_raw, dict):
            raise _Reject("betMap is not an object")
        bet_map: Dict[str, Dict[str, RawPick]] = {}
        for bet_key, inner in bm_raw.items():
            if not isinstance(inner, dict):
                raise _Reject(f"betMap[{bet_key!r}] is not an object")
            bet_map[str(bet_key)] = {str(sv): decode_raw_pick(p) for sv, p in inner.items()}
        return ScheduledMatch(
            id=mid,
            match_code=_int(raw.get("matchCode")),
            home=_str(raw.get("home")),
            away=_str(raw.get("away")),
            kickoff_time=_int(raw.get("kickOffTime")),
            sport=_str(raw.get("sport")),
            league_id=_int(raw.get("leagueId")),
            league_name=_str(raw.get("leagueName")),
            league_short=_str(raw.get("leagueShort")),
            status=_int(raw.get("status")),
            blocked=bool(_bool(raw.get("blocked"))),
            favourite=bool(_bool(raw.get("favourite"))),
            bet_map=bet_map,
        )
    except _Reject as e:
        logger.debug("skipping scheduled match: %s", e)
        return None


@dataclass(frozen=True)
class LiveSport:
    sport: str
    sort_value: Optional[str] = None
    match_count: int = 0


def decode_live_sport(raw: Any) -> Optional[LiveSport]:
    try:
        if not isinstance(raw, dict):
            raise _Reject("live sport is not an object")
        code = _str(raw.get("sport"))
        if not code:
            raise _Reject("live sport without code")
        return LiveSport(
            sport=code,
            sort_value=_str(raw.get("sportSortValue")),
            match_count=_int(raw.get("matchsCount")) or 0,
        )
    except _Reject as e:
        logger.debug("skipping live sport: %s", e)
        return None
