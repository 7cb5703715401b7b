from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from offer.enrich import EnrichedOdds, EnrichedScheduledMatch
from offer.models import MatchHeader
from utils.timeutil import format_epoch_ms

from .filters import active_matches, betting_allowed_matches, is_match_live, top_matches

STATUS_TEXT = {
    "RUNNING": "Live",
    "HT": "Half Time",
    "FT": "Full Time",
    "POSTPONED": "Postponed",
    "CANCELLED": "Cancelled",
    "SUSPENDED": "Suspended",
}

SPORT_NAMES = {
    "S": "Football",
    "FB": "Football",
    "SF": "Special Football",
    "T": "Tennis",
    "V": "Basketball",
    "B": "Basketball",
}


def status_text(header: MatchHeader) -> str:
    ls = header.live_status or ""
    return STATUS_TEXT.get(ls, ls)


def sport_name(code: Optional[str]) -> str:
    return SPORT_NAMES.get(code or "", code or "")


def format_match(header: MatchHeader) -> Dict[str, Any]:
    """Display row for the live match list."""
    return {
        "id": header.id,
        "match_code": header.match_code,
        "home_team": header.home_team,
        "away_team": header.away_team,
        "league": header.league,
        "league_short": header.league_short,
        "sport": sport_name(header.sport_code),
        "kickoff_time": format_epoch_ms(header.kickoff_time),
        "status": status_text(header),
        "is_live": is_match_live(header),
        "betting_allowed": bool(header.betting_allowed),
        "is_top_match": bool(header.top_match),
        "match_info": header.match_info,
        "external_id": header.external_id,
    }


def sort_by_kickoff(headers: Iterable[MatchHeader], ascending: bool = True) -> List[MatchHeader]:
    return sorted(headers, key=lambda h: h.kickoff_time or 0, reverse=not ascending)


def unique_leagues(headers: Iterable[MatchHeader]) -> List[Dict[str, Any]]:
    seen: Dict[Any, Dict[str, Any]] = {}
    for h in headers:
        if h.league_id not in seen:
            seen[h.league_id] = {"id": h.league_id, "name": h.league, "short": h.league_short}
    return list(seen.values())


def live_stats(headers: List[MatchHeader], total_bets: int, sport_code: Optional[str]) -> Dict[str, Any]:
    return {
        "total_matches": len(headers),
        "active_matches": len(active_matches(headers)),
        "betting_allowed_matches": len(betting_allowed_matches(headers)),
        "top_matches": len(top_matches(headers)),
        "total_bets": total_bets,
        "sport_type_code": sport_code,
    }


def match_with_bets(header: MatchHeader, bets: Iterable[EnrichedOdds]) -> Dict[str, Any]:
    d = header.to_dict()
    d["bets"] = [b.to_dict() for b in bets]
    return d


def scheduled_stats(matches: List[EnrichedScheduledMatch], sport_code: Optional[str]) -> Dict[str, Any]:
    return {
        "total_matches": len(matches),
        "active_matches": len(matches),
        "betting_allowed_matches": len(matches),
        "top_matches": sum(1 for m in matches if m.match.favourite),
        "total_bets": sum(len(m.bets) for m in matches),
        "sport_type_code": sport_code,
    }


def envelope(success: bool, message: str, data: Any = None) -> Dict[str, Any]:
    return {"success": success, "message": message, "data": data}
