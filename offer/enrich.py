"""Catalog join: turn raw live quotes and scheduled bet maps into labelled,
grouped views. Everything here is a pure function of a CatalogView and a
store snapshot (or scheduled match list); nothing is cached between calls.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .models import Catalog, OddsQuote, PickEntry, PickGroupEntry, ScheduledMatch, logger
from .special import grouping_key, parse_special_value
from .state import StoreSnapshot

UNKNOWN_DESCRIPTION = "Unknown Description"
UNKNOWN_CAPTION = "N/A"


# ---------------------------------------------------------------------------
# Catalog view (per sport)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PickView:
    key: str
    label: str
    caption: str
    tip_type_code: int
    bet_pick_code: Optional[int]
    bet_code: Optional[int]
    tip_type_name: Optional[str]
    group_id: Optional[int] = None
    group_description: Optional[str] = None
    group_name: Optional[str] = None
    group_order_number: Optional[int] = None


@dataclass(frozen=True)
class GroupView:
    id: int
    name: str
    description: str
    order_number: int
    tip_types: Tuple[int, ...]
    sport: str
    picks: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CatalogView:
    sport_code: Optional[str]
    groups: Tuple[GroupView, ...] = ()
    picks: Mapping[str, PickView] = field(default_factory=dict)

    def pick(self, key: str) -> Optional[PickView]:
        return self.picks.get(key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sport_code": self.sport_code,
            "groups": [asdict(g) for g in self.groups],
            "picks": [asdict(p) for p in self.picks.values()],
        }


def _owning_group(pick: PickEntry, groups: Iterable[PickGroupEntry]) -> Optional[PickGroupEntry]:
    for g in groups:
        if pick.tip_type_code in g.tip_types:
            return g
    return None


def build_catalog_view(catalog: Catalog, sport_code: Optional[str]) -> CatalogView:
    """Restrict the catalog to one sport and link every pick to its owning group
    (first group listing the pick's tip type)."""
    if not sport_code:
        logger.warning("no sport code, catalog view is empty")
        return CatalogView(sport_code=None)

    groups = [g for g in catalog.groups.values() if g.sport == sport_code]
    suffix = f"_{sport_code}"
    picks: Dict[str, PickView] = {}
    members: Dict[int, List[str]] = {g.id: [] for g in groups}
    for key, p in catalog.picks.items():
        if not key.endswith(suffix):
            continue
        g = _owning_group(p, groups)
        picks[key] = PickView(
            key=key,
            label=p.label,
            caption=p.caption,
            tip_type_code=p.tip_type_code,
            bet_pick_code=p.bet_pick_code,
            bet_code=p.bet_code,
            tip_type_name=p.tip_type_name,
            group_id=g.id if g else None,
            group_description=g.description if g else None,
            group_name=g.name if g else None,
            group_order_number=g.order_number if g else None,
        )
        if g is not None:
            members[g.id].append(key)

    group_views = tuple(
        GroupView(
            id=g.id,
            name=g.name,
            description=g.description,
            order_number=g.order_number,
            tip_types=g.tip_types,
            sport=g.sport,
            picks=tuple(members[g.id]),
        )
        for g in groups
    )
    logger.info("catalog view for %s: %d groups, %d picks", sport_code, len(group_views), len(picks))
    return CatalogView(sport_code=sport_code, groups=group_views, picks=picks)


# ---------------------------------------------------------------------------
# Enriched views
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EnrichedOutcome:
    key: str
    odds: Optional[float]
    pick_code: Optional[int]
    description: str
    caption: str
    group_id: Optional[int] = None
    group_description: Optional[str] = None
    group_name: Optional[str] = None
    group_order_number: Optional[int] = None


@dataclass(frozen=True)
class EnrichedOdds:
    id: int
    bet_code: Optional[int]
    match_id: Optional[int]
    match_code: Optional[int]
    special_value: Optional[str]
    status: Optional[str]
    disabled: Optional[bool]
    last_change_time: Optional[int]
    sport_code: str
    odds: Tuple[EnrichedOutcome, ...]
    group_id: Optional[int] = None
    group_description: Optional[str] = None
    group_name: Optional[str] = None
    group_order_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EnrichedScheduledBet:
    id: str
    bet_code: Optional[int]
    pick_code: Optional[int]
    tip_type: Optional[int]
    status: Optional[str]
    special_value: Optional[str]
    description: str
    caption: str
    group_id: Optional[int]
    group_description: Optional[str]
    group_name: Optional[str]
    group_order_number: Optional[int]
    odds: List[EnrichedOutcome] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class EnrichedScheduledMatch:
    match: ScheduledMatch
    bets: Tuple[EnrichedScheduledBet, ...]

    def to_dict(self) -> Dict[str, Any]:
        d = self.match.to_dict()
        d["bets"] = [b.to_dict() for b in self.bets]
        return d


def _outcome(key: str, odds: Optional[float], pick_code: Optional[int], pick: Optional[PickView]) -> EnrichedOutcome:
    if pick is None:
        return EnrichedOutcome(key=key, odds=odds, pick_code=pick_code,
                               description=UNKNOWN_DESCRIPTION, caption=UNKNOWN_CAPTION)
    return EnrichedOutcome(
        key=key,
        odds=odds,
        pick_code=pick_code,
        description=pick.label or UNKNOWN_DESCRIPTION,
        caption=pick.caption or UNKNOWN_CAPTION,
        group_id=pick.group_id,
        group_description=pick.group_description,
        group_name=pick.group_name,
        group_order_number=pick.group_order_number,
    )


def enrich_quote(quote: OddsQuote, view: CatalogView, sport_code: str) -> EnrichedOdds:
    outs = tuple(
        _outcome(key, o.value, o.pick_code, view.pick(f"{key}_{sport_code}"))
        for key, o in quote.outcomes.items()
    )
    first = outs[0] if outs else None
    return EnrichedOdds(
        id=quote.id,
        bet_code=quote.bet_code,
        match_id=quote.match_id,
        match_code=quote.match_code,
        special_value=quote.special_value,
        status=quote.status,
        disabled=quote.disabled,
        last_change_time=quote.last_change_time,
        sport_code=sport_code,
        odds=outs,
        group_id=first.group_id if first else None,
        group_description=first.group_description if first else None,
        group_name=first.group_name if first else None,
        group_order_number=first.group_order_number if first else None,
    )


def enrich_match_odds(match_id: int, view: CatalogView, snap: StoreSnapshot) -> List[EnrichedOdds]:
    """Labelled quotes for one live match. Unknown match or sport -> []."""
    quotes = snap.odds_for_match(match_id)
    if not quotes:
        return []
    header = snap.header(match_id)
    sport_code = header.sport_code if header else None
    if not sport_code:
        logger.debug("no sport code for match %s", match_id)
        return []
    return [enrich_quote(q, view, sport_code) for q in quotes]


def cluster_by_group(enriched: Iterable[EnrichedOdds], view: CatalogView) -> List[Dict[str, Any]]:
    """Cluster enriched quotes by the pick groups of their outcomes, ordered by group order."""
    by_group: Dict[int, Dict[str, Any]] = {}
    groups = {g.id: g for g in view.groups}
    for bet in enriched:
        for o in bet.odds:
            if o.group_id is None:
                continue
            slot = by_group.get(o.group_id)
            if slot is None:
                g = groups.get(o.group_id)
                slot = by_group[o.group_id] = {
                    "group": {
                        "id": o.group_id,
                        "name": g.name if g else o.group_name,
                        "description": g.description if g else o.group_description,
                        "order_number": g.order_number if g else o.group_order_number,
                    },
                    "bet_ids": [],
                    "bets": [],
                }
            if bet.id not in slot["bet_ids"]:
                slot["bet_ids"].append(bet.id)
                slot["bets"].append(bet)
    out = sorted(by_group.values(), key=lambda s: (s["group"]["order_number"] is None, s["group"]["order_number"] or 0))
    for s in out:
        s.pop("bet_ids")
    return out


def enrich_scheduled_match(match: ScheduledMatch, view: CatalogView, sport_code: str) -> EnrichedScheduledMatch:
    """Collapse raw picks sharing (group, total, handicap) into one multi-outcome bet."""
    grouped: Dict[str, EnrichedScheduledBet] = {}
    for bet_key, by_special in match.bet_map.items():
        pick = view.pick(f"{bet_key}_{sport_code}")
        for raw in by_special.values():
            gkey = grouping_key(pick.group_id if pick else None, parse_special_value(raw.special_value))
            outcome = _outcome(bet_key, raw.odds_value, raw.pick_code, pick)
            existing = grouped.get(gkey)
            if existing is not None:
                existing.odds.append(outcome)
                continue
            grouped[gkey] = EnrichedScheduledBet(
                id=f"{match.id}_{gkey}",
                bet_code=raw.bet_code,
                pick_code=raw.pick_code,
                tip_type=raw.tip_type,
                status=raw.status,
                special_value=raw.special_value,
                description=outcome.description,
                caption=outcome.caption,
                group_id=outcome.group_id,
                group_description=outcome.group_description,
                group_name=outcome.group_name,
                group_order_number=outcome.group_order_number,
                odds=[outcome],
            )
    return EnrichedScheduledMatch(match=match, bets=tuple(grouped.values()))


def enrich_scheduled_matches(
    matches: Iterable[ScheduledMatch], view: CatalogView, sport_code: str
) -> List[EnrichedScheduledMatch]:
    out = [enrich_scheduled_match(m, view, sport_code) for m in matches if m.sport == sport_code]
    logger.debug("enriched %d scheduled matches for %s", len(out), sport_code)
    return out
