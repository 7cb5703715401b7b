"""
offer
=====

In-memory model of the live and scheduled offer plus the catalog join.

Public API (stable):
- LiveStateStore, StoreSnapshot (from state)
- PatchChannel, LivePatch (from channel)
- SportMappingTable (from sport_map)
- build_catalog_view, enrich_match_odds, enrich_scheduled_matches,
  cluster_by_group (from enrich)
"""
from .channel import LivePatch, PatchChannel
from .enrich import (
    CatalogView,
    build_catalog_view,
    cluster_by_group,
    enrich_match_odds,
    enrich_scheduled_match,
    enrich_scheduled_matches,
)
from .sport_map import SUPPORTED_SPORTS, SportMappingTable
from .state import LiveStateStore, StoreSnapshot

__all__ = [
    "LivePatch", "PatchChannel",
    "CatalogView", "build_catalog_view", "cluster_by_group",
    "enrich_match_odds", "enrich_scheduled_match", "enrich_scheduled_matches",
    "SUPPORTED_SPORTS", "SportMappingTable",
    "LiveStateStore", "StoreSnapshot",
]
