"""
soccerbet
=========

Client for the soccerbet.rs offer: reference catalog requests, the bulk live
snapshot and the incremental live subscription.

Public API (stable re-exports):
- load_catalog, get_scheduled_matches (from catalogue)
- fetch_snapshot, LiveSnapshot (from snapshot)
- SubscriptionLoop, LoopState (from subscribe)
- FeedError, TransportError, IncompleteSnapshot, Aborted, ParseError (from errors)
"""
from .catalogue import load_catalog, get_scheduled_matches
from .errors import Aborted, FeedError, IncompleteSnapshot, ParseError, TransportError
from .snapshot import LiveSnapshot, fetch_snapshot
from .subscribe import LoopState, SubscriptionLoop

__all__ = [
    "load_catalog", "get_scheduled_matches",
    "LiveSnapshot", "fetch_snapshot",
    "LoopState", "SubscriptionLoop",
    "FeedError", "TransportError", "IncompleteSnapshot", "Aborted", "ParseError",
]
