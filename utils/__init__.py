"""
utils
=====

Small shared helpers.

Public API (re-exports):
- to_epoch_seconds, format_epoch_ms (time)
"""
from .timeutil import to_epoch_seconds, format_epoch_ms

__all__ = ["to_epoch_seconds", "format_epoch_ms"]
