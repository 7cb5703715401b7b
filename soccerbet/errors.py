from __future__ import annotations


class FeedError(Exception):
    """Base class for failures talking to the provider."""


class TransportError(FeedError):
    """Connect/read failure, bad HTTP status or timeout."""


class IncompleteSnapshot(FeedError):
    """The bulk feed ended before the END sentinel arrived."""


class Aborted(FeedError):
    """The caller cancelled the request; not a data or transport fault."""


class ParseError(FeedError):
    """A frame could not be decoded. Callers skip the frame."""
