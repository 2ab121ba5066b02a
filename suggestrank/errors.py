"""Exceptions raised by SuggestRank."""


class SuggestRankError(Exception):
    """Base exception for SuggestRank errors."""


class ServiceNotInitializedError(SuggestRankError):
    """Raised when a service is requested before it has been constructed."""
