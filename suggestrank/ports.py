"""Port definitions for persistence and for the ranking feedback loop."""

from typing import Any, Dict, Optional, Protocol

from .models import SuggestionStat


class KeyValueStore(Protocol):
    """Persisted key-value store that adapters can implement for any backend.

    Values are JSON-compatible. A missing key must read back as ``default``.
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key`` or ``default``."""

    def set(self, key: str, value: Any) -> None:
        """Replace the value stored under ``key``."""


class SuggestionFeedback(Protocol):
    """What the ranking engine needs from the analytics store."""

    def get_suggestion_stat(self, suggestion_id: str) -> Optional[SuggestionStat]:
        """Return interaction counters for a suggestion, if any were recorded."""

    def track_suggestion_accepted(
        self,
        suggestion_id: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record that a suggestion was accepted."""

    def track_suggestion_dismissed(
        self,
        suggestion_id: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record that a suggestion was dismissed."""
