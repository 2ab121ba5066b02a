"""SuggestRank - usage analytics and weighted ranking for command suggestions."""

from .adapters import InMemoryKeyValueStore, SQLAlchemyKeyValueStore
from .config import SuggestRankSettings, configure_logging
from .container import ServiceContainer
from .errors import ServiceNotInitializedError, SuggestRankError
from .models import (
    AnalyticsEvent,
    AnalyticsSummary,
    Candidate,
    CommandResult,
    EventType,
    Insights,
    RankingConfig,
    RankingContext,
    ScoredItem,
)
from .ranking import RankingEngine
from .store import AnalyticsStore

__all__ = [
    "AnalyticsEvent",
    "AnalyticsStore",
    "AnalyticsSummary",
    "Candidate",
    "CommandResult",
    "EventType",
    "InMemoryKeyValueStore",
    "Insights",
    "RankingConfig",
    "RankingContext",
    "RankingEngine",
    "SQLAlchemyKeyValueStore",
    "ScoredItem",
    "ServiceContainer",
    "ServiceNotInitializedError",
    "SuggestRankError",
    "SuggestRankSettings",
    "configure_logging",
]

__version__ = "0.1.0"
