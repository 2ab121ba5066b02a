"""Explicit construction and wiring of the analytics store and ranking engine."""

from typing import Callable, Optional

import structlog

from .config import SuggestRankSettings
from .errors import ServiceNotInitializedError
from .models import RankingConfig
from .ports import KeyValueStore
from .ranking import RankingEngine
from .store import AnalyticsStore

logger = structlog.get_logger(__name__)


class ServiceContainer:
    """Holds the services built once at process start.

    Consumers receive the container (or the services themselves) explicitly;
    there is no module-level instance.
    """

    def __init__(self, settings: Optional[SuggestRankSettings] = None):
        self.settings = settings or SuggestRankSettings()
        self._analytics: Optional[AnalyticsStore] = None
        self._ranking: Optional[RankingEngine] = None

    def initialize(
        self,
        store: KeyValueStore,
        clock: Optional[Callable[[], int]] = None,
    ) -> "ServiceContainer":
        self._analytics = AnalyticsStore(store, settings=self.settings.analytics, clock=clock)
        self._ranking = RankingEngine(
            self._analytics,
            config=RankingConfig(**self.settings.ranking.model_dump()),
            clock=clock,
        )
        logger.info("services_initialized", session_id=self._analytics.session.session_id)
        return self

    @property
    def analytics(self) -> AnalyticsStore:
        if self._analytics is None:
            raise ServiceNotInitializedError("AnalyticsStore requested before initialize()")
        return self._analytics

    @property
    def ranking(self) -> RankingEngine:
        if self._ranking is None:
            raise ServiceNotInitializedError("RankingEngine requested before initialize()")
        return self._ranking
