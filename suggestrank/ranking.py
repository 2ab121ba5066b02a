"""Weighted-sum ranking of candidate commands.

Five bounded factors are combined into one score:

- frequency: how often the command has been accepted
- recency: how recently it was accepted
- category: affinity between the item category and the current one
- context: whether the command appears among the caller's recent commands
- analytics: historical acceptance rate of the suggestion

The weights live in :class:`RankingConfig` and are applied as a plain weighted
sum, so totals only stay within [0, 1] while the weights sum to at most 1.
"""

import json
import math
import re
from dataclasses import fields
from typing import Callable, List, Optional, Sequence

import structlog

from .analytics import MS_PER_DAY
from .config import RankingSettings
from .models import Candidate, Insights, RankingConfig, RankingContext, ScoredItem, ScoreFactors, SuggestionStat
from .ports import SuggestionFeedback
from .store import now_ms

logger = structlog.get_logger(__name__)

FLOOR_SCORE = 0.1
NEUTRAL_SCORE = 0.5
FREQUENCY_SATURATION = 100
RECENCY_DECAY_DAYS = 30
PARTIAL_CONTEXT_SCORE = 0.7

_CATEGORY_SPLIT = re.compile(r"[-_\s]")
_WEIGHT_NAMES = tuple(f.name for f in fields(RankingConfig))


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _round2(value: float) -> float:
    # Half-up rounding.
    return math.floor(value * 100 + 0.5) / 100


def frequency_score(stat: Optional[SuggestionStat]) -> float:
    """0.1 with no acceptances, rising linearly to 1.0 at 100 acceptances."""
    if stat is None or stat.accepted == 0:
        return FLOOR_SCORE
    normalized = min(1, stat.accepted / FREQUENCY_SATURATION)
    return FLOOR_SCORE + normalized * (1 - FLOOR_SCORE)


def recency_score(stat: Optional[SuggestionStat], now: int) -> float:
    """1.0 when accepted just now, decaying linearly to 0.1 after 30 days."""
    if stat is None or not stat.last_accepted:
        return FLOOR_SCORE
    days_since = (now - stat.last_accepted) / MS_PER_DAY
    return max(FLOOR_SCORE, 1 - days_since / RECENCY_DECAY_DAYS)


def category_score(item_category: Optional[str], current_category: Optional[str]) -> float:
    if not item_category or not current_category:
        return NEUTRAL_SCORE

    if item_category.lower() == current_category.lower():
        return 1.0

    item_words = [word for word in _CATEGORY_SPLIT.split(item_category.lower()) if word]
    current_words = [word for word in _CATEGORY_SPLIT.split(current_category.lower()) if word]
    intersection = [word for word in item_words if word in current_words]
    if intersection:
        return NEUTRAL_SCORE + len(intersection) / max(len(item_words), len(current_words)) * 0.5

    return FLOOR_SCORE


def context_score(command: str, context: Optional[RankingContext]) -> float:
    if context is None or context.recent_commands is None:
        return NEUTRAL_SCORE

    if command in context.recent_commands:
        return 1.0

    verb = command.split(" ")[0]
    if any(recent.startswith(verb) for recent in context.recent_commands):
        return PARTIAL_CONTEXT_SCORE

    return NEUTRAL_SCORE


def analytics_score(stat: Optional[SuggestionStat]) -> float:
    """Acceptance rate doubled, so a 50% rate already saturates at 1.0."""
    if stat is None or stat.shown == 0:
        return NEUTRAL_SCORE
    return min(1, stat.accepted / stat.shown * 2)


class RankingEngine:
    """Scores and ranks candidates and feeds user feedback back to analytics."""

    def __init__(
        self,
        feedback: SuggestionFeedback,
        config: Optional[RankingConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.feedback = feedback
        self.clock = clock or now_ms
        self._config = config or RankingConfig(**RankingSettings().model_dump())

    def calculate_score(self, item: Candidate, context: Optional[RankingContext] = None) -> ScoredItem:
        # Frequency and recency are keyed by the command text, analytics by the item id.
        command_stat = self.feedback.get_suggestion_stat(item.command)
        item_stat = self.feedback.get_suggestion_stat(item.id)
        current_category = context.current_category if context else None

        frequency = _clamp(frequency_score(command_stat))
        recency = _clamp(recency_score(command_stat, self.clock()))
        category = _clamp(category_score(item.category, current_category))
        ctx = _clamp(context_score(item.command, context))
        analytics = _clamp(analytics_score(item_stat))

        config = self._config
        total = (
            frequency * config.frequency_weight
            + recency * config.recency_weight
            + category * config.category_weight
            + ctx * config.context_weight
            + analytics * config.analytics_weight
        )

        return ScoredItem(
            id=item.id,
            name=item.name,
            command=item.command,
            category=item.category,
            score=_round2(total),
            factors=ScoreFactors(
                frequency=_round2(frequency),
                recency=_round2(recency),
                category=_round2(category),
                context=_round2(ctx),
                analytics=_round2(analytics),
            ),
        )

    def score_and_sort(
        self,
        items: Sequence[Candidate],
        context: Optional[RankingContext] = None,
    ) -> List[ScoredItem]:
        scored = [self.calculate_score(item, context) for item in items]
        return sorted(scored, key=lambda scored_item: scored_item.score, reverse=True)

    def get_top_suggestions(
        self,
        items: Sequence[Candidate],
        n: int = 5,
        context: Optional[RankingContext] = None,
    ) -> List[ScoredItem]:
        return self.score_and_sort(items, context)[: max(n, 0)]

    def get_insights(self, command: str) -> Insights:
        """Summarize usage of one command from its frequency and recency alone."""
        stat = self.feedback.get_suggestion_stat(command)
        frequency = frequency_score(stat)
        recency = recency_score(stat, self.clock())

        factors = []
        if frequency > 0.7:
            factors.append("Frequently used")
        elif frequency > 0.4:
            factors.append("Occasionally used")
        else:
            factors.append("Rarely used")

        if recency > 0.7:
            factors.append("Recently used")
        elif recency < 0.3:
            factors.append("Not used recently")

        if frequency > 0.7 and recency > 0.7:
            recommendation = "Highly recommended - frequently and recently used"
        elif frequency > 0.5:
            recommendation = "Good suggestion based on usage patterns"
        elif recency > 0.7:
            recommendation = "Recently used - may be relevant"
        else:
            recommendation = "Standard suggestion - limited usage data"

        return Insights(
            score=int(math.floor((frequency + recency) * 50 + 0.5)),
            factors=factors,
            recommendation=recommendation,
        )

    def record_positive(self, suggestion_id: str) -> None:
        self.feedback.track_suggestion_accepted(suggestion_id)
        logger.debug("feedback_recorded", suggestion_id=suggestion_id, positive=True)

    def record_negative(self, suggestion_id: str) -> None:
        self.feedback.track_suggestion_dismissed(suggestion_id)
        logger.debug("feedback_recorded", suggestion_id=suggestion_id, positive=False)

    def get_config(self) -> RankingConfig:
        return self._config

    def update_config(self, **updates: float) -> RankingConfig:
        unknown = set(updates) - set(_WEIGHT_NAMES)
        if unknown:
            raise ValueError(f"Unknown ranking weights: {', '.join(sorted(unknown))}")
        self._config = self._config.merged(**updates)
        return self._config

    def reset_config(self) -> None:
        self._config = RankingConfig()

    def export_config(self) -> str:
        return json.dumps(self._config.to_dict(), indent=2)

    def import_config(self, raw: str) -> bool:
        """Replace the config with ``raw`` merged over the defaults.

        Returns False and keeps the current config when ``raw`` is not a JSON
        object of numeric weights.
        """
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("config_import_failed", error=str(exc))
            return False

        if not isinstance(parsed, dict):
            logger.warning("config_import_failed", error="expected a JSON object")
            return False

        candidate = RankingConfig.from_dict(parsed)
        for name in _WEIGHT_NAMES:
            value = getattr(candidate, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logger.warning("config_import_failed", error=f"non-numeric weight {name}")
                return False

        self._config = candidate
        return True
