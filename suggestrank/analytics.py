"""Pure analytics functions over events and aggregates."""

from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from .models import (
    AnalyticsEvent,
    AnalyticsSummary,
    CategoryPreference,
    CommandResult,
    ContextAccuracy,
    EventType,
    PerformanceMetric,
    SuggestionStat,
)

MS_PER_DAY = 24 * 60 * 60 * 1000
PREFERENCE_DECAY_DAYS = 30
TOP_N = 10

T = TypeVar("T")


def cap_fifo(items: List[T], max_items: int) -> List[T]:
    """Drop the oldest entries so that at most ``max_items`` remain."""
    if len(items) > max_items:
        return items[len(items) - max_items:]
    return items


def drop_older_than(
    items: Iterable[T],
    cutoff: int,
    timestamp_of: Callable[[T], int],
) -> List[T]:
    """Keep entries whose timestamp is at or after ``cutoff``."""
    return [item for item in items if timestamp_of(item) >= cutoff]


def preference_score(usage_count: int, last_used: int, now: int) -> float:
    """Usage-weighted category score with a 30-day recency term."""
    days_since_last_use = (now - last_used) / MS_PER_DAY
    recency = max(0.0, 1 - days_since_last_use / PREFERENCE_DECAY_DAYS)
    return usage_count * 0.7 + recency * 30


def percentage(part: int, total: int) -> float:
    return part / total * 100 if total > 0 else 0


def compute_command_success_rate(results: Sequence[CommandResult]) -> float:
    return percentage(sum(1 for result in results if result.success), len(results))


def compute_context_accuracy_rate(accuracies: Sequence[ContextAccuracy]) -> float:
    return percentage(sum(1 for accuracy in accuracies if accuracy.correct), len(accuracies))


def compute_average_response_time(
    metrics: Iterable[PerformanceMetric],
    operation: Optional[str] = None,
) -> float:
    """Mean duration of performance metrics, optionally for one operation."""
    durations = [
        metric.duration for metric in metrics if operation is None or metric.operation == operation
    ]
    return sum(durations) / len(durations) if durations else 0


def top_categories(preferences: Iterable[CategoryPreference], limit: int = TOP_N) -> List[CategoryPreference]:
    return sorted(preferences, key=lambda pref: pref.preference_score, reverse=True)[:limit]


def top_suggestions(stats: Iterable[SuggestionStat], limit: int = TOP_N) -> List[SuggestionStat]:
    return sorted(stats, key=lambda stat: stat.accepted + stat.clicked, reverse=True)[:limit]


def compute_summary(
    events: Iterable[AnalyticsEvent],
    preferences: Iterable[CategoryPreference],
    stats: Iterable[SuggestionStat],
    metrics: Iterable[PerformanceMetric],
    results: Sequence[CommandResult],
    accuracies: Sequence[ContextAccuracy],
    days: int,
    now: int,
) -> AnalyticsSummary:
    """Compute the rolled-up analytics summary for a trailing window.

    Only the event counts are windowed; aggregates and bounded logs are
    summarized in full.
    """
    cutoff = now - days * MS_PER_DAY
    recent = [event for event in events if event.timestamp >= cutoff]

    shown = sum(1 for event in recent if event.type is EventType.SUGGESTION_SHOWN)
    clicked = sum(1 for event in recent if event.type is EventType.SUGGESTION_CLICKED)
    accepted = sum(1 for event in recent if event.type is EventType.SUGGESTION_ACCEPTED)

    return AnalyticsSummary(
        total_suggestions_shown=shown,
        total_suggestions_clicked=clicked,
        total_suggestions_accepted=accepted,
        acceptance_rate=percentage(accepted, shown),
        click_through_rate=percentage(clicked, shown),
        top_categories=top_categories(preferences),
        top_suggestions=top_suggestions(stats),
        average_response_time=compute_average_response_time(metrics),
        command_success_rate=compute_command_success_rate(results),
        context_accuracy_rate=compute_context_accuracy_rate(accuracies),
        period_start=cutoff,
        period_end=now,
    )
