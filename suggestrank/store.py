"""Analytics store: durable event log plus derived aggregates over a key-value port."""

import json
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import structlog

from .analytics import (
    MS_PER_DAY,
    cap_fifo,
    compute_average_response_time,
    compute_command_success_rate,
    compute_context_accuracy_rate,
    compute_summary,
    drop_older_than,
    preference_score,
)
from .config import AnalyticsSettings
from .models import (
    AnalyticsEvent,
    AnalyticsSummary,
    CategoryPreference,
    CommandExecutedPayload,
    CommandResult,
    CommandResultPayload,
    CommandSavedPayload,
    ContextAccuracy,
    ContextAccuracyPayload,
    ContextDetectedPayload,
    EventPayload,
    EventType,
    PAYLOAD_TYPES,
    PerformanceMetric,
    PerformancePayload,
    Session,
    SessionPayload,
    SuggestionPayload,
    SuggestionStat,
    TemplateExecutedPayload,
)
from .ports import KeyValueStore

logger = structlog.get_logger(__name__)

EVENTS_KEY = "suggestrank.analyticsEvents"
SUGGESTION_STATS_KEY = "suggestrank.suggestionStats"
CATEGORY_PREFERENCES_KEY = "suggestrank.categoryPreferences"
PERFORMANCE_KEY = "suggestrank.performanceMetrics"
COMMAND_RESULTS_KEY = "suggestrank.commandResults"
CONTEXT_ACCURACY_KEY = "suggestrank.contextAccuracy"
SESSION_KEY = "suggestrank.currentSession"

_AGGREGATE_KEYS = (
    EVENTS_KEY,
    SUGGESTION_STATS_KEY,
    CATEGORY_PREFERENCES_KEY,
    PERFORMANCE_KEY,
    COMMAND_RESULTS_KEY,
    CONTEXT_ACCURACY_KEY,
)

_SUGGESTION_ACTIONS = {
    EventType.SUGGESTION_SHOWN: "shown",
    EventType.SUGGESTION_CLICKED: "clicked",
    EventType.SUGGESTION_ACCEPTED: "accepted",
    EventType.SUGGESTION_DISMISSED: "dismissed",
}


def now_ms() -> int:
    return int(time.time() * 1000)


def _short_id() -> str:
    return uuid.uuid4().hex[:9]


class AnalyticsStore:
    """Records behavioral events and maintains the aggregates the ranking engine reads.

    Every mutation reads the full aggregate from the key-value store, changes it
    in memory and writes it back. Callers sharing one instance across threads
    must serialize their calls.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[AnalyticsSettings] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.store = store
        self.settings = settings or AnalyticsSettings()
        self.clock = clock or now_ms
        self._timers: Dict[str, int] = {}
        self.session = self._initialize_session()
        self.cleanup_old_data()

    def _initialize_session(self) -> Session:
        now = self.clock()
        raw = self.store.get(SESSION_KEY)
        if raw:
            existing = Session.from_dict(raw)
            if existing.start_time > now - self.settings.session_timeout_ms:
                return existing

        session = Session(session_id=f"session_{now}_{_short_id()}", start_time=now)
        self.store.set(SESSION_KEY, session.to_dict())
        logger.debug("session_started", session_id=session.session_id)
        return session

    def get_session_info(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session.session_id,
            "duration": self.clock() - self.session.start_time,
        }

    def track_session_event(self, event: str, details: Optional[Dict[str, Any]] = None) -> AnalyticsEvent:
        return self.track_event(
            EventType.SESSION_EVENT,
            SessionPayload(
                session_id=self.session.session_id,
                session_duration=self.clock() - self.session.start_time,
                event=event,
                details=dict(details or {}),
            ),
        )

    def track_event(
        self,
        event_type: EventType,
        data: EventPayload,
        response_time_ms: Optional[int] = None,
    ) -> AnalyticsEvent:
        """Append an event, evicting the oldest ones beyond the event cap.

        Raises TypeError when ``data`` is not the payload type for ``event_type``.
        """
        expected = PAYLOAD_TYPES[event_type]
        if not isinstance(data, expected):
            raise TypeError(f"{event_type.value} events take {expected.__name__}, got {type(data).__name__}")

        now = self.clock()
        event = AnalyticsEvent(
            id=f"evt_{now}_{_short_id()}",
            type=event_type,
            timestamp=now,
            data=data,
            response_time_ms=response_time_ms,
        )
        events = self.store.get(EVENTS_KEY, None) or []
        events.append(event.to_dict())
        self.store.set(EVENTS_KEY, cap_fifo(events, self.settings.max_events))
        return event

    def get_events(self) -> List[AnalyticsEvent]:
        return [AnalyticsEvent.from_dict(raw) for raw in self.store.get(EVENTS_KEY, None) or []]

    def track_suggestion_shown(self, suggestion_id: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._track_suggestion(EventType.SUGGESTION_SHOWN, suggestion_id, context)

    def track_suggestion_clicked(self, suggestion_id: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._track_suggestion(EventType.SUGGESTION_CLICKED, suggestion_id, context)

    def track_suggestion_accepted(self, suggestion_id: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._track_suggestion(EventType.SUGGESTION_ACCEPTED, suggestion_id, context)

    def track_suggestion_dismissed(self, suggestion_id: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._track_suggestion(EventType.SUGGESTION_DISMISSED, suggestion_id, context)

    def _track_suggestion(
        self,
        event_type: EventType,
        suggestion_id: str,
        context: Optional[Dict[str, Any]],
    ) -> None:
        self.track_event(event_type, SuggestionPayload(suggestion_id=suggestion_id, context=dict(context or {})))
        self._update_suggestion_stats(suggestion_id, _SUGGESTION_ACTIONS[event_type])

    def _update_suggestion_stats(self, suggestion_id: str, action: str) -> None:
        now = self.clock()
        stats = self.get_suggestion_stats()
        stat = next((s for s in stats if s.suggestion_id == suggestion_id), None)
        if stat is None:
            stat = SuggestionStat(suggestion_id=suggestion_id)
            stats.append(stat)

        # Any interaction counts as the suggestion having been on screen.
        stat.last_shown = now
        setattr(stat, action, getattr(stat, action) + 1)
        if action == "clicked":
            stat.last_clicked = now
        elif action == "accepted":
            stat.last_accepted = now

        self.store.set(SUGGESTION_STATS_KEY, [s.to_dict() for s in stats])

    def get_suggestion_stats(self) -> List[SuggestionStat]:
        return [SuggestionStat.from_dict(raw) for raw in self.store.get(SUGGESTION_STATS_KEY, None) or []]

    def get_suggestion_stat(self, suggestion_id: str) -> Optional[SuggestionStat]:
        return next((s for s in self.get_suggestion_stats() if s.suggestion_id == suggestion_id), None)

    def track_command_executed(
        self,
        command: str,
        category: Optional[str] = None,
        source: Optional[str] = None,
    ) -> None:
        self.track_event(
            EventType.COMMAND_EXECUTED,
            CommandExecutedPayload(command=command, category=category, source=source),
        )
        self._update_category_preference(category or "uncategorized")

    def track_command_saved(self, command: str, category: Optional[str] = None) -> None:
        self.track_event(EventType.COMMAND_SAVED, CommandSavedPayload(command=command, category=category))

    def track_template_executed(
        self,
        template_id: str,
        template_name: str,
        category: Optional[str] = None,
    ) -> None:
        self.track_event(
            EventType.TEMPLATE_EXECUTED,
            TemplateExecutedPayload(template_id=template_id, template_name=template_name, category=category),
        )
        self._update_category_preference(category or "templates")

    def track_context_detected(
        self,
        context_type: str,
        detected: bool,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.track_event(
            EventType.CONTEXT_DETECTED,
            ContextDetectedPayload(context_type=context_type, detected=detected, details=dict(details or {})),
        )

    def _update_category_preference(self, category: str) -> None:
        now = self.clock()
        preferences = self.get_category_preferences()
        pref = next((p for p in preferences if p.category == category), None)
        if pref is None:
            pref = CategoryPreference(category=category)
            preferences.append(pref)

        pref.usage_count += 1
        pref.last_used = now
        # Scored against the lastUsed just written, so the recency term is always full.
        pref.preference_score = preference_score(pref.usage_count, pref.last_used, now)

        self.store.set(CATEGORY_PREFERENCES_KEY, [p.to_dict() for p in preferences])

    def get_category_preferences(self) -> List[CategoryPreference]:
        return [
            CategoryPreference.from_dict(raw) for raw in self.store.get(CATEGORY_PREFERENCES_KEY, None) or []
        ]

    def get_category_preference_score(self, category: str) -> float:
        pref = next((p for p in self.get_category_preferences() if p.category == category), None)
        return pref.preference_score if pref else 0

    def track_command_result(self, result: CommandResult) -> None:
        self.track_event(
            EventType.COMMAND_RESULT,
            CommandResultPayload(
                command_id=result.command_id,
                success=result.success,
                execution_time=result.execution_time,
                error_type=result.error_type,
            ),
        )
        stamped = CommandResult(
            command_id=result.command_id,
            success=result.success,
            execution_time=result.execution_time,
            error_type=result.error_type,
            timestamp=self.clock(),
        )
        results = self.store.get(COMMAND_RESULTS_KEY, None) or []
        results.append(stamped.to_dict())
        self.store.set(COMMAND_RESULTS_KEY, cap_fifo(results, self.settings.max_command_results))

    def get_command_results(self) -> List[CommandResult]:
        return [CommandResult.from_dict(raw) for raw in self.store.get(COMMAND_RESULTS_KEY, None) or []]

    def get_command_success_rate(self) -> float:
        return compute_command_success_rate(self.get_command_results())

    def track_context_accuracy(
        self,
        context_type: str,
        correct: bool,
        correction: Optional[str] = None,
    ) -> None:
        self.track_event(
            EventType.CONTEXT_ACCURACY,
            ContextAccuracyPayload(context_type=context_type, was_correct=correct, user_correction=correction),
        )
        accuracy = ContextAccuracy(
            context_type=context_type,
            correct=correct,
            user_correction=correction,
            timestamp=self.clock(),
        )
        accuracies = self.store.get(CONTEXT_ACCURACY_KEY, None) or []
        accuracies.append(accuracy.to_dict())
        self.store.set(CONTEXT_ACCURACY_KEY, cap_fifo(accuracies, self.settings.max_context_accuracies))

    def get_context_accuracies(self) -> List[ContextAccuracy]:
        return [ContextAccuracy.from_dict(raw) for raw in self.store.get(CONTEXT_ACCURACY_KEY, None) or []]

    def get_context_accuracy_rate(self) -> float:
        return compute_context_accuracy_rate(self.get_context_accuracies())

    def start_timer(self, operation_id: str) -> None:
        self._timers[operation_id] = self.clock()

    def end_timer(
        self,
        operation_id: str,
        success: bool = True,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[int]:
        """Stop a timer and record its metric. Returns ``None`` for unknown timers."""
        start_time = self._timers.pop(operation_id, None)
        if start_time is None:
            logger.warning("timer_not_found", operation=operation_id)
            return None

        end_time = self.clock()
        duration = end_time - start_time
        self.track_performance_metric(
            PerformanceMetric(
                operation=operation_id,
                start_time=start_time,
                end_time=end_time,
                duration=duration,
                success=success,
                metadata=metadata,
            )
        )
        return duration

    def track_performance_metric(self, metric: PerformanceMetric) -> None:
        self.track_event(
            EventType.PERFORMANCE_METRIC,
            PerformancePayload(
                operation=metric.operation,
                duration=metric.duration,
                success=metric.success,
                metadata=dict(metric.metadata or {}),
            ),
            response_time_ms=metric.duration,
        )
        metrics = self.store.get(PERFORMANCE_KEY, None) or []
        metrics.append(metric.to_dict())
        self.store.set(PERFORMANCE_KEY, cap_fifo(metrics, self.settings.max_performance_metrics))

    def get_performance_metrics(self) -> List[PerformanceMetric]:
        return [PerformanceMetric.from_dict(raw) for raw in self.store.get(PERFORMANCE_KEY, None) or []]

    def get_average_response_time(self, operation: Optional[str] = None) -> float:
        return compute_average_response_time(self.get_performance_metrics(), operation)

    def get_analytics_summary(self, days: int = 30) -> AnalyticsSummary:
        return compute_summary(
            events=self.get_events(),
            preferences=self.get_category_preferences(),
            stats=self.get_suggestion_stats(),
            metrics=self.get_performance_metrics(),
            results=self.get_command_results(),
            accuracies=self.get_context_accuracies(),
            days=days,
            now=self.clock(),
        )

    def cleanup_old_data(self) -> int:
        """Drop events and performance metrics older than the retention horizon.

        Returns the number of removed records.
        """
        cutoff = self.clock() - self.settings.retention_days * MS_PER_DAY
        removed = 0

        events = self.store.get(EVENTS_KEY, None) or []
        kept_events = drop_older_than(events, cutoff, lambda raw: raw["timestamp"])
        if len(kept_events) != len(events):
            self.store.set(EVENTS_KEY, kept_events)
            removed += len(events) - len(kept_events)
            logger.info("analytics_cleanup", kind="events", removed=len(events) - len(kept_events))

        metrics = self.store.get(PERFORMANCE_KEY, None) or []
        kept_metrics = drop_older_than(metrics, cutoff, lambda raw: raw["startTime"])
        if len(kept_metrics) != len(metrics):
            self.store.set(PERFORMANCE_KEY, kept_metrics)
            removed += len(metrics) - len(kept_metrics)
            logger.info("analytics_cleanup", kind="performance_metrics", removed=len(metrics) - len(kept_metrics))

        return removed

    def clear_all_data(self) -> None:
        for key in _AGGREGATE_KEYS:
            self.store.set(key, [])
        logger.info("analytics_cleared")

    def export_data(self) -> str:
        """Serialize a read-only snapshot of every aggregate as indented JSON."""
        data = {
            "exportDate": datetime.fromtimestamp(self.clock() / 1000, tz=timezone.utc).isoformat(),
            "summary": self.get_analytics_summary(self.settings.retention_days).to_dict(),
            "categoryPreferences": [p.to_dict() for p in self.get_category_preferences()],
            "suggestionStats": [s.to_dict() for s in self.get_suggestion_stats()],
            "commandResults": [r.to_dict() for r in self.get_command_results()],
            "contextAccuracies": [a.to_dict() for a in self.get_context_accuracies()],
            "retentionDays": self.settings.retention_days,
        }
        return json.dumps(data, indent=2)
