import json

import pytest

from suggestrank.adapters import InMemoryKeyValueStore
from suggestrank.config import AnalyticsSettings
from suggestrank.models import (
    CommandExecutedPayload,
    CommandResult,
    CommandSavedPayload,
    EventType,
    PerformanceMetric,
    SuggestionPayload,
    TemplateExecutedPayload,
)
from suggestrank.store import (
    COMMAND_RESULTS_KEY,
    EVENTS_KEY,
    PERFORMANCE_KEY,
    SESSION_KEY,
    AnalyticsStore,
)

from conftest import DAY_MS, NOW, FakeClock


def test_track_event_assigns_unique_ids_and_timestamps(analytics, clock):
    analytics.track_command_saved("ls -la")
    clock.advance(5)
    analytics.track_command_saved("git status", category="git")

    events = analytics.get_events()
    assert [e.type for e in events] == [EventType.COMMAND_SAVED, EventType.COMMAND_SAVED]
    assert len({e.id for e in events}) == 2
    assert [e.timestamp for e in events] == [NOW, NOW + 5]
    assert events[1].data.category == "git"


def test_event_log_is_capped_fifo(kv, clock):
    analytics = AnalyticsStore(kv, settings=AnalyticsSettings(max_events=3), clock=clock)

    for i in range(5):
        analytics.track_context_detected(f"ctx{i}", detected=True)

    events = analytics.get_events()
    assert len(events) == 3
    assert [e.data.context_type for e in events] == ["ctx2", "ctx3", "ctx4"]


def test_track_event_rejects_mismatched_payload(analytics):
    analytics.track_suggestion_shown("s1")

    with pytest.raises(TypeError):
        analytics.track_event(EventType.SUGGESTION_SHOWN, CommandSavedPayload(command="ls"))

    assert len(analytics.get_events()) == 1
    assert analytics.get_analytics_summary(7).total_suggestions_shown == 1


def test_suggestion_stats_follow_interactions(analytics, clock):
    analytics.track_suggestion_shown("s1", {"source": "quick-pick"})
    clock.advance(1000)
    analytics.track_suggestion_clicked("s1")
    clock.advance(1000)
    analytics.track_suggestion_accepted("s1")
    analytics.track_suggestion_dismissed("s2")

    stat = analytics.get_suggestion_stat("s1")
    assert (stat.shown, stat.clicked, stat.accepted, stat.dismissed) == (1, 1, 1, 0)
    assert stat.last_clicked == NOW + 1000
    assert stat.last_accepted == NOW + 2000
    assert stat.last_shown == NOW + 2000

    other = analytics.get_suggestion_stat("s2")
    assert other.dismissed == 1
    assert other.last_accepted is None
    assert analytics.get_suggestion_stat("missing") is None

    shown_event = analytics.get_events()[0]
    assert shown_event.data == SuggestionPayload(suggestion_id="s1", context={"source": "quick-pick"})


def test_command_executed_updates_category_preference(analytics):
    analytics.track_command_executed("npm test", category="npm", source="history")
    analytics.track_command_executed("npm run build", category="npm")
    analytics.track_command_executed("make")

    prefs = {p.category: p for p in analytics.get_category_preferences()}
    assert prefs["npm"].usage_count == 2
    assert prefs["npm"].last_used == NOW
    assert prefs["npm"].preference_score == pytest.approx(2 * 0.7 + 30)
    assert prefs["uncategorized"].usage_count == 1
    assert analytics.get_category_preference_score("npm") == pytest.approx(31.4)
    assert analytics.get_category_preference_score("docker") == 0

    event = analytics.get_events()[0]
    assert event.data == CommandExecutedPayload(command="npm test", category="npm", source="history")


def test_template_executed_defaults_to_templates_category(analytics):
    analytics.track_template_executed("tpl-1", "Docker cleanup")

    assert [p.category for p in analytics.get_category_preferences()] == ["templates"]
    event = analytics.get_events()[0]
    assert event.data == TemplateExecutedPayload(template_id="tpl-1", template_name="Docker cleanup")


def test_command_success_rate(analytics, clock):
    analytics.track_command_result(CommandResult(command_id="a", success=True, execution_time=120))
    clock.advance(10)
    analytics.track_command_result(
        CommandResult(command_id="b", success=False, execution_time=80, error_type="not_found")
    )

    assert analytics.get_command_success_rate() == 50
    results = analytics.get_command_results()
    assert [r.timestamp for r in results] == [NOW, NOW + 10]
    assert results[1].error_type == "not_found"


def test_command_results_are_capped(kv, clock):
    analytics = AnalyticsStore(kv, settings=AnalyticsSettings(max_command_results=2), clock=clock)

    for name in ("a", "b", "c"):
        analytics.track_command_result(CommandResult(command_id=name, success=True, execution_time=1))

    assert [r.command_id for r in analytics.get_command_results()] == ["b", "c"]


def test_context_accuracy_rate_and_cap(kv, clock):
    analytics = AnalyticsStore(kv, settings=AnalyticsSettings(max_context_accuracies=3), clock=clock)

    analytics.track_context_accuracy("node", True)
    analytics.track_context_accuracy("python", False, correction="poetry")
    analytics.track_context_accuracy("node", True)
    analytics.track_context_accuracy("go", True)

    accuracies = analytics.get_context_accuracies()
    assert [a.context_type for a in accuracies] == ["python", "node", "go"]
    assert accuracies[0].user_correction == "poetry"
    assert analytics.get_context_accuracy_rate() == pytest.approx(200 / 3)


def test_end_timer_without_start_returns_none(analytics):
    assert analytics.end_timer("never-started") is None
    assert analytics.get_performance_metrics() == []


def test_timer_records_performance_metric(analytics, clock):
    analytics.start_timer("rank")
    clock.advance(25)

    assert analytics.end_timer("rank", metadata={"items": 4}) == 25
    assert analytics.end_timer("rank") is None

    metric = analytics.get_performance_metrics()[0]
    assert (metric.start_time, metric.end_time, metric.duration) == (NOW, NOW + 25, 25)
    assert metric.metadata == {"items": 4}
    assert analytics.get_average_response_time() == 25
    assert analytics.get_average_response_time("other") == 0

    event = analytics.get_events()[-1]
    assert event.type is EventType.PERFORMANCE_METRIC
    assert event.response_time_ms == 25


def test_performance_metrics_are_capped(kv, clock):
    analytics = AnalyticsStore(kv, settings=AnalyticsSettings(max_performance_metrics=2), clock=clock)

    for i, operation in enumerate(("rank", "detect", "export")):
        analytics.track_performance_metric(
            PerformanceMetric(operation=operation, start_time=NOW + i, end_time=NOW + i + 5, duration=5, success=True)
        )

    assert [m.operation for m in analytics.get_performance_metrics()] == ["detect", "export"]


def test_analytics_summary_acceptance_rate(analytics):
    analytics.track_suggestion_shown("s1")
    analytics.track_suggestion_shown("s1")
    analytics.track_suggestion_accepted("s1")

    summary = analytics.get_analytics_summary(7)

    assert summary.total_suggestions_shown == 2
    assert summary.acceptance_rate == 50
    assert summary.click_through_rate == 0
    assert summary.top_suggestions[0].suggestion_id == "s1"
    assert summary.period_end - summary.period_start == 7 * DAY_MS


def test_cleanup_drops_events_past_retention():
    old_event = {
        "id": "evt_old",
        "type": "suggestion_shown",
        "timestamp": NOW - 91 * DAY_MS,
        "data": {"suggestionId": "s1", "context": {}},
        "responseTimeMs": None,
    }
    recent_event = dict(old_event, id="evt_recent", timestamp=NOW - 89 * DAY_MS)
    old_metric = {
        "operation": "rank",
        "startTime": NOW - 100 * DAY_MS,
        "endTime": NOW - 100 * DAY_MS + 5,
        "duration": 5,
        "success": True,
        "metadata": None,
    }
    old_result = {
        "commandId": "a",
        "success": True,
        "executionTime": 1,
        "errorType": None,
        "timestamp": NOW - 200 * DAY_MS,
    }
    kv = InMemoryKeyValueStore(
        {
            EVENTS_KEY: [old_event, recent_event],
            PERFORMANCE_KEY: [old_metric],
            COMMAND_RESULTS_KEY: [old_result],
        }
    )

    analytics = AnalyticsStore(kv, clock=FakeClock())

    assert [e.id for e in analytics.get_events()] == ["evt_recent"]
    assert analytics.get_performance_metrics() == []
    assert len(analytics.get_command_results()) == 1
    assert analytics.cleanup_old_data() == 0


def test_session_is_reused_within_timeout(kv):
    clock = FakeClock()
    first = AnalyticsStore(kv, clock=clock)
    clock.advance(10 * 60 * 1000)
    second = AnalyticsStore(kv, clock=clock)
    clock.advance(2 * 60 * 60 * 1000)
    third = AnalyticsStore(kv, clock=clock)

    assert second.session.session_id == first.session.session_id
    assert third.session.session_id != first.session.session_id
    assert kv.get(SESSION_KEY)["sessionId"] == third.session.session_id
    assert third.get_session_info() == {"sessionId": third.session.session_id, "duration": 0}


def test_track_session_event(analytics, clock):
    clock.advance(300)
    analytics.track_session_event("panel_opened", {"view": "tree"})

    event = analytics.get_events()[0]
    assert event.type is EventType.SESSION_EVENT
    assert event.data.session_id == analytics.session.session_id
    assert event.data.session_duration == 300
    assert event.data.details == {"view": "tree"}


def test_clear_all_data(analytics):
    analytics.track_suggestion_shown("s1")
    analytics.track_command_executed("ls")
    analytics.track_command_result(CommandResult(command_id="ls", success=True, execution_time=1))
    analytics.track_context_accuracy("shell", True)
    analytics.start_timer("rank")
    analytics.end_timer("rank")

    analytics.clear_all_data()

    assert analytics.get_events() == []
    assert analytics.get_suggestion_stats() == []
    assert analytics.get_category_preferences() == []
    assert analytics.get_command_results() == []
    assert analytics.get_context_accuracies() == []
    assert analytics.get_performance_metrics() == []


def test_export_data_document(analytics):
    analytics.track_suggestion_shown("s1")
    analytics.track_command_executed("docker ps", category="docker")
    analytics.track_context_accuracy("docker", True)

    exported = json.loads(analytics.export_data())

    assert set(exported) == {
        "exportDate",
        "summary",
        "categoryPreferences",
        "suggestionStats",
        "commandResults",
        "contextAccuracies",
        "retentionDays",
    }
    assert exported["retentionDays"] == 90
    assert exported["exportDate"].startswith("2025-10-09")
    assert exported["summary"]["totalSuggestionsShown"] == 1
    assert exported["summary"]["contextAccuracyRate"] == 100
    assert exported["categoryPreferences"][0]["category"] == "docker"
    assert exported["suggestionStats"][0]["suggestionId"] == "s1"
