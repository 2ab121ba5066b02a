from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from suggestrank.adapters import InMemoryKeyValueStore, SQLAlchemyKeyValueStore
from suggestrank.store import AnalyticsStore

from conftest import FakeClock


def _sqlite_store():
    engine = create_engine("sqlite://")
    return SQLAlchemyKeyValueStore(Session(engine))


def test_in_memory_store_isolates_values():
    store = InMemoryKeyValueStore()
    value = [{"a": 1}]

    store.set("k", value)
    value.append({"b": 2})
    read = store.get("k")
    read.append({"c": 3})

    assert store.get("k") == [{"a": 1}]
    assert store.get("missing", []) == []
    assert store.get("missing") is None


def test_sqlalchemy_store_get_set_overwrite():
    store = _sqlite_store()

    assert store.get("suggestrank.analyticsEvents", []) == []

    store.set("suggestrank.analyticsEvents", [{"id": "evt_1"}])
    store.set("suggestrank.analyticsEvents", [{"id": "evt_1"}, {"id": "evt_2"}])
    store.set("suggestrank.currentSession", {"sessionId": "s", "startTime": 1})

    assert store.get("suggestrank.analyticsEvents") == [{"id": "evt_1"}, {"id": "evt_2"}]
    assert store.get("suggestrank.currentSession") == {"sessionId": "s", "startTime": 1}


def test_analytics_store_over_sqlalchemy():
    analytics = AnalyticsStore(_sqlite_store(), clock=FakeClock())

    analytics.track_suggestion_shown("s1")
    analytics.track_suggestion_accepted("s1")
    analytics.track_command_executed("make test", category="make")

    assert analytics.get_suggestion_stat("s1").accepted == 1
    assert analytics.get_analytics_summary().acceptance_rate == 100
    assert analytics.get_category_preferences()[0].category == "make"
