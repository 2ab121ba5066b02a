import pytest

from suggestrank.adapters import InMemoryKeyValueStore
from suggestrank.config import AnalyticsSettings
from suggestrank.store import AnalyticsStore

NOW = 1_760_000_000_000
DAY_MS = 24 * 60 * 60 * 1000


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def analytics(kv, clock):
    return AnalyticsStore(kv, settings=AnalyticsSettings(), clock=clock)
