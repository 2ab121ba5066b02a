import pytest

from suggestrank.adapters import InMemoryKeyValueStore
from suggestrank.config import RankingSettings, SuggestRankSettings
from suggestrank.container import ServiceContainer
from suggestrank.errors import ServiceNotInitializedError, SuggestRankError
from suggestrank.models import Candidate

from conftest import FakeClock


def test_services_unavailable_before_initialize():
    container = ServiceContainer()

    with pytest.raises(ServiceNotInitializedError):
        container.analytics
    with pytest.raises(SuggestRankError):
        container.ranking


def test_initialize_wires_ranking_to_analytics():
    settings = SuggestRankSettings(ranking=RankingSettings(context_weight=0.4))
    container = ServiceContainer(settings).initialize(InMemoryKeyValueStore(), clock=FakeClock())

    assert container.ranking.feedback is container.analytics
    assert container.ranking.get_config().context_weight == 0.4

    container.ranking.record_positive("ls")
    scored = container.ranking.calculate_score(Candidate(id="ls", name="List", command="ls"))
    assert scored.factors.recency == 1.0
