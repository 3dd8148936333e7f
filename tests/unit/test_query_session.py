"""Unit tests for the query session lifecycle."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from launcher_search.domain.catalog import CatalogEntry, ItemKind
from launcher_search.domain.search import NO_FILTERS, OrderedResults, SearchFilters
from launcher_search.search.filters import FilterEngine
from launcher_search.search.index import SearchIndex
from launcher_search.search.ranking import RankingEngine
from launcher_search.search.scratch import ScratchBuffers
from launcher_search.service_layer.query_session import GenerationClock, SearchPipeline, SessionState


@pytest.fixture
def view(sample_entries):
    return SearchIndex.build(sample_entries).snapshot()


@pytest.fixture
def pipeline(clock):
    return SearchPipeline(filter_engine=FilterEngine(), ranking=RankingEngine(clock=clock))


class InterruptingRanking(RankingEngine):
    """Issues a newer query after scoring ``after`` items."""

    def __init__(self, generations: GenerationClock, after: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.generations = generations
        self.after = after
        self.scored = 0

    def rank(self, item, pattern, matcher=None, *, now=None):
        self.scored += 1
        if self.scored == self.after:
            self.generations.issue("newer", NO_FILTERS)
        return super().rank(item, pattern, matcher, now=now)


@pytest.mark.unit
class TestGenerationClock:
    def test_issue_increments_generation(self):
        generations = GenerationClock()
        first = generations.issue("a", NO_FILTERS)
        second = generations.issue("ab", NO_FILTERS)

        assert (first.generation, second.generation) == (1, 2)
        assert generations.current == 2
        assert generations.active is second

    def test_issue_cancels_previous(self):
        generations = GenerationClock()
        first = generations.issue("a", NO_FILTERS)
        generations.issue("ab", NO_FILTERS)

        assert first.state is SessionState.CANCELLED
        assert first.cancelled
        assert first.superseded

    def test_stale_commit_rejected(self):
        generations = GenerationClock()
        first = generations.issue("a", NO_FILTERS)
        generations.issue("ab", NO_FILTERS)
        results = OrderedResults(query="a", generation=1, index_version=1)

        assert first.commit(results) is None
        assert first.results is None


@pytest.mark.unit
class TestQuerySession:
    def test_new_session_is_idle(self):
        session = GenerationClock().issue("clip", NO_FILTERS)

        assert session.state is SessionState.IDLE

    def test_run_commits(self, view, pipeline):
        session = GenerationClock().issue("clip", NO_FILTERS)
        results = session.run(view, pipeline, ScratchBuffers())

        assert session.state is SessionState.COMMITTED
        assert session.results is results
        assert results.generation == 1
        assert results.index_version == view.version
        assert results.item_ids == ["clipboard-history"]

    def test_superseded_session_delivers_nothing(self, view, pipeline):
        generations = GenerationClock()
        stale = generations.issue("c", NO_FILTERS)
        fresh = generations.issue("cl", NO_FILTERS)

        assert stale.run(view, pipeline, ScratchBuffers()) is None
        assert stale.state is SessionState.CANCELLED
        assert fresh.run(view, pipeline, ScratchBuffers()) is not None

    def test_cancelled_mid_scoring(self, view, clock):
        generations = GenerationClock()
        ranking = InterruptingRanking(generations, after=2, clock=clock)
        pipeline = SearchPipeline(filter_engine=FilterEngine(), ranking=ranking, cancel_check_interval=1)
        session = generations.issue("", NO_FILTERS)

        assert session.run(view, pipeline, ScratchBuffers()) is None
        assert session.state is SessionState.CANCELLED
        # Scoring stopped at the next check instead of visiting every item
        assert ranking.scored == 2
        assert generations.active.generation == 2

    def test_empty_query_returns_every_candidate(self, view, pipeline):
        session = GenerationClock().issue("", NO_FILTERS)
        results = session.run(view, pipeline, ScratchBuffers())

        assert len(results) == len(view)
        # Items without signals fall back to the shorter name
        assert results.item_ids == [
            "clipboard-history",
            "toggle-dark-mode",
            "github",
            "developer-tools",
            "window-management",
        ]

    def test_whitespace_query_is_empty(self, view, pipeline):
        session = GenerationClock().issue("   ", NO_FILTERS)

        assert len(session.run(view, pipeline, ScratchBuffers())) == len(view)

    def test_filters_applied(self, view, pipeline):
        session = GenerationClock().issue("", SearchFilters(kinds=frozenset({ItemKind.CATEGORY})))

        assert session.run(view, pipeline, ScratchBuffers()).item_ids == ["developer-tools"]

    def test_max_results(self, view, clock):
        pipeline = SearchPipeline(filter_engine=FilterEngine(), ranking=RankingEngine(clock=clock), max_results=2)
        session = GenerationClock().issue("", NO_FILTERS)

        assert len(session.run(view, pipeline, ScratchBuffers())) == 2

    def test_facet_counts_cover_truncated_set(self, view, clock):
        pipeline = SearchPipeline(filter_engine=FilterEngine(), ranking=RankingEngine(clock=clock), max_results=2)
        results = GenerationClock().issue("", NO_FILTERS).run(view, pipeline, ScratchBuffers())

        assert len(results) == 2
        assert results.kind_counts == {"extension": 3, "command": 1, "category": 1}
        assert results.category_counts == {"productivity": 1, "system": 2, "developer tools": 1}

    def test_min_score_drops_weak_matches(self, view, clock):
        ranking = RankingEngine(clock=clock)
        lenient = SearchPipeline(filter_engine=FilterEngine(), ranking=ranking, min_score=1.0)
        strict = SearchPipeline(filter_engine=FilterEngine(), ranking=ranking, min_score=1000.0)

        assert GenerationClock().issue("clip", NO_FILTERS).run(view, lenient, ScratchBuffers()).item_ids == [
            "clipboard-history"
        ]
        results = GenerationClock().issue("clip", NO_FILTERS).run(view, strict, ScratchBuffers())
        assert len(results) == 0
        assert results.kind_counts == {}

    def test_min_score_ignored_for_empty_query(self, view, clock):
        pipeline = SearchPipeline(filter_engine=FilterEngine(), ranking=RankingEngine(clock=clock), min_score=1000.0)

        assert len(GenerationClock().issue("", NO_FILTERS).run(view, pipeline, ScratchBuffers())) == len(view)

    def test_candidate_count(self, view, pipeline):
        session = GenerationClock().issue("gh", NO_FILTERS)
        session.run(view, pipeline, ScratchBuffers())

        assert 0 < session.candidate_count < len(view)

    def test_parallel_scoring_matches_serial(self, clock):
        entries = [
            CatalogEntry(
                id=f"ext-{number:03d}", kind=ItemKind.EXTENSION, name=f"Extension {number}", usage_count=number
            )
            for number in range(200)
        ]
        view = SearchIndex.build(entries).snapshot()
        ranking = RankingEngine(clock=clock)

        serial = GenerationClock().issue("ext 1", NO_FILTERS)
        serial_results = serial.run(view, SearchPipeline(FilterEngine(), ranking), ScratchBuffers())

        with ThreadPoolExecutor(max_workers=4) as executor:
            pipeline = SearchPipeline(
                FilterEngine(), ranking, cancel_check_interval=8, parallel_threshold=10, executor=executor, workers=4
            )
            parallel = GenerationClock().issue("ext 1", NO_FILTERS)
            parallel_results = parallel.run(view, pipeline, ScratchBuffers())

        assert parallel_results.results == serial_results.results
        assert len(parallel_results) > 0
