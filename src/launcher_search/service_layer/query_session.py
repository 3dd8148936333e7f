"""Lifecycle of a single logical query.

Every issued query gets a :class:`QuerySession` carrying the next generation
number. Issuing a newer query cancels the previous session; scoring checks
the session cooperatively (before scoring and every ``cancel_check_interval``
items) and a session only commits if no later generation was issued by the
time its results are ready.

State machine::

    idle -> pending -> committed
                    -> cancelled
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Executor
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
import logging
import threading

from launcher_search.domain.search import MatchResult, OrderedResults, SearchFilters
from launcher_search.search.filters import FilterEngine
from launcher_search.search.fuzzy import PreparedPattern, prepare_pattern
from launcher_search.search.index import IndexView
from launcher_search.search.ranking import RankingEngine
from launcher_search.search.scratch import ScratchBuffers


logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SearchPipeline:
    """Collaborators and tunables a session runs with."""

    filter_engine: FilterEngine
    ranking: RankingEngine
    cancel_check_interval: int = 64
    parallel_threshold: int = 2048
    max_results: int | None = None
    min_score: float = 0.0
    executor: Executor | None = None
    workers: int = 1


class GenerationClock:
    """Issues generations and arbitrates commits against the newest one."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = 0
        self._active: QuerySession | None = None

    @property
    def current(self) -> int:
        return self._current

    @property
    def active(self) -> QuerySession | None:
        return self._active

    def issue(self, query: str, filters: SearchFilters) -> QuerySession:
        """Start a new session, cancelling whichever one is still in flight."""
        with self._lock:
            self._current += 1
            previous = self._active
            session = QuerySession(query, filters, self._current, self)
            self._active = session
        if previous is not None and previous.cancel():
            logger.debug("Query generation %d superseded by %d", previous.generation, session.generation)
        return session

    def commit(self, session: QuerySession, results: OrderedResults) -> bool:
        with self._lock:
            if session.cancelled or session.generation != self._current:
                session.cancel()
                return False
            session._mark_committed(results)
            return True


class QuerySession:
    """One issued query: text, filters, generation and outcome."""

    def __init__(self, query: str, filters: SearchFilters, generation: int, clock: GenerationClock) -> None:
        self.query = query
        self.filters = filters
        self.generation = generation
        self.state = SessionState.IDLE
        self.results: OrderedResults | None = None
        self.candidate_count = 0
        self._clock = clock
        self._cancelled = threading.Event()

    def __repr__(self) -> str:
        return f"QuerySession(generation={self.generation}, state={self.state.value}, query={self.query!r})"

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def superseded(self) -> bool:
        return self._cancelled.is_set() or self._clock.current != self.generation

    def cancel(self) -> bool:
        """Cancel unless already finished; returns whether the state changed."""
        if self.state in (SessionState.COMMITTED, SessionState.CANCELLED):
            return False
        self._cancelled.set()
        self.state = SessionState.CANCELLED
        return True

    def _mark_committed(self, results: OrderedResults) -> None:
        self.results = results
        self.state = SessionState.COMMITTED

    def commit(self, results: OrderedResults) -> OrderedResults | None:
        """Deliver ``results`` unless a newer generation exists."""
        if self._clock.commit(self, results):
            return results
        return None

    def run(
        self,
        view: IndexView,
        pipeline: SearchPipeline,
        buffers: ScratchBuffers,
        *,
        now: datetime | None = None,
    ) -> OrderedResults | None:
        """Filter, score and rank against ``view``.

        Returns:
            The committed :class:`OrderedResults`, or ``None`` when the session
            was superseded at any point. A superseded session stops scoring
            and leaves no trace.
        """
        if self.state is SessionState.IDLE:
            self.state = SessionState.PENDING
        if self.superseded:
            self.cancel()
            return None

        pattern = prepare_pattern(self.query.strip())
        letters = [ch for ch in pattern.folded if not ch.isspace()]
        candidates = pipeline.filter_engine.filter(view, self.filters, letters=letters, out=buffers.candidates)
        self.candidate_count = len(candidates)
        if self.superseded:
            self.cancel()
            return None

        now = now or pipeline.ranking.clock()
        if pipeline.executor is not None and pipeline.workers > 1 and len(candidates) > pipeline.parallel_threshold:
            matches = self._score_parallel(view, candidates, pattern, pipeline, now, buffers.matches)
        else:
            buffers.matches.clear()
            matches = self._score(view, candidates, pattern, pipeline, now, buffers.matches)
        if matches is None:
            self.cancel()
            return None

        if pattern.folded and pipeline.min_score > 0:
            matches = [match for match in matches if match.total_score >= pipeline.min_score]
        pipeline.ranking.order(matches)
        kind_counts, category_counts = self._facet_counts(view, matches)
        limit = pipeline.max_results
        ranked = tuple(matches[:limit] if limit is not None else matches)
        return self.commit(
            OrderedResults(
                query=self.query,
                generation=self.generation,
                index_version=view.version,
                results=ranked,
                kind_counts=kind_counts,
                category_counts=category_counts,
            )
        )

    @staticmethod
    def _facet_counts(view: IndexView, matches: Sequence[MatchResult]) -> tuple[dict[str, int], dict[str, int]]:
        """Per-kind and per-category sizes of the whole matched set, before truncation."""
        kinds: Counter[str] = Counter()
        categories: Counter[str] = Counter()
        for match in matches:
            item = view.items[match.item_id]
            kinds[item.kind.value] += 1
            if item.category is not None:
                categories[item.category] += 1
        return dict(kinds), dict(categories)

    def _score(
        self,
        view: IndexView,
        item_ids: Sequence[str],
        pattern: PreparedPattern,
        pipeline: SearchPipeline,
        now: datetime,
        out: list[MatchResult],
    ) -> list[MatchResult] | None:
        ranking = pipeline.ranking
        interval = pipeline.cancel_check_interval
        items = view.items
        for position, item_id in enumerate(item_ids):
            if position % interval == 0 and self.superseded:
                return None
            result = ranking.rank(items[item_id], pattern, now=now)
            if result is not None:
                out.append(result)
        return out

    def _score_parallel(
        self,
        view: IndexView,
        item_ids: Sequence[str],
        pattern: PreparedPattern,
        pipeline: SearchPipeline,
        now: datetime,
        out: list[MatchResult],
    ) -> list[MatchResult] | None:
        chunk_size = -(-len(item_ids) // pipeline.workers)
        futures = [
            pipeline.executor.submit(
                self._score, view, item_ids[start : start + chunk_size], pattern, pipeline, now, []
            )
            for start in range(0, len(item_ids), chunk_size)
        ]
        out.clear()
        superseded = False
        for future in futures:
            chunk = future.result()
            if chunk is None:
                superseded = True
            elif not superseded:
                out.extend(chunk)
        return None if superseded else out
