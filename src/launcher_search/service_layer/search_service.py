"""Search service orchestration layer.

Owns the index and exposes the whole engine to the presentation layer:
catalog mutations (``upsert``/``remove``/``apply_change``), full rebuilds and
``search``. Constructed once and passed around; there is no ambient global
state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
import dataclasses
from datetime import datetime
import logging
import threading
import time

from launcher_search.adapters.catalog_source import AbstractCatalogSource
from launcher_search.config import SearchSettings, get_settings
from launcher_search.domain.catalog import CatalogChangeEvent, CatalogEntry, CatalogSnapshot, ChangeKind
from launcher_search.domain.search import NO_FILTERS, OrderedResults, SearchFilters
from launcher_search.observability.metrics import (
    INDEX_ITEM_COUNT,
    INDEX_REBUILDS,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
)
from launcher_search.observability.tracing import query_span
from launcher_search.search.cache import ResultCache
from launcher_search.search.filters import FilterEngine
from launcher_search.search.fuzzy import FuzzyMatcher
from launcher_search.search.index import IndexCorruptError, IndexView, SearchIndex
from launcher_search.search.metrics import MetricsCollector, SearchRecord
from launcher_search.search.ranking import RankingEngine, utc_now
from launcher_search.search.scratch import BufferPool
from launcher_search.service_layer.query_session import GenerationClock, QuerySession, SearchPipeline, SessionState


logger = logging.getLogger(__name__)


class SearchService:
    """High-level search orchestration service."""

    def __init__(
        self,
        settings: SearchSettings | None = None,
        *,
        snapshot: CatalogSnapshot | None = None,
        clock: Callable[[], datetime] = utc_now,
        metrics: MetricsCollector | None = None,
    ):
        """Initialize the service.

        Args:
            settings: Tunables; the environment-backed settings when omitted
            snapshot: Catalog to index immediately
            clock: Wall clock used for recency decay
            metrics: In-process statistics collector
        """
        self.settings = settings or get_settings()
        self.index = SearchIndex()
        self.matcher = FuzzyMatcher(self.settings.scoring)
        self.ranking = RankingEngine(self.settings.ranking, self.matcher, clock)
        self.filter_engine = FilterEngine()
        self.metrics = metrics or MetricsCollector()

        self._lifecycle = GenerationClock()
        self._buffers = BufferPool(max_idle=self.settings.max_workers)
        self._cache = (
            ResultCache(self.settings.cache_ttl_seconds, self.settings.max_cache_size)
            if self.settings.cache_enabled
            else None
        )
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()
        self._known_good: dict[str, CatalogEntry] = {}
        self._latest: OrderedResults | None = None

        if snapshot is not None:
            self.rebuild_index(snapshot)

    @classmethod
    def from_source(
        cls, source: AbstractCatalogSource, settings: SearchSettings | None = None, **kwargs
    ) -> SearchService:
        return cls(settings, snapshot=source.snapshot(), **kwargs)

    def __enter__(self) -> SearchService:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Shut the scoring worker pool down."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    # Index maintenance

    def rebuild_index(self, snapshot: CatalogSnapshot, *, reason: str = "snapshot") -> IndexView:
        """Rebuild the whole index from ``snapshot`` atomically."""
        known_good: dict[str, CatalogEntry] = {}
        for entry in snapshot.items:
            known_good[entry.id] = entry
        view = self.index.rebuild(snapshot.items)
        self._known_good = known_good
        if self._cache is not None:
            self._cache.clear()
        self.metrics.record_rebuild(reason)
        INDEX_REBUILDS.labels(reason=reason).inc()
        INDEX_ITEM_COUNT.labels().set(len(view))
        return view

    def upsert(self, entry: CatalogEntry, *, expect_new: bool = False) -> None:
        """Insert or replace one catalog entry."""
        self.index.upsert(entry, expect_new=expect_new)
        self._known_good[entry.id] = entry
        INDEX_ITEM_COUNT.labels().set(len(self.index))

    def remove(self, item_id: str) -> bool:
        """Remove one item; returns ``False`` when it was not indexed."""
        removed = self.index.remove(item_id)
        self._known_good.pop(item_id, None)
        if removed:
            INDEX_ITEM_COUNT.labels().set(len(self.index))
        return removed

    def apply_change(self, event: CatalogChangeEvent) -> None:
        """React to a catalog mutation before the next query is served."""
        if event.change is ChangeKind.REMOVED:
            if not self.remove(event.entry_id):
                logger.debug("Ignoring removal of unknown catalog id %r", event.entry_id)
            return
        self.upsert(event.new_entry, expect_new=event.change is ChangeKind.INSTALLED)

    def snapshot(self) -> IndexView:
        return self.index.snapshot()

    def known_good_snapshot(self) -> CatalogSnapshot:
        """Catalog state the index was last built or updated from."""
        return CatalogSnapshot(items=tuple(self._known_good.values()))

    # Queries

    @property
    def generation(self) -> int:
        return self._lifecycle.current

    @property
    def state(self) -> SessionState:
        """``pending`` while the newest query is in flight, ``idle`` otherwise."""
        active = self._lifecycle.active
        if active is not None and active.state is SessionState.PENDING:
            return SessionState.PENDING
        return SessionState.IDLE

    @property
    def latest_results(self) -> OrderedResults | None:
        """Most recently committed results."""
        return self._latest

    def search(
        self, query: str, filters: SearchFilters = NO_FILTERS, *, limit: int | None = None
    ) -> OrderedResults | None:
        """Run a query synchronously.

        Args:
            query: Text as typed; empty means "no text filter"
            filters: Structural predicates
            limit: Optional cap on top of ``settings.max_results``

        Returns:
            Committed :class:`OrderedResults`, or ``None`` if another caller
            issued a newer query before this one finished.
        """
        session = self._lifecycle.issue(query, filters)
        return self._execute(session, limit)

    async def search_async(
        self, query: str, filters: SearchFilters = NO_FILTERS, *, limit: int | None = None
    ) -> OrderedResults | None:
        """Debounced typeahead search.

        Waits ``debounce_ms`` before scoring and runs the scoring off the
        event loop. Returns ``None`` when a newer query superseded this one;
        superseded results are never delivered.
        """
        session = self._lifecycle.issue(query, filters)
        debounce = self.settings.debounce_ms / 1000.0
        if debounce > 0:
            await asyncio.sleep(debounce)
        if session.superseded:
            session.cancel()
            self._record_cancelled(session, 0.0)
            return None
        return await asyncio.to_thread(self._execute, session, limit)

    def _execute(self, session: QuerySession, limit: int | None) -> OrderedResults | None:
        start = time.perf_counter()
        view = self.index.snapshot()

        with query_span(session.generation, session.query, view.version) as span:
            results = self._cached(session, view)
            cached = results is not None
            if not cached:
                results = self._run_with_recovery(session, view)
            span.set_attribute("search.state", session.state.value)

        latency = time.perf_counter() - start
        if results is None:
            self._record_cancelled(session, latency)
            return None

        if not cached and self._cache is not None:
            self._cache.put(results.index_version, session.query, session.filters, results)
        self._latest = results
        status = "cached" if cached else "committed"
        SEARCH_REQUESTS.labels(status=status).inc()
        SEARCH_LATENCY.labels(status=status).observe(latency)
        self.metrics.record_search(
            SearchRecord(
                latency_ms=latency * 1000,
                candidate_count=session.candidate_count,
                result_count=len(results),
                cached=cached,
            )
        )
        logger.debug(
            "Search generation %d committed: %d candidates, %d results in %.2fms",
            session.generation,
            session.candidate_count,
            len(results),
            latency * 1000,
        )

        if limit is not None and len(results) > limit:
            results = dataclasses.replace(results, results=results.results[:limit])
        return results

    def _cached(self, session: QuerySession, view: IndexView) -> OrderedResults | None:
        if self._cache is None:
            return None
        hit = self._cache.get(view.version, session.query, session.filters)
        if hit is None:
            return None
        return session.commit(dataclasses.replace(hit, generation=session.generation))

    def _run_with_recovery(self, session: QuerySession, view: IndexView) -> OrderedResults | None:
        buffers = self._buffers.acquire()
        try:
            try:
                return session.run(view, self._pipeline(), buffers)
            except IndexCorruptError as exc:
                logger.error("Search index corrupt (%s); rebuilding from last known-good catalog", exc)
                view = self.rebuild_index(self.known_good_snapshot(), reason="corruption")
            try:
                view.verify()
                return session.run(view, self._pipeline(), buffers)
            except IndexCorruptError:
                logger.exception("Search index still corrupt after rebuild; returning no results")
                return session.commit(
                    OrderedResults(query=session.query, generation=session.generation, index_version=view.version)
                )
        finally:
            self._buffers.release(buffers)

    def _pipeline(self) -> SearchPipeline:
        settings = self.settings
        if self._executor is None and settings.max_workers > 1:
            with self._executor_lock:
                if self._executor is None:
                    self._executor = ThreadPoolExecutor(
                        max_workers=settings.max_workers, thread_name_prefix="search-score"
                    )
        return SearchPipeline(
            filter_engine=self.filter_engine,
            ranking=self.ranking,
            cancel_check_interval=settings.cancel_check_interval,
            parallel_threshold=settings.parallel_threshold,
            max_results=settings.max_results,
            min_score=settings.min_score,
            executor=self._executor,
            workers=settings.max_workers,
        )

    def _record_cancelled(self, session: QuerySession, latency: float) -> None:
        SEARCH_REQUESTS.labels(status="cancelled").inc()
        SEARCH_LATENCY.labels(status="cancelled").observe(latency)
        self.metrics.record_search(
            SearchRecord(
                latency_ms=latency * 1000,
                candidate_count=session.candidate_count,
                result_count=0,
                cancelled=True,
            )
        )
        logger.debug("Search generation %d cancelled", session.generation)

    def stats(self) -> dict:
        """In-process search statistics plus index facts."""
        view = self.index.snapshot()
        return {
            **self.metrics.get_stats(),
            "index": {"items": len(view), "version": view.version},
            "generation": self._lifecycle.current,
            "scratch_buffers_allocated": self._buffers.allocated,
        }
