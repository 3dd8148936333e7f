"""Committed-result cache keyed by index version, query and filters.

An index mutation bumps the version, so entries built against an older index
are never served. Entries also expire after a TTL; the oldest entry is evicted
once the cache is full.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
import threading
import time

from launcher_search.domain.search import OrderedResults, SearchFilters


CacheKey = tuple[int, str, SearchFilters]


@dataclass(frozen=True, slots=True)
class _CachedResults:
    results: OrderedResults
    cached_at: float


class ResultCache:
    """Bounded TTL cache of :class:`OrderedResults`."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[CacheKey, _CachedResults] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, index_version: int, query: str, filters: SearchFilters) -> OrderedResults | None:
        key = (index_version, query, filters)
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                return None
            if self._clock() - cached.cached_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return cached.results

    def put(self, index_version: int, query: str, filters: SearchFilters, results: OrderedResults) -> None:
        key = (index_version, query, filters)
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = _CachedResults(results=results, cached_at=self._clock())
            # Entries for older index versions can never hit again
            stale = [cached_key for cached_key in self._entries if cached_key[0] < index_version]
            for cached_key in stale:
                del self._entries[cached_key]
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> int:
        """Drop every entry and return how many were dropped."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count
