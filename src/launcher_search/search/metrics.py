"""In-process statistics for search operations."""

from collections import defaultdict, deque
from dataclasses import dataclass
import threading


SLOW_SEARCH_MS = 10.0


@dataclass(frozen=True, slots=True)
class SearchRecord:
    """One finished (committed or cancelled) search."""

    latency_ms: float
    candidate_count: int
    result_count: int
    cancelled: bool = False
    cached: bool = False


class MetricsCollector:
    """Lightweight metrics collector for search operations."""

    def __init__(self, window_size: int = 1000):
        self.window_size = window_size
        self._records: deque[SearchRecord] = deque(maxlen=window_size)
        self._counters: defaultdict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    def record_search(self, record: SearchRecord) -> None:
        """Record a finished search."""
        with self._lock:
            self._records.append(record)
            self._counters["total_searches"] += 1
            if record.cancelled:
                self._counters["cancelled_searches"] += 1
                return
            if record.cached:
                self._counters["cache_hits"] += 1
            else:
                self._counters["cache_misses"] += 1
            if record.latency_ms > SLOW_SEARCH_MS:
                self._counters["slow_searches"] += 1
            if record.result_count == 0:
                self._counters["empty_results"] += 1

    def record_rebuild(self, reason: str) -> None:
        with self._lock:
            self._counters["index_rebuilds"] += 1
            self._counters[f"index_rebuilds_{reason}"] += 1

    def counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_stats(self) -> dict:
        """Get current performance statistics."""
        with self._lock:
            records = list(self._records)
            counters = dict(self._counters)
        if not records:
            return {"counters": counters}

        latencies = sorted(record.latency_ms for record in records)
        result_counts = [record.result_count for record in records if not record.cancelled]
        total = counters.get("total_searches", 0)
        committed = total - counters.get("cancelled_searches", 0)

        return {
            "count": len(records),
            "latency": {
                "mean": sum(latencies) / len(latencies),
                "p95": latencies[min(int(len(latencies) * 0.95), len(latencies) - 1)],
                "p99": latencies[min(int(len(latencies) * 0.99), len(latencies) - 1)],
                "max": latencies[-1],
            },
            "results": {
                "mean": sum(result_counts) / len(result_counts) if result_counts else 0.0,
                "empty_rate": counters.get("empty_results", 0) / committed if committed else 0.0,
            },
            "performance": {
                "slow_rate": counters.get("slow_searches", 0) / committed if committed else 0.0,
                "cancel_rate": counters.get("cancelled_searches", 0) / total if total else 0.0,
                "cache_hit_rate": counters.get("cache_hits", 0) / committed if committed else 0.0,
                "total_searches": total,
            },
            "counters": counters,
        }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._records.clear()
            self._counters.clear()
