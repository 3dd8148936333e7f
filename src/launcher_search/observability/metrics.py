"""Search golden signals, exposed to Prometheus and mirrored to OpenTelemetry.

Every signal is a :class:`MetricBridge`: the Prometheus collector is updated
eagerly, the OTel instrument is created on first use against the meter from
:func:`init_metrics`.
"""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Iterator


# Typeahead budget is one frame (~16ms); buckets are dense below it
LATENCY_BUCKETS = (0.0005, 0.001, 0.0025, 0.005, 0.01, 0.016, 0.025, 0.05, 0.1)

_PROM_TYPES = {"counter": Counter, "histogram": Histogram, "gauge": Gauge}

_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(
    service_name: str = "launcher-search",
    resource_attributes: dict[str, str] | None = None,
) -> MeterProvider:
    """Install the meter provider once; later calls return the same one."""
    if _meter_holder["provider"] is not None:
        return _meter_holder["provider"]

    provider = MeterProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    otel_metrics.set_meter_provider(provider)
    _meter_holder.update(provider=provider, meter=provider.get_meter(__name__))
    return provider


def _meter():
    if _meter_holder["meter"] is None:
        init_metrics()
    return _meter_holder["meter"]


class _BoundMetric:
    __slots__ = ("_bridge", "_labels")

    def __init__(self, bridge: MetricBridge, labels: dict[str, str]) -> None:
        self._bridge = bridge
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._bridge.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._bridge.observe(self._labels, value)

    def set(self, value: float) -> None:
        self._bridge.set(self._labels, value)


class MetricBridge:
    """One Prometheus collector plus its lazily created OTel twin.

    Gauges map onto up/down counters, so ``set`` forwards only the delta from
    the last value seen for the same label set.
    """

    def __init__(self, prometheus: Counter | Histogram | Gauge, *, name: str, description: str, kind: str) -> None:
        self.prometheus = prometheus
        self.name = name
        self.description = description
        self.kind = kind
        self._instrument = None
        self._last: dict[tuple[tuple[str, str], ...], float] = {}

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def _otel(self):
        if self._instrument is None:
            meter = _meter()
            if self.kind == "counter":
                self._instrument = meter.create_counter(self.name, description=self.description)
            elif self.kind == "histogram":
                self._instrument = meter.create_histogram(self.name, description=self.description)
            elif self.kind == "gauge":
                self._instrument = meter.create_up_down_counter(self.name, description=self.description)
            else:
                raise ValueError(f"Unknown metric kind: {self.kind}")
        return self._instrument

    def _child(self, labels: dict[str, str]):
        return self.prometheus.labels(**labels) if labels else self.prometheus

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._child(labels).inc(amount)
        self._otel().add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._child(labels).observe(value)
        self._otel().record(value, labels)

    def set(self, labels: dict[str, str], value: float) -> None:
        self._child(labels).set(value)
        key = tuple(sorted(labels.items()))
        delta = value - self._last.get(key, 0.0)
        self._last[key] = value
        if delta:
            self._otel().add(delta, labels)


def bridged(kind: str, name: str, description: str, labels: tuple[str, ...] = (), **options: Any) -> MetricBridge:
    """Register a Prometheus collector of ``kind`` and wrap it in a bridge."""
    collector = _PROM_TYPES[kind](name, description, list(labels), **options)
    return MetricBridge(collector, name=name, description=description, kind=kind)


SEARCH_LATENCY = bridged(
    "histogram", "search_latency_seconds", "Search query latency by outcome", ("status",), buckets=LATENCY_BUCKETS
)
SEARCH_REQUESTS = bridged("counter", "search_requests_total", "Search queries by outcome", ("status",))
INDEX_ITEM_COUNT = bridged("gauge", "index_item_count", "Items currently in the search index")
INDEX_REBUILDS = bridged("counter", "index_rebuilds_total", "Full index rebuilds by reason", ("reason",))


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Iterator[None]:
    """Observe the wall time of the block into ``histogram``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Prometheus text exposition of the default registry."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
