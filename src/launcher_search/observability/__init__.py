"""Logging, tracing and Prometheus metrics for the search engine."""

from launcher_search.observability.context import bind_query, get_trace_context, set_trace_context, trace_context
from launcher_search.observability.logging import JsonFormatter, configure_logging, configure_logging_from_settings
from launcher_search.observability.metrics import (
    INDEX_ITEM_COUNT,
    INDEX_REBUILDS,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from launcher_search.observability.tracing import create_span, get_tracer, init_tracing, query_span


__all__ = [
    "INDEX_ITEM_COUNT",
    "INDEX_REBUILDS",
    "SEARCH_LATENCY",
    "SEARCH_REQUESTS",
    "JsonFormatter",
    "bind_query",
    "configure_logging",
    "configure_logging_from_settings",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "query_span",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
