"""OpenTelemetry spans around search queries.

No exporter is configured here; embedders that want spans shipped somewhere
install their own span processors on the provider returned by
:func:`init_tracing`.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import SpanKind, Status, StatusCode

from launcher_search.observability.context import bind_query, update_span_id


if TYPE_CHECKING:
    from collections.abc import Iterator

    from opentelemetry.trace import Span, Tracer

logger = logging.getLogger(__name__)

_tracer_holder: dict[str, Tracer | None] = {"tracer": None}


def init_tracing(
    service_name: str = "launcher-search",
    resource_attributes: dict[str, str] | None = None,
) -> TracerProvider:
    """Install a tracer provider tagged with ``service.name``."""
    provider = TracerProvider(resource=Resource.create({"service.name": service_name, **(resource_attributes or {})}))
    trace.set_tracer_provider(provider)
    _tracer_holder["tracer"] = provider.get_tracer(__name__)
    logger.info("Tracing initialized for %s", service_name)
    return provider


def get_tracer() -> Tracer:
    tracer = _tracer_holder["tracer"]
    if tracer is None:
        tracer = _tracer_holder["tracer"] = trace.get_tracer(__name__)
    return tracer


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span]:
    """Open a span and mirror its id into the log correlation context.

    Exceptions mark the span as failed and propagate.
    """
    with get_tracer().start_as_current_span(
        name,
        kind=kind,
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        span_context = span.get_span_context()
        if span_context.is_valid:
            update_span_id(format(span_context.span_id, "016x"))
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise


@contextmanager
def query_span(generation: int, query: str, index_version: int) -> Iterator[Span]:
    """Span for one search, with ``generation`` bound into log lines.

    Only the query length is recorded; query text stays out of telemetry.
    """
    with bind_query(generation):
        with create_span(
            "search.query",
            attributes={
                "search.generation": generation,
                "search.query_length": len(query),
                "search.index_version": index_version,
            },
        ) as span:
            yield span
