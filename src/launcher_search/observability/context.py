"""Log/trace correlation carried across threads and tasks.

Each search binds its generation number into the context so log lines emitted
while serving it can be correlated. ``asyncio.to_thread`` copies the context,
so debounced searches keep the binding on the worker thread.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


trace_context: ContextVar[dict | None] = ContextVar("trace_context", default=None)


def _new_ids() -> dict:
    token = uuid4().hex
    return {"trace_id": token, "span_id": token[:16]}


def get_trace_context() -> dict:
    """Current correlation fields; fresh ids are minted on first use."""
    ctx = trace_context.get()
    if not ctx or not ctx.get("trace_id"):
        ctx = _new_ids()
        trace_context.set(ctx)
    return ctx


def set_trace_context(trace_id: str, span_id: str, **extra: object) -> None:
    trace_context.set({"trace_id": trace_id, "span_id": span_id, **extra})


def update_span_id(span_id: str) -> None:
    """Swap the span id, keeping the trace id and bound fields."""
    trace_context.set({**(trace_context.get() or {}), "span_id": span_id})


@contextmanager
def bind_query(generation: int, **fields: object) -> Iterator[dict]:
    """Bind ``generation`` (and extra fields) for the duration of one search."""
    ctx = {**get_trace_context(), "generation": generation, **fields}
    token = trace_context.set(ctx)
    try:
        yield ctx
    finally:
        trace_context.reset(token)
