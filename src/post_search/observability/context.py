"""Trace context shared by log records and spans."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


# Per-thread / per-task correlation fields copied into every log record
trace_context: ContextVar[dict | None] = ContextVar("trace_context", default=None)


def get_trace_context() -> dict:
    """Get current trace context, creating a fresh trace id when none is set."""
    ctx = trace_context.get()
    if ctx is None or not ctx.get("trace_id"):
        ctx = {"trace_id": uuid4().hex, "span_id": uuid4().hex[:16]}
        trace_context.set(ctx)
    return ctx


def update_span_id(span_id: str) -> None:
    """Update span_id while preserving trace_id and extras."""
    ctx = get_trace_context()
    trace_context.set({**ctx, "span_id": span_id})


@contextmanager
def bound_context(**extra: object) -> Iterator[dict]:
    """Attach ``extra`` fields (e.g. ``operation="search"``) for the duration of the block."""
    ctx = get_trace_context()
    token = trace_context.set({**ctx, **extra})
    try:
        yield trace_context.get()
    finally:
        trace_context.reset(token)
