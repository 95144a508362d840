"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from post_search.observability.context import bound_context, get_trace_context, trace_context
from post_search.observability.logging import JsonFormatter, configure_log_exporter, configure_logging
from post_search.observability.metrics import (
    INDEX_DOC_COUNT,
    INDEX_OPERATIONS,
    SEARCH_LATENCY,
    SEARCH_RESULTS,
    configure_metrics_exporter,
    get_metrics,
    track_latency,
)
from post_search.observability.tracing import configure_trace_exporter, create_span, init_tracing, shutdown_tracing


__all__ = [
    "INDEX_DOC_COUNT",
    "INDEX_OPERATIONS",
    "SEARCH_LATENCY",
    "SEARCH_RESULTS",
    "JsonFormatter",
    "bound_context",
    "configure_log_exporter",
    "configure_logging",
    "configure_metrics_exporter",
    "configure_trace_exporter",
    "create_span",
    "get_metrics",
    "get_trace_context",
    "init_tracing",
    "shutdown_tracing",
    "trace_context",
    "track_latency",
]
