"""Tests for logging, trace context and metrics helpers."""

import logging

import orjson
from prometheus_client import REGISTRY

from post_search.observability import (
    SEARCH_LATENCY,
    JsonFormatter,
    bound_context,
    create_span,
    get_metrics,
    get_trace_context,
    track_latency,
)


def _record(message: str, name: str = "post_search.engine", **extra) -> logging.LogRecord:
    record = logging.LogRecord(name, logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_emits_structured_entry():
    entry = orjson.loads(JsonFormatter().format(_record("Indexed 2 documents", doc_count=2)))
    assert entry["message"] == "Indexed 2 documents"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "post_search.engine"
    assert entry["component"] == "engine"
    assert entry["doc_count"] == 2
    assert entry["trace_id"]


def test_json_formatter_redacts_and_truncates():
    formatter = JsonFormatter()
    entry = orjson.loads(formatter.format(_record("x" * 3000, token="abc", note="y" * 600)))
    assert entry["token"] == "[REDACTED]"
    assert entry["note"].endswith("...")
    assert len(entry["note"]) == formatter.MAX_VALUE_LEN + 3
    assert len(entry["message"]) == formatter.MAX_MESSAGE_LEN + 3


def test_json_formatter_serializes_sets():
    entry = orjson.loads(JsonFormatter().format(_record("fields", fields={"title", "body"})))
    assert entry["fields"] == ["body", "title"]


def test_bound_context_is_restored():
    trace_id = get_trace_context()["trace_id"]
    with bound_context(operation="search") as ctx:
        assert ctx["operation"] == "search"
        assert ctx["trace_id"] == trace_id
        entry = orjson.loads(JsonFormatter().format(_record("searching")))
        assert entry["operation"] == "search"
    assert "operation" not in get_trace_context()


def test_create_span_propagates_errors():
    try:
        with create_span("test.failure"):
            raise RuntimeError("boom")
    except RuntimeError as exc:
        assert str(exc) == "boom"
    else:
        raise AssertionError("create_span swallowed the exception")


def test_track_latency_observes_histogram():
    labels = {"scope": "latency-test"}
    before = REGISTRY.get_sample_value("post_search_query_latency_seconds_count", labels) or 0.0
    with track_latency(SEARCH_LATENCY, scope="latency-test"):
        pass
    assert REGISTRY.get_sample_value("post_search_query_latency_seconds_count", labels) == before + 1
    assert b"post_search_query_latency_seconds" in get_metrics()
