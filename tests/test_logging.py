"""Tests for structured logging and the logging context."""

import json
import logging

from weatherflow.core.logging import (
    StructuredFormatter,
    WorkflowContextFilter,
    clear_logging_context,
    get_logging_context,
    set_logging_context,
)


def _record(message="hello"):
    return logging.LogRecord("weatherflow.test", logging.INFO, __file__, 10, message, None, None)


class TestLoggingContext:

    def teardown_method(self):
        clear_logging_context()

    def test_context_fields_are_attached(self):
        set_logging_context(workflow_id="weather-check")
        set_logging_context(request_id="abc")

        record = _record()
        WorkflowContextFilter().filter(record)

        assert record.extra_fields == {"workflow_id": "weather-check", "request_id": "abc"}
        assert get_logging_context()["request_id"] == "abc"

    def test_clear(self):
        set_logging_context(workflow_id="weather-check")
        clear_logging_context()
        assert get_logging_context() == {}


class TestStructuredFormatter:

    def test_emits_json(self):
        record = _record("run finished")
        record.extra_fields = {"workflow_id": "w1"}

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "run finished"
        assert entry["level"] == "INFO"
        assert entry["workflow_id"] == "w1"
