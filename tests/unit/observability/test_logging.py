"""Tests for structured logging."""

from __future__ import annotations

import logging
import sys

import orjson

from blobgate.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    request_id_var,
)


def _record(message: str = "Uploaded blob a.txt", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        "blobgate.gateway", logging.INFO, __file__, 10, message, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields() -> None:
    line = JsonFormatter().format(_record(blob="a.txt"))
    data = orjson.loads(line)

    assert data["level"] == "INFO"
    assert data["logger"] == "blobgate.gateway"
    assert data["message"] == "Uploaded blob a.txt"
    assert data["blob"] == "a.txt"
    assert "request_id" not in data


def test_json_formatter_includes_request_context() -> None:
    with LogContext(request_id="req-1", correlation_id="corr-1"):
        data = orjson.loads(JsonFormatter().format(_record()))

    assert data["request_id"] == "req-1"
    assert data["correlation_id"] == "corr-1"
    assert request_id_var.get() == ""


def test_json_formatter_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    data = orjson.loads(JsonFormatter().format(record))
    assert data["exception"]["type"] == "RuntimeError"
    assert data["exception"]["message"] == "boom"


def test_console_formatter() -> None:
    with LogContext(request_id="abcdef1234567890"):
        line = ConsoleFormatter(use_colors=False).format(_record())

    assert "| INFO     | blobgate.gateway | Uploaded blob a.txt | req=abcdef12" in line


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    previous = root.handlers[:]
    previous_level = root.level
    try:
        configure_logging(json_format=True, level="debug")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("azure").level == logging.WARNING
    finally:
        root.handlers[:] = previous
        root.setLevel(previous_level)
