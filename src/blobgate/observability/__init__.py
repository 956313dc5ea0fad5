"""Observability helpers: structured logging with request correlation."""

from blobgate.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    correlation_id_var,
    request_id_var,
)

__all__ = [
    "configure_logging",
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "request_id_var",
    "correlation_id_var",
]
