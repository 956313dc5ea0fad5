"""Error taxonomy for the blob storage gateway.

Every backend failure surfaces as one of these kinds:
- ConfigurationError: startup only, fatal, never retried
- ValidationError: malformed caller input, never retried
- NotFoundError: the named blob does not exist
- TransportError: network or service failure; callers may retry with backoff
- ProtocolError: the binding intermediary answered with an unexpected shape
"""

from __future__ import annotations


class BlobGatewayError(Exception):
    """Base class for all gateway errors."""

    code = "BlobGatewayError"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(BlobGatewayError):
    """The auth/transport configuration cannot produce a backend."""

    code = "ConfigurationError"


class ValidationError(BlobGatewayError):
    """Caller input is malformed."""

    code = "ValidationError"


class NotFoundError(BlobGatewayError):
    """The requested blob does not exist."""

    code = "NotFound"

    def __init__(self, name: str, message: str | None = None) -> None:
        self.name = name
        super().__init__(message or f"Blob '{name}' not found")


class TransportError(BlobGatewayError):
    """The storage service or intermediary could not complete the call."""

    code = "TransportError"

    def __init__(
        self,
        message: str,
        *,
        cancelled: bool = False,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.cancelled = cancelled
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class ProtocolError(BlobGatewayError):
    """The intermediary's response violated the expected contract."""

    code = "ProtocolError"
