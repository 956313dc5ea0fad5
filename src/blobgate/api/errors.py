"""Error responses for the blobgate HTTP API.

Gateway errors are rendered as a Result/Message body:

    {"messages": [{"code": "NotFound", "messageType": "Error", "text": "...",
                   "timestamp": "..."}]}
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from blobgate.errors import (
    BlobGatewayError,
    ConfigurationError,
    NotFoundError,
    ProtocolError,
    TransportError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in an error response."""

    ERROR = "Error"
    WARNING = "Warning"
    EXCEPTION = "Exception"


class Message(BaseModel):
    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    model_config = {"extra": "forbid"}

    messages: list[Message]


def error_status(exc: BlobGatewayError) -> int:
    """HTTP status for a gateway error kind."""
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, TransportError):
        return 504 if exc.cancelled else 502
    if isinstance(exc, ProtocolError):
        return 502
    if isinstance(exc, ConfigurationError):
        return 500
    return 500


def error_result(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> Result:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    )


async def gateway_exception_handler(request: Request, exc: BlobGatewayError) -> JSONResponse:
    """Render gateway errors with the status matching their kind."""
    status_code = error_status(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    message_type = MessageType.EXCEPTION if status_code >= 500 else MessageType.ERROR
    return JSONResponse(
        status_code=status_code,
        content=error_result(exc.code, exc.message, message_type).model_dump(by_alias=True),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_result(
            "InternalServerError", "An unexpected error occurred", MessageType.EXCEPTION
        ).model_dump(by_alias=True),
    )
