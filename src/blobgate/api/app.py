"""FastAPI application factory for blobgate.

Creates the application with:
- Blob upload/list/download/delete endpoints
- Liveness and readiness probes
- Correlation IDs on every request
- Result/Message error bodies for gateway errors
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from blobgate.api.errors import gateway_exception_handler, generic_exception_handler
from blobgate.api.middleware import CorrelationMiddleware
from blobgate.api.routers import blobs, health
from blobgate.config import settings
from blobgate.errors import BlobGatewayError
from blobgate.gateway import BlobStorageGateway
from blobgate.observability import configure_logging
from blobgate.storage.factory import close_gateway, get_gateway

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Resolve the backend at startup and close it on shutdown.

    A ConfigurationError here aborts startup.
    """
    configure_logging(json_format=settings.use_json_logs, level=settings.log_level)

    owns_gateway = app.state.gateway is None
    if owns_gateway:
        app.state.gateway = get_gateway()
    gateway: BlobStorageGateway = app.state.gateway
    logger.info(f"Starting {settings.app_name} with {gateway.describe()}")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    if owns_gateway:
        await close_gateway()
        app.state.gateway = None


def create_app(gateway: BlobStorageGateway | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        gateway: Gateway to serve; when omitted one is built from settings
            during startup
    """
    app = FastAPI(
        title="blobgate",
        description="Blob storage gateway over Azure Blob Storage or a Dapr binding",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.gateway = gateway

    app.add_middleware(CorrelationMiddleware)

    app.add_exception_handler(
        BlobGatewayError, cast(ExceptionHandler, gateway_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    app.include_router(blobs.router)

    return app
