"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from blobgate.gateway import BlobStorageGateway
from blobgate.storage.factory import get_gateway as get_default_gateway


def get_gateway(request: Request) -> BlobStorageGateway:
    """Return the gateway attached to the application, or the process default."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        gateway = get_default_gateway()
        request.app.state.gateway = gateway
    return gateway
