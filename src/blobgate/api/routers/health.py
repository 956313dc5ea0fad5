"""Health check endpoints.

- /health/live  - the process is up
- /health/ready - the active backend answers a one-item listing
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from blobgate.api.deps import get_gateway
from blobgate.errors import BlobGatewayError
from blobgate.gateway import BlobStorageGateway

router = APIRouter(prefix="/health", tags=["health"])

READINESS_TIMEOUT = 5.0  # seconds


@router.get("/live")
async def liveness() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready")
async def readiness(gateway: BlobStorageGateway = Depends(get_gateway)) -> JSONResponse:
    """Probe the storage backend."""
    started = time.perf_counter()
    body: dict[str, object] = {"storage": gateway.describe()}
    try:
        await gateway.list_blobs(page_size=1, timeout=READINESS_TIMEOUT)
    except BlobGatewayError as exc:
        body.update(status="unhealthy", message=f"{exc.code}: {exc.message}")
        status_code = 503
    else:
        body["status"] = "healthy"
        status_code = 200
    body["latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
    return JSONResponse(status_code=status_code, content=body)
