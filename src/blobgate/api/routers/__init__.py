"""API routers."""

from blobgate.api.routers import blobs, health

__all__ = ["blobs", "health"]
