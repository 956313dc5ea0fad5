"""Blob storage backends.

Two interchangeable strategies behind one contract:
- Direct: Azure Blob Storage through the azure-storage-blob aio client,
  authenticated with a shared key, a SAS URL or a managed identity
- Binding: a Dapr output binding reached over the sidecar HTTP API
"""

from blobgate.storage.base import BlobBackend, BlobEntry, BlobListing, BlobRef, BlobStream
from blobgate.storage.binding import (
    BindingBlobBackend,
    BindingEnvelope,
    BindingOperation,
    BindingResponse,
    DaprBindingInvoker,
)
from blobgate.storage.direct import DirectBlobBackend
from blobgate.storage.resolver import AuthConfig, AuthMode, resolve
from blobgate.storage.translator import translate

__all__ = [
    "BlobBackend",
    "BlobEntry",
    "BlobListing",
    "BlobRef",
    "BlobStream",
    "AuthConfig",
    "AuthMode",
    "resolve",
    "DirectBlobBackend",
    "BindingBlobBackend",
    "BindingEnvelope",
    "BindingOperation",
    "BindingResponse",
    "DaprBindingInvoker",
    "translate",
]
