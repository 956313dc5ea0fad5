"""blobgate: blob storage gateway over Azure Blob Storage or a Dapr binding."""

from blobgate.errors import (
    BlobGatewayError,
    ConfigurationError,
    NotFoundError,
    ProtocolError,
    TransportError,
    ValidationError,
)
from blobgate.gateway import BlobStorageGateway

__version__ = "0.1.0"

__all__ = [
    "BlobStorageGateway",
    "BlobGatewayError",
    "ConfigurationError",
    "NotFoundError",
    "ProtocolError",
    "TransportError",
    "ValidationError",
]
