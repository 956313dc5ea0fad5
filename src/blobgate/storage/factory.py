"""Backend and gateway factory for blobgate."""

from __future__ import annotations

from blobgate.config import Settings, settings
from blobgate.errors import ConfigurationError
from blobgate.gateway import BlobStorageGateway
from blobgate.storage.base import BlobBackend
from blobgate.storage.binding import BindingBlobBackend, DaprBindingInvoker
from blobgate.storage.direct import DirectBlobBackend
from blobgate.storage.resolver import AuthConfig, resolve

_gateway: BlobStorageGateway | None = None


def build_backend(config: Settings) -> BlobBackend:
    """Create the backend selected by BLOB_BACKEND.

    Raises:
        ConfigurationError: If the backend kind or its auth settings are invalid
    """
    kind = config.blob_backend.strip().lower()
    if kind == "direct":
        auth = AuthConfig.from_settings(config)
        return DirectBlobBackend(resolve(auth), auth_mode=auth.mode.value)
    if kind == "binding":
        if not config.dapr_binding_name:
            raise ConfigurationError("DAPR_BINDING_NAME is required for blob_backend='binding'")
        invoker = DaprBindingInvoker(
            endpoint=config.dapr_http_endpoint,
            api_token=config.dapr_api_token,
            timeout=config.dapr_timeout,
        )
        return BindingBlobBackend(invoker, binding_name=config.dapr_binding_name)
    raise ConfigurationError(
        f"Unsupported blob_backend {config.blob_backend!r}. Supported values: direct, binding."
    )


def get_gateway() -> BlobStorageGateway:
    """Return the process-wide gateway, resolving the backend on first use."""
    global _gateway
    if _gateway is not None:
        return _gateway

    _gateway = BlobStorageGateway(
        build_backend(settings),
        default_timeout=settings.operation_timeout,
        default_page_size=settings.default_page_size,
    )
    return _gateway


async def close_gateway() -> None:
    """Close the process-wide gateway, if one was created."""
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        _gateway = None
