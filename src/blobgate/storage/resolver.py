"""Authentication strategy resolution.

Turns the AzureBlob configuration section into an Azure container client
for exactly one auth mode. Resolution never touches the network: the SDK
clients connect lazily on first use.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob.aio import ContainerClient

from blobgate.errors import ConfigurationError

if TYPE_CHECKING:
    from blobgate.config import Settings

logger = logging.getLogger(__name__)


class AuthMode(str, Enum):
    """Supported ways of authenticating against the storage account."""

    KEY = "KEY"
    SAS = "SAS"
    MANAGED_IDENTITY = "MANAGED_IDENTITY"

    @classmethod
    def parse(cls, value: str | None) -> AuthMode:
        """Parse a UseAuthMode configuration value."""
        normalized = (value or "").strip().upper().replace("-", "_")
        if normalized in _MODE_ALIASES:
            return _MODE_ALIASES[normalized]
        raise ConfigurationError(f"unsupported or incomplete auth mode: {value!r}")


_MODE_ALIASES = {
    "KEY": AuthMode.KEY,
    "SAS": AuthMode.SAS,
    "MSI": AuthMode.MANAGED_IDENTITY,
    "MANAGED_IDENTITY": AuthMode.MANAGED_IDENTITY,
}

# Fields that must be non-empty for each mode
_REQUIRED_FIELDS: dict[AuthMode, tuple[str, ...]] = {
    AuthMode.KEY: ("connection_secret", "container_name"),
    AuthMode.SAS: ("sas_url",),
    AuthMode.MANAGED_IDENTITY: ("endpoint_url", "container_name"),
}


@dataclass(frozen=True)
class AuthConfig:
    """Immutable AzureBlob configuration bundle."""

    mode: AuthMode
    account_name: str | None = None
    container_name: str | None = None
    endpoint_url: str | None = None
    sas_url: str | None = None
    connection_secret: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthConfig:
        return cls(
            mode=AuthMode.parse(settings.azure_auth_mode),
            account_name=settings.azure_account_name,
            container_name=settings.azure_container_name,
            endpoint_url=settings.azure_blob_url,
            sas_url=settings.azure_sas_url,
            connection_secret=settings.azure_connection_string,
        )

    def missing_fields(self) -> list[str]:
        return [name for name in _REQUIRED_FIELDS[self.mode] if not getattr(self, name)]

    def __repr__(self) -> str:
        # Secrets stay out of logs and tracebacks
        return (
            f"AuthConfig(mode={self.mode.value}, account_name={self.account_name!r}, "
            f"container_name={self.container_name!r}, endpoint_url={self.endpoint_url!r})"
        )


def _key_client(config: AuthConfig) -> ContainerClient:
    return ContainerClient.from_connection_string(
        str(config.connection_secret), container_name=str(config.container_name)
    )


def _sas_client(config: AuthConfig) -> ContainerClient:
    return ContainerClient.from_container_url(str(config.sas_url))


def _managed_identity_client(config: AuthConfig) -> ContainerClient:
    return ContainerClient(
        account_url=str(config.endpoint_url).rstrip("/"),
        container_name=str(config.container_name),
        credential=DefaultAzureCredential(),
    )


_FACTORIES: dict[AuthMode, Callable[[AuthConfig], ContainerClient]] = {
    AuthMode.KEY: _key_client,
    AuthMode.SAS: _sas_client,
    AuthMode.MANAGED_IDENTITY: _managed_identity_client,
}


def resolve(config: AuthConfig) -> ContainerClient:
    """Build the container client for the configured auth mode.

    Raises:
        ConfigurationError: If the mode is unknown or a required field is empty
    """
    factory = _FACTORIES.get(config.mode) if isinstance(config.mode, AuthMode) else None
    if factory is None:
        raise ConfigurationError(f"unsupported or incomplete auth mode: {config.mode!r}")

    missing = config.missing_fields()
    if missing:
        raise ConfigurationError(
            f"unsupported or incomplete auth mode: {config.mode.value} requires "
            + ", ".join(missing)
        )

    try:
        client = factory(config)
    except ValueError as exc:
        # Malformed connection string or URL
        raise ConfigurationError(
            f"unsupported or incomplete auth mode: {config.mode.value}: {exc}"
        ) from exc

    logger.info(
        f"Resolved blob storage auth mode {config.mode.value} "
        f"for container {client.container_name}"
    )
    return client
