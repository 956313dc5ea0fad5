"""Blob backend routed through a Dapr output binding.

Each operation is wrapped in a binding envelope and posted to the Dapr
sidecar, which forwards it to the Azure Blob Storage binding component:

    POST {dapr}/v1.0/bindings/{binding_name}
    {"operation": "list", "data": {...}, "metadata": {"blobName": "..."}}

The binding reports absence of a blob on ``get`` as an empty payload, so an
empty blob cannot be told apart from a missing one on this path.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import httpx
import orjson

from blobgate.errors import NotFoundError, ProtocolError, TransportError
from blobgate.storage.base import (
    DEFAULT_PAGE_SIZE,
    BlobBackend,
    BlobContent,
    BlobListing,
    BlobRef,
    BlobStream,
    iter_bytes,
    read_content,
)
from blobgate.storage.translator import translate

logger = logging.getLogger(__name__)

DEFAULT_BINDING_NAME = "azblob-storage"

# Response metadata is returned by the sidecar as "metadata.<key>" headers
METADATA_HEADER_PREFIX = "metadata."

# Error code the Azure binding surfaces when a blob is missing
BLOB_NOT_FOUND_CODE = "BlobNotFound"


class BindingOperation(str, Enum):
    """Operations understood by the Azure Blob Storage binding."""

    CREATE = "create"
    GET = "get"
    DELETE = "delete"
    LIST = "list"


@dataclass(frozen=True)
class BindingEnvelope:
    """Request wrapper sent to the binding intermediary."""

    operation: BindingOperation
    metadata: dict[str, str] = field(default_factory=dict)
    payload: bytes | None = None

    def to_json(self) -> bytes:
        """Serialize to the sidecar's invocation body.

        The list request payload is already JSON and is embedded as is; other
        payloads are raw bytes and travel base64-encoded.
        """
        body: dict[str, Any] = {
            "operation": self.operation.value,
            "metadata": dict(self.metadata),
        }
        if self.payload is not None:
            if self.operation is BindingOperation.LIST:
                body["data"] = orjson.Fragment(self.payload)
            else:
                body["data"] = base64.b64encode(self.payload).decode("ascii")
        return orjson.dumps(body)


@dataclass
class BindingResponse:
    """Raw result of a binding invocation."""

    data: bytes = b""
    metadata: dict[str, str] = field(default_factory=dict)


class BindingInvoker(Protocol):
    """Generic invoke-with-metadata primitive of the intermediary."""

    async def invoke(self, binding_name: str, envelope: BindingEnvelope) -> BindingResponse:
        ...

    async def close(self) -> None:
        ...


class DaprBindingInvoker:
    """Invokes Dapr output bindings over the sidecar HTTP API."""

    def __init__(
        self,
        endpoint: str = "http://localhost:3500",
        api_token: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def invoke(self, binding_name: str, envelope: BindingEnvelope) -> BindingResponse:
        """Post the envelope to the sidecar and return the raw response.

        Raises:
            TransportError: On connection failure, timeout or a non-2xx status
        """
        headers = {"content-type": "application/json"}
        if self.api_token:
            headers["dapr-api-token"] = self.api_token

        url = f"{self.endpoint}/v1.0/bindings/{binding_name}"
        try:
            response = await self._get_client().post(
                url, content=envelope.to_json(), headers=headers
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Binding '{binding_name}' timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Binding '{binding_name}' unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise TransportError(
                f"Binding '{binding_name}' {envelope.operation.value} failed "
                f"with status {response.status_code}",
                status_code=response.status_code,
                detail=response.text,
            )

        metadata = {
            key.lower()[len(METADATA_HEADER_PREFIX) :]: value
            for key, value in response.headers.items()
            if key.lower().startswith(METADATA_HEADER_PREFIX)
        }
        return BindingResponse(data=response.content, metadata=metadata)

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


@dataclass(frozen=True)
class ListInclude:
    """Dataset flags for list requests."""

    snapshots: bool = False
    metadata: bool = True
    uncommitted_blobs: bool = False
    copy: bool = False
    deleted: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "snapshots": self.snapshots,
            "metadata": self.metadata,
            "uncommittedBlobs": self.uncommitted_blobs,
            "copy": self.copy,
            "deleted": self.deleted,
        }


def _is_blob_not_found(exc: TransportError) -> bool:
    return exc.status_code == 404 or BLOB_NOT_FOUND_CODE in (exc.detail or "")


class BindingBlobBackend(BlobBackend):
    """Blob backend implemented on top of a binding invoker."""

    kind = "binding"

    def __init__(
        self,
        invoker: BindingInvoker,
        binding_name: str = DEFAULT_BINDING_NAME,
        include: ListInclude | None = None,
    ) -> None:
        self.invoker = invoker
        self.binding_name = binding_name
        self.include = include or ListInclude()

    def describe(self) -> dict[str, str]:
        return {"backend": self.kind, "binding": self.binding_name}

    async def _invoke(self, envelope: BindingEnvelope) -> BindingResponse:
        logger.debug(f"Invoking binding {self.binding_name} operation {envelope.operation.value}")
        return await self.invoker.invoke(self.binding_name, envelope)

    async def upload(self, name: str, content: BlobContent) -> BlobRef:
        """Upload via the create operation; the body is buffered first."""
        data = await read_content(content)
        await self._invoke(
            BindingEnvelope(
                operation=BindingOperation.CREATE,
                metadata={"blobName": name},
                payload=data,
            )
        )
        logger.debug(f"Uploaded blob {name} ({len(data)} bytes) via binding")
        return BlobRef(name=name, size_hint=len(data))

    async def download(self, name: str) -> BlobStream:
        """Download via the get operation.

        Raises:
            NotFoundError: If the binding returned an empty payload
        """
        try:
            response = await self._invoke(
                BindingEnvelope(operation=BindingOperation.GET, metadata={"blobName": name})
            )
        except TransportError as exc:
            if _is_blob_not_found(exc):
                raise NotFoundError(name) from exc
            raise

        if not response.data:
            # Zero-byte blobs are reported the same way as missing ones
            logger.warning(f"Binding returned an empty payload for {name}; treating as not found")
            raise NotFoundError(name)

        data = bytes(response.data)
        return BlobStream(name, iter_bytes(data), size=len(data))

    async def delete(self, name: str) -> None:
        """Delete via the delete operation; a missing blob is not an error."""
        try:
            await self._invoke(
                BindingEnvelope(operation=BindingOperation.DELETE, metadata={"blobName": name})
            )
        except TransportError as exc:
            if not _is_blob_not_found(exc):
                raise
            logger.debug(f"Blob {name} already absent")

    def list_request(
        self, prefix: str | None, cursor: str | None, page_size: int
    ) -> dict[str, Any]:
        return {
            "maxResults": page_size,
            "prefix": prefix or None,
            "marker": cursor or None,
            "include": self.include.to_dict(),
        }

    async def list_blobs(
        self,
        prefix: str | None = None,
        cursor: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> BlobListing:
        """List blobs via the list operation.

        Raises:
            ProtocolError: If the response is not a JSON array
        """
        response = await self._invoke(
            BindingEnvelope(
                operation=BindingOperation.LIST,
                payload=orjson.dumps(self.list_request(prefix, cursor, page_size)),
            )
        )

        try:
            decoded = orjson.loads(response.data)
        except orjson.JSONDecodeError as exc:
            raise ProtocolError("response was not valid JSON") from exc

        if not isinstance(decoded, list):
            raise ProtocolError("response was not an array")

        return translate(decoded, cursor=response.metadata.get("marker"))

    async def close(self) -> None:
        await self.invoker.close()
