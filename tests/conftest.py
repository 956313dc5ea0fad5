"""Shared fakes and fixtures.

FakeContainerClient mimics the slice of azure.storage.blob.aio.ContainerClient
used by the direct backend; FakeBindingInvoker mimics a Dapr sidecar with the
Azure Blob Storage binding, both backed by in-memory dicts.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import orjson
import pytest
from azure.core.exceptions import ResourceNotFoundError, ServiceRequestError

from blobgate.errors import TransportError
from blobgate.gateway import BlobStorageGateway
from blobgate.storage.binding import (
    BindingBlobBackend,
    BindingEnvelope,
    BindingOperation,
    BindingResponse,
)
from blobgate.storage.direct import DirectBlobBackend


@dataclass
class StoredBlob:
    data: bytes
    last_modified: datetime


@dataclass
class FakeBlobProperties:
    name: str
    last_modified: datetime


class FakeDownloader:
    def __init__(self, data: bytes, chunk_size: int = 4) -> None:
        self._data = data
        self._chunk_size = chunk_size
        self.size = len(data)

    async def chunks(self) -> AsyncIterator[bytes]:
        for i in range(0, len(self._data), self._chunk_size):
            yield self._data[i : i + self._chunk_size]


class FakeBlobClient:
    def __init__(self, container: FakeContainerClient, name: str) -> None:
        self._container = container
        self._name = name

    async def upload_blob(self, data: Any, overwrite: bool = False, **kwargs: Any) -> dict:
        self._container.check_failure()
        # Like the SDK: only bytes are buffered, sync iterables are streamed
        # chunk by chunk, so a bytearray or memoryview yields ints
        if isinstance(data, bytes):
            body = data
        elif hasattr(data, "read"):
            body = data.read()
        elif hasattr(data, "__aiter__"):
            body = b"".join([chunk async for chunk in data])
        else:
            body = b""
            for chunk in data:
                body += chunk
        self._container.store[self._name] = StoredBlob(body, datetime.now(UTC))
        self._container.upload_kwargs.append({"overwrite": overwrite, **kwargs})
        return {"etag": "0x1"}

    async def download_blob(self) -> FakeDownloader:
        self._container.check_failure()
        if self._name not in self._container.store:
            raise ResourceNotFoundError("The specified blob does not exist.")
        return FakeDownloader(self._container.store[self._name].data)

    async def delete_blob(self) -> None:
        self._container.check_failure()
        if self._name not in self._container.store:
            raise ResourceNotFoundError("The specified blob does not exist.")
        del self._container.store[self._name]


async def _iterate(items: list[FakeBlobProperties]) -> AsyncIterator[FakeBlobProperties]:
    for item in items:
        yield item


class FakePageIterator:
    """Offset-based pages; the continuation token is the next offset."""

    def __init__(self, items: list[FakeBlobProperties], page_size: int, token: str | None):
        self._items = items
        self._page_size = page_size
        self._offset = int(token) if token else 0
        self._exhausted = False
        self.continuation_token: str | None = None

    def __aiter__(self) -> FakePageIterator:
        return self

    async def __anext__(self) -> AsyncIterator[FakeBlobProperties]:
        if self._exhausted:
            raise StopAsyncIteration
        page = self._items[self._offset : self._offset + self._page_size]
        self._offset += self._page_size
        if self._offset < len(self._items):
            self.continuation_token = str(self._offset)
        else:
            self.continuation_token = None
            self._exhausted = True
        return _iterate(page)


class FakeItemPaged:
    def __init__(self, items: list[FakeBlobProperties], page_size: int) -> None:
        self._items = items
        self._page_size = page_size

    def by_page(self, continuation_token: str | None = None) -> FakePageIterator:
        return FakePageIterator(self._items, self._page_size, continuation_token)


class FakeContainerClient:
    def __init__(self, container_name: str = "uploads") -> None:
        self.container_name = container_name
        self.store: dict[str, StoredBlob] = {}
        self.upload_kwargs: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None
        self.closed = False

    def check_failure(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def get_blob_client(self, blob: str) -> FakeBlobClient:
        return FakeBlobClient(self, blob)

    def list_blobs(
        self, name_starts_with: str | None = None, results_per_page: int | None = None
    ) -> FakeItemPaged:
        self.check_failure()
        items = [
            FakeBlobProperties(name=name, last_modified=blob.last_modified)
            for name, blob in sorted(self.store.items())
            if name_starts_with is None or name.startswith(name_starts_with)
        ]
        return FakeItemPaged(items, results_per_page or 5000)

    async def close(self) -> None:
        self.closed = True


class FakeBindingInvoker:
    """In-memory stand-in for a Dapr sidecar with the Azure blob binding."""

    def __init__(self) -> None:
        self.store: dict[str, bytes] = {}
        self.calls: list[tuple[str, BindingEnvelope]] = []
        self.list_response: bytes | None = None
        self.list_metadata: dict[str, str] = {}
        self.fail_with: Exception | None = None
        self.closed = False

    async def invoke(self, binding_name: str, envelope: BindingEnvelope) -> BindingResponse:
        self.calls.append((binding_name, envelope))
        if self.fail_with is not None:
            raise self.fail_with

        name = envelope.metadata.get("blobName", "")
        if envelope.operation is BindingOperation.CREATE:
            self.store[name] = envelope.payload or b""
            return BindingResponse()
        if envelope.operation is BindingOperation.GET:
            return BindingResponse(data=self.store.get(name, b""))
        if envelope.operation is BindingOperation.DELETE:
            if name not in self.store:
                raise TransportError(
                    "delete failed",
                    status_code=500,
                    detail='{"errorCode":"ERR_INVOKE_OUTPUT_BINDING",'
                    '"message":"RESPONSE 404: 404 The specified blob does not exist.\\n'
                    'ERROR CODE: BlobNotFound"}',
                )
            del self.store[name]
            return BindingResponse()

        if self.list_response is not None:
            return BindingResponse(data=self.list_response, metadata=dict(self.list_metadata))
        request = orjson.loads(envelope.payload or b"{}")
        prefix = request.get("prefix") or ""
        records = [
            {"Name": blob_name, "Properties": {"LastModified": "2024-01-01T00:00:00Z"}}
            for blob_name in sorted(self.store)
            if blob_name.startswith(prefix)
        ]
        return BindingResponse(data=orjson.dumps(records), metadata=dict(self.list_metadata))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def container_client() -> FakeContainerClient:
    return FakeContainerClient()


@pytest.fixture
def direct_backend(container_client: FakeContainerClient) -> DirectBlobBackend:
    return DirectBlobBackend(container_client, auth_mode="KEY")


@pytest.fixture
def binding_invoker() -> FakeBindingInvoker:
    return FakeBindingInvoker()


@pytest.fixture
def binding_backend(binding_invoker: FakeBindingInvoker) -> BindingBlobBackend:
    return BindingBlobBackend(binding_invoker)


@pytest.fixture(params=["direct", "binding"])
def gateway(
    request: pytest.FixtureRequest,
    direct_backend: DirectBlobBackend,
    binding_backend: BindingBlobBackend,
) -> BlobStorageGateway:
    """Gateway over each backend in turn."""
    backend = direct_backend if request.param == "direct" else binding_backend
    return BlobStorageGateway(backend)


@pytest.fixture
def service_request_error() -> ServiceRequestError:
    return ServiceRequestError("Connection reset by peer")
