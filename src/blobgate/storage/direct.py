"""Direct Azure Blob Storage backend."""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from azure.core.exceptions import AzureError, ResourceNotFoundError

from blobgate.errors import NotFoundError, TransportError
from blobgate.storage.base import (
    DEFAULT_PAGE_SIZE,
    BlobBackend,
    BlobContent,
    BlobEntry,
    BlobListing,
    BlobRef,
    BlobStream,
    content_length,
)

logger = logging.getLogger(__name__)


class _CountingStream:
    """Counts bytes of an async upload stream as the SDK consumes it."""

    def __init__(self, source: AsyncIterable[bytes]) -> None:
        self._source = source
        self.count = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._source:
            self.count += len(chunk)
            yield chunk


class DirectBlobBackend(BlobBackend):
    """Blob backend talking straight to Azure using an aio ContainerClient."""

    kind = "direct"

    def __init__(self, container_client: Any, auth_mode: str | None = None) -> None:
        self._container = container_client
        self.auth_mode = auth_mode

    @property
    def container_name(self) -> str:
        return str(getattr(self._container, "container_name", ""))

    def describe(self) -> dict[str, str]:
        details = {"backend": self.kind, "container": self.container_name}
        if self.auth_mode:
            details["authMode"] = self.auth_mode
        return details

    async def upload(self, name: str, content: BlobContent) -> BlobRef:
        """Upload content, overwriting any existing blob of the same name."""
        blob_client = self._container.get_blob_client(name)
        size = content_length(content)
        counter: _CountingStream | None = None
        data: Any = content
        if isinstance(content, (bytearray, memoryview)):
            # The SDK buffers only bytes; other buffers would be iterated as ints
            data = bytes(content)
        elif size is None and hasattr(content, "__aiter__"):
            counter = _CountingStream(content)  # type: ignore[arg-type]
            data = counter

        try:
            await blob_client.upload_blob(data, overwrite=True)
        except AzureError as exc:
            raise TransportError(f"Upload of '{name}' failed: {exc}") from exc

        if counter is not None:
            size = counter.count
        logger.debug(f"Uploaded blob {name} ({size} bytes)")
        return BlobRef(name=name, size_hint=size)

    async def download(self, name: str) -> BlobStream:
        """Open a blob; the first response is awaited here, the body lazily."""
        blob_client = self._container.get_blob_client(name)
        try:
            downloader = await blob_client.download_blob()
        except ResourceNotFoundError as exc:
            raise NotFoundError(name) from exc
        except AzureError as exc:
            raise TransportError(f"Download of '{name}' failed: {exc}") from exc

        size = getattr(downloader, "size", None)
        return BlobStream(name, self._chunks(name, downloader), size=size)

    async def _chunks(self, name: str, downloader: Any) -> AsyncIterator[bytes]:
        try:
            async for chunk in downloader.chunks():
                yield chunk
        except ResourceNotFoundError as exc:
            raise NotFoundError(name) from exc
        except AzureError as exc:
            raise TransportError(f"Download of '{name}' failed: {exc}") from exc

    async def delete(self, name: str) -> None:
        """Delete a blob if it exists."""
        blob_client = self._container.get_blob_client(name)
        try:
            await blob_client.delete_blob()
        except ResourceNotFoundError:
            logger.debug(f"Blob {name} already absent")
            return
        except AzureError as exc:
            raise TransportError(f"Delete of '{name}' failed: {exc}") from exc
        logger.debug(f"Deleted blob {name}")

    async def list_blobs(
        self,
        prefix: str | None = None,
        cursor: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> BlobListing:
        """Fetch a single page in store order."""
        entries: list[BlobEntry] = []
        try:
            pager = self._container.list_blobs(
                name_starts_with=prefix or None, results_per_page=page_size
            )
            pages = pager.by_page(continuation_token=cursor or None)
            try:
                page = await pages.__anext__()
            except StopAsyncIteration:
                return BlobListing()
            async for item in page:
                entries.append(
                    BlobEntry(name=item.name, last_modified=getattr(item, "last_modified", None))
                )
        except AzureError as exc:
            raise TransportError(f"Listing blobs failed: {exc}") from exc

        return BlobListing(
            entries=tuple(entries),
            next_cursor=getattr(pages, "continuation_token", None) or None,
        )

    async def close(self) -> None:
        """Close the container client and any token credential it owns."""
        await self._container.close()
        credential = getattr(self._container, "credential", None)
        close_credential = getattr(credential, "close", None)
        if close_credential is not None and inspect.iscoroutinefunction(close_credential):
            await close_credential()
