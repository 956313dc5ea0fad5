"""Blob storage gateway.

Public facade over exactly one backend. Validates caller input, applies
per-call deadlines and hands everything else to the backend, whose error
kinds propagate unchanged.

Usage:
    gateway = BlobStorageGateway(backend)
    ref = await gateway.upload("a.txt", b"hello")
    async with await gateway.download("a.txt") as stream:
        data = await stream.read()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from typing import Any, TypeVar

from blobgate.errors import TransportError, ValidationError
from blobgate.storage.base import (
    DEFAULT_PAGE_SIZE,
    BlobBackend,
    BlobContent,
    BlobListing,
    BlobRef,
    BlobStream,
    content_length,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Azure caps a listing page at 5000 items
MAX_PAGE_SIZE = 5000

READ_CHUNK_SIZE = 64 * 1024


def _validate_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Blob name must be a non-empty string")
    return name


async def _prepend(first: bytes, rest: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    yield first
    async for chunk in rest:
        yield chunk


async def _read_chunks(reader: Any, chunk_size: int) -> AsyncIterator[bytes]:
    while chunk := reader.read(chunk_size):
        yield bytes(chunk)


async def _validate_content(content: Any) -> BlobContent:
    """Reject missing or empty upload bodies without losing any of their data."""
    if content is None:
        raise ValidationError("Upload content is required")
    if isinstance(content, str):
        raise ValidationError("Upload content must be bytes, a binary file or a byte stream")

    size = content_length(content)
    if size is not None:
        if size <= 0:
            raise ValidationError("Upload content must not be empty")
        return content  # type: ignore[no-any-return]

    if hasattr(content, "__aiter__"):
        # Peek at the first non-empty chunk to reject empty streams
        iterator = aiter(content)
        async for chunk in iterator:
            if chunk:
                return _prepend(chunk, iterator)
        raise ValidationError("Upload content must not be empty")

    if hasattr(content, "read"):
        # Unseekable readers (pipes, stdin) continue as a chunk stream
        first = content.read(READ_CHUNK_SIZE)
        if not first:
            raise ValidationError("Upload content must not be empty")
        return _prepend(bytes(first), _read_chunks(content, READ_CHUNK_SIZE))

    raise ValidationError("Upload content must be bytes, a binary file or a byte stream")


class BlobStorageGateway:
    """Upload, download, delete and list blobs through one backend."""

    def __init__(
        self,
        backend: BlobBackend,
        default_timeout: float | None = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._backend = backend
        self.default_timeout = default_timeout
        self.default_page_size = default_page_size

    @property
    def backend(self) -> BlobBackend:
        return self._backend

    def describe(self) -> dict[str, str]:
        return self._backend.describe()

    async def _run(self, operation: str, call: Awaitable[T], timeout: float | None) -> T:
        """Await a backend call under the effective deadline.

        Raises:
            TransportError: With cancelled=True when the deadline expires
        """
        deadline = timeout if timeout is not None else self.default_timeout
        if deadline is None:
            return await call
        try:
            async with asyncio.timeout(deadline) as scope:
                return await call
        except TimeoutError as exc:
            if not scope.expired():
                raise
            logger.warning(f"Blob {operation} cancelled after {deadline}s")
            raise TransportError(
                f"Blob {operation} cancelled after {deadline}s", cancelled=True
            ) from exc

    async def upload(
        self, name: str, content: BlobContent, *, timeout: float | None = None
    ) -> BlobRef:
        """Store content under name (last writer wins).

        Raises:
            ValidationError: If name is empty or content is missing or empty
            TransportError: If the backend call fails or the deadline expires
        """
        name = _validate_name(name)

        async def _upload() -> BlobRef:
            # Peeking at a stream body counts against the deadline
            body = await _validate_content(content)
            return await self._backend.upload(name, body)

        ref = await self._run("upload", _upload(), timeout)
        logger.info(f"Uploaded blob {ref.name} via {self._backend.kind} backend")
        return ref

    async def download(self, name: str, *, timeout: float | None = None) -> BlobStream:
        """Open a blob for streaming.

        The deadline covers opening the blob; the returned stream must be
        drained or closed by the caller.

        Raises:
            NotFoundError: If the blob does not exist
            TransportError: If the backend call fails or the deadline expires
        """
        name = _validate_name(name)
        return await self._run("download", self._backend.download(name), timeout)

    async def delete(self, name: str, *, timeout: float | None = None) -> None:
        """Delete a blob; succeeds whether or not it existed."""
        name = _validate_name(name)
        await self._run("delete", self._backend.delete(name), timeout)
        logger.info(f"Deleted blob {name} via {self._backend.kind} backend")

    async def list_blobs(
        self,
        prefix: str | None = None,
        cursor: str | None = None,
        page_size: int | None = None,
        *,
        timeout: float | None = None,
    ) -> BlobListing:
        """Return one page of blobs.

        Raises:
            ValidationError: If page_size is outside 1..5000
            TransportError: If the backend call fails or the deadline expires
            ProtocolError: If the binding response cannot be interpreted
        """
        size = self.default_page_size if page_size is None else page_size
        if size < 1 or size > MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        return await self._run(
            "list",
            self._backend.list_blobs(prefix=prefix or None, cursor=cursor or None, page_size=size),
            timeout,
        )

    async def close(self) -> None:
        await self._backend.close()
