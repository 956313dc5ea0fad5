"""Base blob backend interface.

Defines the value types shared by every backend and the abstract
contract that the direct and binding backends implement.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO, Union

logger = logging.getLogger(__name__)

# Upload bodies: a buffer, a binary file object, or an async stream of chunks
BlobContent = Union[bytes, bytearray, memoryview, BinaryIO, AsyncIterable[bytes]]

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class BlobRef:
    """Identifies a stored blob."""

    name: str
    size_hint: int | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("BlobRef name must not be empty")


@dataclass(frozen=True)
class BlobEntry:
    """A single entry of a listing page."""

    name: str | None
    last_modified: datetime | None = None


@dataclass(frozen=True)
class BlobListing:
    """One page of blob names.

    next_cursor is set only when the backend reported more results.
    """

    entries: tuple[BlobEntry, ...] = field(default_factory=tuple)
    next_cursor: str | None = None

    @property
    def names(self) -> list[str]:
        return [entry.name for entry in self.entries if entry.name]

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


class BlobStream:
    """Lazily consumed blob body.

    Iterate it (``async for chunk in stream``) or call ``read()``; either way
    the underlying response is released once the body is drained, and
    ``aclose()`` / ``async with`` releases it on early exit or error.
    """

    def __init__(
        self,
        name: str,
        chunks: AsyncIterator[bytes],
        size: int | None = None,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.name = name
        self.size = size
        self._chunks = chunks
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> BlobStream:
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise
        except BaseException:
            await self.aclose()
            raise

    async def read(self) -> bytes:
        """Drain the remaining body into memory."""
        try:
            return b"".join([chunk async for chunk in self])
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()
        if self._on_close is not None:
            await self._on_close()

    async def __aenter__(self) -> BlobStream:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


async def iter_bytes(data: bytes, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
    """Yield an in-memory body in chunks."""
    for start in range(0, len(data), chunk_size):
        yield data[start : start + chunk_size]


def content_length(content: BlobContent) -> int | None:
    """Return the remaining size of content when it can be known without reading."""
    if isinstance(content, (bytes, bytearray)):
        return len(content)
    if isinstance(content, memoryview):
        return content.nbytes
    seekable = getattr(content, "seekable", None)
    if seekable is not None and seekable():
        stream: Any = content
        position = stream.tell()
        end = stream.seek(0, 2)
        stream.seek(position)
        return int(end - position)
    return None


async def read_content(content: BlobContent) -> bytes:
    """Buffer an upload body completely."""
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)
    if hasattr(content, "read"):
        return bytes(content.read())  # type: ignore[union-attr]
    return b"".join([bytes(chunk) async for chunk in content])  # type: ignore[union-attr]


class BlobBackend(ABC):
    """Abstract base class for blob backends."""

    # Short identifier reported by health checks and logs
    kind: str = "abstract"

    @abstractmethod
    async def upload(self, name: str, content: BlobContent) -> BlobRef:
        """Store content under name, replacing any existing blob.

        Args:
            name: Blob name inside the configured container
            content: Bytes, a binary file object or an async iterable of chunks

        Returns:
            BlobRef for the stored blob

        Raises:
            TransportError: If the service call fails
        """
        ...

    @abstractmethod
    async def download(self, name: str) -> BlobStream:
        """Open a blob for reading.

        Raises:
            NotFoundError: If the blob does not exist
            TransportError: If the service call fails
        """
        ...

    @abstractmethod
    async def delete(self, name: str) -> None:
        """Delete a blob. Deleting a missing blob succeeds."""
        ...

    @abstractmethod
    async def list_blobs(
        self,
        prefix: str | None = None,
        cursor: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> BlobListing:
        """Return one page of blobs, resuming after cursor when given."""
        ...

    def describe(self) -> dict[str, str]:
        """Non-secret details about the backend for health reporting."""
        return {"backend": self.kind}

    async def close(self) -> None:
        """Release network clients held by the backend."""
        return None
