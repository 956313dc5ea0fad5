"""Unit tests for the Dapr binding backend."""

from __future__ import annotations

import base64
import io
from datetime import UTC, datetime

import orjson
import pytest

from blobgate.errors import NotFoundError, ProtocolError, TransportError
from blobgate.storage.binding import (
    BindingBlobBackend,
    BindingEnvelope,
    BindingOperation,
    ListInclude,
)


class TestBindingEnvelope:
    def test_create_body_is_base64(self) -> None:
        envelope = BindingEnvelope(
            operation=BindingOperation.CREATE,
            metadata={"blobName": "a.bin"},
            payload=b"\x00\xffdata",
        )
        body = orjson.loads(envelope.to_json())

        assert body == {
            "operation": "create",
            "metadata": {"blobName": "a.bin"},
            "data": base64.b64encode(b"\x00\xffdata").decode("ascii"),
        }

    def test_list_body_embeds_json_payload(self) -> None:
        payload = orjson.dumps({"maxResults": 10, "prefix": None})
        envelope = BindingEnvelope(operation=BindingOperation.LIST, payload=payload)

        body = orjson.loads(envelope.to_json())
        assert body["data"] == {"maxResults": 10, "prefix": None}
        assert body["metadata"] == {}

    def test_delete_body_has_no_data(self) -> None:
        envelope = BindingEnvelope(
            operation=BindingOperation.DELETE, metadata={"blobName": "a.txt"}
        )
        assert "data" not in orjson.loads(envelope.to_json())


@pytest.mark.asyncio
async def test_upload_sends_create_envelope(
    binding_backend: BindingBlobBackend, binding_invoker
) -> None:
    ref = await binding_backend.upload("a.txt", io.BytesIO(b"hello"))

    assert ref.name == "a.txt"
    assert ref.size_hint == 5
    binding_name, envelope = binding_invoker.calls[-1]
    assert binding_name == "azblob-storage"
    assert envelope.operation is BindingOperation.CREATE
    assert envelope.metadata == {"blobName": "a.txt"}
    assert envelope.payload == b"hello"


@pytest.mark.asyncio
async def test_download_returns_payload(
    binding_backend: BindingBlobBackend, binding_invoker
) -> None:
    binding_invoker.store["a.txt"] = b"hello"

    stream = await binding_backend.download("a.txt")

    assert stream.size == 5
    assert await stream.read() == b"hello"
    _, envelope = binding_invoker.calls[-1]
    assert envelope.operation is BindingOperation.GET
    assert envelope.metadata == {"blobName": "a.txt"}
    assert envelope.payload is None


@pytest.mark.asyncio
async def test_empty_get_payload_is_not_found(binding_backend: BindingBlobBackend) -> None:
    with pytest.raises(NotFoundError):
        await binding_backend.download("missing.txt")


@pytest.mark.asyncio
async def test_blob_not_found_error_is_not_found(
    binding_backend: BindingBlobBackend, binding_invoker
) -> None:
    binding_invoker.fail_with = TransportError(
        "get failed", status_code=500, detail="ERROR CODE: BlobNotFound"
    )
    with pytest.raises(NotFoundError):
        await binding_backend.download("missing.txt")


@pytest.mark.asyncio
async def test_delete_is_idempotent(binding_backend: BindingBlobBackend, binding_invoker) -> None:
    binding_invoker.store["a.txt"] = b"hello"

    await binding_backend.delete("a.txt")
    await binding_backend.delete("a.txt")

    assert "a.txt" not in binding_invoker.store
    _, envelope = binding_invoker.calls[-1]
    assert envelope.operation is BindingOperation.DELETE
    assert envelope.payload is None


@pytest.mark.asyncio
async def test_transport_failures_propagate(
    binding_backend: BindingBlobBackend, binding_invoker
) -> None:
    binding_invoker.fail_with = TransportError("sidecar down", status_code=500, detail="boom")

    with pytest.raises(TransportError):
        await binding_backend.upload("a.txt", b"hello")
    with pytest.raises(TransportError):
        await binding_backend.download("a.txt")
    with pytest.raises(TransportError):
        await binding_backend.delete("a.txt")
    with pytest.raises(TransportError):
        await binding_backend.list_blobs()


@pytest.mark.asyncio
async def test_list_request_payload(binding_backend: BindingBlobBackend, binding_invoker) -> None:
    await binding_backend.list_blobs(prefix="reports/", cursor="m-1", page_size=25)

    _, envelope = binding_invoker.calls[-1]
    assert envelope.operation is BindingOperation.LIST
    assert orjson.loads(envelope.payload) == {
        "maxResults": 25,
        "prefix": "reports/",
        "marker": "m-1",
        "include": {
            "snapshots": False,
            "metadata": True,
            "uncommittedBlobs": False,
            "copy": False,
            "deleted": False,
        },
    }


@pytest.mark.asyncio
async def test_list_defaults_send_nulls(binding_backend: BindingBlobBackend, binding_invoker) -> None:
    await binding_backend.list_blobs()

    request = orjson.loads(binding_invoker.calls[-1][1].payload)
    assert request["maxResults"] == 50
    assert request["prefix"] is None
    assert request["marker"] is None


@pytest.mark.asyncio
async def test_list_translates_records(
    binding_backend: BindingBlobBackend, binding_invoker
) -> None:
    binding_invoker.list_response = (
        b'[{"Name":"x","Properties":{"LastModified":"2024-01-01T00:00:00Z"}}]'
    )

    listing = await binding_backend.list_blobs()

    assert len(listing.entries) == 1
    assert listing.entries[0].name == "x"
    assert listing.entries[0].last_modified == datetime(2024, 1, 1, tzinfo=UTC)
    assert listing.next_cursor is None


@pytest.mark.asyncio
async def test_list_reads_marker_side_channel(
    binding_backend: BindingBlobBackend, binding_invoker
) -> None:
    binding_invoker.store["a.txt"] = b"1"
    binding_invoker.list_metadata = {"marker": "page-2", "number": "1"}

    listing = await binding_backend.list_blobs(page_size=1)

    assert listing.names == ["a.txt"]
    assert listing.next_cursor == "page-2"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("body", "message"),
    [
        (b'{"blobs": []}', "not an array"),
        (b'"text"', "not an array"),
        (b"<EnumerationResults/>", "not valid JSON"),
        (b"", "not valid JSON"),
    ],
)
async def test_list_rejects_unexpected_shapes(
    binding_backend: BindingBlobBackend, binding_invoker, body: bytes, message: str
) -> None:
    binding_invoker.list_response = body

    with pytest.raises(ProtocolError, match=message):
        await binding_backend.list_blobs()


@pytest.mark.asyncio
async def test_binding_name_is_per_instance(binding_invoker) -> None:
    first = BindingBlobBackend(binding_invoker, binding_name="archive-store")
    second = BindingBlobBackend(binding_invoker, binding_name="media-store")

    await first.upload("a.txt", b"1")
    await second.upload("b.txt", b"2")

    assert [name for name, _ in binding_invoker.calls] == ["archive-store", "media-store"]
    assert first.describe() == {"backend": "binding", "binding": "archive-store"}


@pytest.mark.asyncio
async def test_custom_include_flags(binding_invoker) -> None:
    backend = BindingBlobBackend(binding_invoker, include=ListInclude(snapshots=True, deleted=True))

    await backend.list_blobs()

    include = orjson.loads(binding_invoker.calls[-1][1].payload)["include"]
    assert include["snapshots"] is True
    assert include["deleted"] is True


@pytest.mark.asyncio
async def test_close_closes_invoker(binding_backend: BindingBlobBackend, binding_invoker) -> None:
    await binding_backend.close()
    assert binding_invoker.closed
