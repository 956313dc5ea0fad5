"""Blob endpoints: upload, list, download and delete."""

from __future__ import annotations

import mimetypes
import posixpath
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from blobgate.api.deps import get_gateway
from blobgate.errors import ValidationError
from blobgate.gateway import BlobStorageGateway
from blobgate.storage.base import BlobListing

router = APIRouter(prefix="/blobs", tags=["Blobs"])


def listing_to_dict(listing: BlobListing) -> dict[str, Any]:
    return {
        "count": len(listing.entries),
        "blobs": [
            {
                "name": entry.name,
                "lastModified": entry.last_modified.isoformat() if entry.last_modified else None,
            }
            for entry in listing.entries
        ],
        "nextMarker": listing.next_cursor,
    }


@router.post("", status_code=201)
async def upload_blob(
    file: UploadFile = File(...),
    name: str | None = Form(default=None),
    gateway: BlobStorageGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """Upload a multipart file; the blob name defaults to the file name."""
    blob_name = name or file.filename
    if not blob_name:
        raise ValidationError("A blob name or a named file is required")
    ref = await gateway.upload(blob_name, file.file)
    return {"name": ref.name, "sizeHint": ref.size_hint}


@router.get("")
async def list_blobs(
    prefix: str | None = Query(default=None),
    marker: str | None = Query(default=None),
    max_results: int | None = Query(default=None, alias="maxResults", ge=1, le=5000),
    gateway: BlobStorageGateway = Depends(get_gateway),
) -> dict[str, Any]:
    """List one page of blobs."""
    listing = await gateway.list_blobs(prefix=prefix, cursor=marker, page_size=max_results)
    return listing_to_dict(listing)


@router.get("/{name:path}")
async def download_blob(
    name: str,
    gateway: BlobStorageGateway = Depends(get_gateway),
) -> StreamingResponse:
    """Stream a blob back as an attachment."""
    stream = await gateway.download(name)
    media_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
    headers = {"Content-Disposition": f'attachment; filename="{posixpath.basename(name)}"'}
    if stream.size is not None:
        headers["Content-Length"] = str(stream.size)
    return StreamingResponse(
        stream,
        media_type=media_type,
        headers=headers,
        background=BackgroundTask(stream.aclose),
    )


@router.delete("/{name:path}", status_code=204)
async def delete_blob(
    name: str,
    gateway: BlobStorageGateway = Depends(get_gateway),
) -> Response:
    """Delete a blob; deleting a missing blob also returns 204."""
    await gateway.delete(name)
    return Response(status_code=204)
