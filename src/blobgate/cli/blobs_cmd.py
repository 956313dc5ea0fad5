"""CLI commands operating on blobs through the configured gateway.

Usage:
    blobgate blobs upload report.pdf
    blobgate blobs upload data.bin --name archive/data.bin
    blobgate blobs download report.pdf --output ./report.pdf
    blobgate blobs delete report.pdf
    blobgate blobs list --prefix archive/ --max-results 20
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console
from rich.table import Table

from blobgate.errors import BlobGatewayError
from blobgate.gateway import BlobStorageGateway
from blobgate.observability import LogContext
from blobgate.storage.base import BlobListing
from blobgate.storage.factory import close_gateway, get_gateway

T = TypeVar("T")

app = typer.Typer(help="Upload, download, delete and list blobs")
console = Console()
err_console = Console(stderr=True)


def _run(operation: Callable[[BlobStorageGateway], Awaitable[T]]) -> T:
    """Run one gateway operation, closing the gateway afterwards."""

    async def runner() -> T:
        try:
            with LogContext(request_id="cli"):
                return await operation(get_gateway())
        finally:
            await close_gateway()

    try:
        return asyncio.run(runner())
    except BlobGatewayError as exc:
        err_console.print(f"[red]{exc.code}:[/red] {exc.message}")
        raise typer.Exit(code=1) from exc


@app.command("upload")
def upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
    name: str | None = typer.Option(None, "--name", "-n", help="Blob name (default: file name)"),
) -> None:
    """Upload a local file, replacing any blob of the same name."""
    blob_name = name or path.name

    async def operation(gateway: BlobStorageGateway) -> None:
        with path.open("rb") as handle:
            ref = await gateway.upload(blob_name, handle)
        console.print(f"[green]Uploaded[/green] {ref.name} ({ref.size_hint} bytes)")

    _run(operation)


@app.command("download")
def download(
    name: str = typer.Argument(..., help="Blob name"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Destination file"),
) -> None:
    """Download a blob to a local file."""
    target = output or Path(Path(name).name)

    async def operation(gateway: BlobStorageGateway) -> int:
        written = 0
        async with await gateway.download(name) as stream:
            with target.open("wb") as handle:
                async for chunk in stream:
                    handle.write(chunk)
                    written += len(chunk)
        return written

    written = _run(operation)
    console.print(f"[green]Downloaded[/green] {name} to {target} ({written} bytes)")


@app.command("delete")
def delete(name: str = typer.Argument(..., help="Blob name")) -> None:
    """Delete a blob; a missing blob is not an error."""

    async def operation(gateway: BlobStorageGateway) -> None:
        await gateway.delete(name)

    _run(operation)
    console.print(f"[green]Deleted[/green] {name}")


@app.command("list")
def list_blobs(
    prefix: str | None = typer.Option(None, "--prefix", "-p", help="Name prefix"),
    marker: str | None = typer.Option(None, "--marker", "-m", help="Continuation marker"),
    max_results: int | None = typer.Option(
        None, "--max-results", "-k", min=1, max=5000, help="Page size"
    ),
) -> None:
    """List one page of blobs."""

    async def operation(gateway: BlobStorageGateway) -> BlobListing:
        return await gateway.list_blobs(prefix=prefix, cursor=marker, page_size=max_results)

    listing = _run(operation)

    table = Table("Name", "Last modified")
    for entry in listing.entries:
        modified = entry.last_modified.isoformat() if entry.last_modified else "-"
        table.add_row(entry.name or "-", modified)
    console.print(table)
    if listing.next_cursor:
        console.print(f"More results: --marker {listing.next_cursor}")
