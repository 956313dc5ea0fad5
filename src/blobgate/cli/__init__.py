"""CLI commands for blobgate.

Provides command-line interface using Typer:
- blobgate serve: Run the API server
- blobgate blobs upload|download|delete|list: Operate on blobs directly

Usage:
    blobgate --help
    blobgate serve --port 8080
    blobgate blobs list --prefix reports/
"""

import typer

from blobgate.cli.blobs_cmd import app as blobs_app
from blobgate.cli.serve import app as serve_app

app = typer.Typer(
    name="blobgate",
    help="blobgate: blob storage gateway over Azure Blob Storage or a Dapr binding",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")
app.add_typer(blobs_app, name="blobs")


@app.callback()
def callback() -> None:
    """blobgate: blob storage gateway over Azure Blob Storage or a Dapr binding."""


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
