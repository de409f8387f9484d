"""Command-line entry point for posting documents to pipeline endpoints.

Endpoints and credentials come from the environment (see `ingest_client.config`):

```bash
export INGEST_ENDPOINTS=http://fusion1:8764/api/apollo/index-pipelines/docs/collections/c1/index
export INGEST_USERNAME=admin INGEST_PASSWORD=secret INGEST_REALM=native
ingest-client post docs.json --batch-size 500
```
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer

from ingest_client.clients import create_pipeline_client
from ingest_client.config import get_settings
from ingest_client.core.exceptions import IngestClientError
from ingest_client.foundation.logger import configure_logging

logger = logging.getLogger("ingest_client.cli")

app = typer.Typer(pretty_exceptions_enable=False, no_args_is_help=True)

JSON_LINES_SUFFIXES = {".jsonl", ".ndjson"}


def load_documents(path: Path) -> list[Any]:
    """Load documents from a JSON array file or a JSON Lines file.

    A file holding a single JSON object is treated as a one-document batch.
    """
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in JSON_LINES_SUFFIXES:
        return [json.loads(line) for line in text.splitlines() if line.strip()]

    data = json.loads(text)
    return data if isinstance(data, list) else [data]


def chunked(documents: list[Any], size: int | None) -> list[list[Any]]:
    if not size or size >= len(documents):
        return [documents]
    return [documents[i : i + size] for i in range(0, len(documents), size)]


@app.callback()
def main() -> None:
    """Post document batches to clustered pipeline endpoints."""


@app.command()
def post(
    file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, help="JSON array or JSON Lines file of documents."),
    ],
    batch_size: Annotated[
        int | None, typer.Option("--batch-size", "-b", min=1, help="Documents per request (default: all).")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """Post the documents in FILE, failing over between endpoints as needed."""
    try:
        settings = get_settings()
    except ValueError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=2) from e

    configure_logging("DEBUG" if verbose else settings.log_level)

    try:
        documents = load_documents(file)
    except (OSError, ValueError) as e:
        typer.echo(f"Cannot read documents from {file}: {e}", err=True)
        raise typer.Exit(code=2) from e

    if not documents:
        typer.echo(f"No documents found in {file}")
        return

    batches = chunked(documents, batch_size)
    try:
        with create_pipeline_client(settings.client) as client:
            for number, batch in enumerate(batches, start=1):
                client.post_batch(batch)
                logger.info("Posted batch", extra={"batch": number, "batches": len(batches), "documents": len(batch)})
    except IngestClientError as e:
        logger.exception("Posting documents failed", extra={"error": {"message": str(e), "type": type(e).__name__}})
        typer.echo(f"Failed: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Posted {len(documents)} documents in {len(batches)} batch(es)")


if __name__ == "__main__":
    app()
