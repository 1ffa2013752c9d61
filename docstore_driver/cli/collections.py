"""CLI commands running CRUD operations against a data directory."""

from __future__ import annotations

import asyncio
import json
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.markup import escape

from docstore_driver.bootstrap import build_default_driver
from docstore_driver.core.exceptions import DriverError
from docstore_driver.core.logging import correlation_id_context
from docstore_driver.services.driver import DocumentDriver

app = typer.Typer(name="collections", help="Query and modify collections")
console = Console()

DATA_DIR_HELP = "Data directory (defaults to DOCSTORE_DATA_DIR)"


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(1)


def _parse_json(raw: Optional[str], label: str, default: Any = None) -> Any:
    """Decode a JSON command-line argument."""
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise _fail(f"{label} is not valid JSON: {e}") from e


def _parse_object(raw: Optional[str], label: str) -> Optional[dict[str, Any]]:
    value = _parse_json(raw, label)
    if value is not None and not isinstance(value, dict):
        raise _fail(f"{label} must be a JSON object")
    return value


def _execute(
    data_dir: Optional[Path], operation: Callable[[DocumentDriver], Awaitable[Any]]
) -> Any:
    """Run ``operation`` against a fresh driver and close it afterwards.

    Each invocation gets its own correlation id for the log records it emits.
    """

    async def _run() -> Any:
        driver = build_default_driver(data_dir)
        try:
            return await operation(driver)
        finally:
            await driver.close()

    try:
        with correlation_id_context(uuid.uuid4().hex):
            return asyncio.run(_run())
    except DriverError as e:
        raise _fail(str(e)) from e


def _emit(result: Any) -> None:
    console.print_json(json.dumps(result, default=str))


@app.command("count")
def count_documents(
    collection: str = typer.Argument(..., help="Collection id"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Query as JSON"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
) -> None:
    """Count documents matching a query."""
    parsed = _parse_object(query, "query")
    _emit(_execute(data_dir, lambda driver: driver.count(collection, parsed)))


@app.command("get")
def get_documents(  # pylint: disable=too-many-arguments
    collection: str = typer.Argument(..., help="Collection id"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Query as JSON"),
    fields: Optional[list[str]] = typer.Option(None, "--field", "-f", help="Field to return"),
    order: Optional[list[str]] = typer.Option(
        None, "--order", "-o", help="Sort token such as asc(name) or desc(age)"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum documents to return"),
    skip: Optional[int] = typer.Option(None, "--skip", help="Documents to skip first"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
) -> None:
    """List documents matching a query."""
    parsed = _parse_object(query, "query")
    _emit(
        _execute(
            data_dir,
            lambda driver: driver.get(
                collection, parsed, fields or None, order or None, limit, skip
            ),
        )
    )


@app.command("post")
def post_document(
    collection: str = typer.Argument(..., help="Collection id"),
    document: str = typer.Argument(..., help="Document as JSON"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
) -> None:
    """Insert a document and print it with its generated id."""
    parsed = _parse_object(document, "document") or {}
    _emit(_execute(data_dir, lambda driver: driver.post(collection, parsed)))


@app.command("put")
def put_documents(
    collection: str = typer.Argument(..., help="Collection id"),
    document: str = typer.Argument(..., help="Replacement document as JSON"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Query as JSON"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
) -> None:
    """Replace every matching document, keeping its id."""
    parsed_document = _parse_object(document, "document") or {}
    parsed_query = _parse_object(query, "query")
    _emit(_execute(data_dir, lambda driver: driver.put(collection, parsed_document, parsed_query)))


@app.command("patch")
def patch_documents(
    collection: str = typer.Argument(..., help="Collection id"),
    document: str = typer.Argument(..., help="Fields to merge as JSON"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Query as JSON"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
) -> None:
    """Merge fields onto every matching document."""
    parsed_document = _parse_object(document, "document") or {}
    parsed_query = _parse_object(query, "query")
    _emit(
        _execute(data_dir, lambda driver: driver.patch(collection, parsed_document, parsed_query))
    )


@app.command("delete")
def delete_documents(
    collection: str = typer.Argument(..., help="Collection id"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Query as JSON"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help=DATA_DIR_HELP),
) -> None:
    """Remove every matching document."""
    parsed = _parse_object(query, "query")
    _emit(_execute(data_dir, lambda driver: driver.delete(collection, parsed)))


__all__ = ["app"]
