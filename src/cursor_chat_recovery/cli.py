"""Command-line interface for Cursor Chat Recovery.

This module provides a CLI built with Typer for locating Cursor workspace
storage, extracting chat history and poking at storage files for debugging.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Annotated, Optional

import orjson
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import Settings
from .exceptions import StorageConnectionError
from .scanner import (
    ExtractionOrchestrator,
    StorageConnection,
    extract_messages,
    find_candidate_stores,
    find_storage_root,
    maybe_decode,
)

app = typer.Typer(
    name="cursor-chat-recovery",
    help="Recover AI chat history from Cursor's workspace storage.",
    no_args_is_help=True,
)
console = Console()


def configure_logging(level: str = "INFO") -> None:
    """Send the package's log records to stderr through Rich."""
    package_logger = logging.getLogger("cursor_chat_recovery")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    package_logger.setLevel(level.upper())


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"cursor-chat-recovery version {__version__}")
        raise typer.Exit()


def _truncate(value: object, width: int = 80) -> str:
    if isinstance(value, bytes):
        value = maybe_decode(value)
    text = str(value).replace("\n", " ")
    return text if len(text) <= width else text[: width - 3] + "..."


def _settings(storage_path: Path | None, min_size: int | None) -> Settings:
    return Settings.from_env().with_overrides(storage_root=storage_path, min_db_size_bytes=min_size)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version", "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose", "-v",
            help="Show debug logging.",
        ),
    ] = False,
):
    """Cursor Chat Recovery - Recover AI chat history from Cursor's workspace storage."""
    settings = Settings.from_env()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def workspaces(
    storage_path: Annotated[
        Optional[Path],
        typer.Option(
            "--storage-path", "-s",
            help="Custom workspaceStorage directory to scan.",
            exists=True,
            file_okay=False,
        ),
    ] = None,
    min_size: Annotated[
        Optional[int],
        typer.Option(
            "--min-size",
            help="Skip storage files of this many bytes or fewer.",
        ),
    ] = None,
):
    """List workspaces whose storage file may contain chat history."""
    settings = _settings(storage_path, min_size)
    root = settings.storage_root or find_storage_root()
    if root is None:
        console.print("[yellow]No Cursor workspace storage found.[/yellow]")
        return

    stores = find_candidate_stores(root, min_size_bytes=settings.min_db_size_bytes, db_file_name=settings.db_file_name)
    if not stores:
        console.print(f"No workspaces found in {root}")
        return

    table = Table(title=f"Workspaces in {root}")
    table.add_column("Workspace", style="cyan")
    table.add_column("Database")
    table.add_column("Size", justify="right")
    for store in stores:
        table.add_row(store.workspace_id, str(store.database_path), f"{store.size_bytes:,}")
    console.print(table)
    console.print(f"{len(stores)} workspaces")


@app.command()
def extract(
    storage_path: Annotated[
        Optional[Path],
        typer.Option(
            "--storage-path", "-s",
            help="Custom workspaceStorage directory to scan.",
            exists=True,
            file_okay=False,
        ),
    ] = None,
    min_size: Annotated[
        Optional[int],
        typer.Option(
            "--min-size",
            help="Skip storage files of this many bytes or fewer.",
        ),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option(
            "--output", "-o",
            help="Write the extracted items as JSON to this file.",
            dir_okay=False,
        ),
    ] = None,
    messages: Annotated[
        bool,
        typer.Option(
            "--messages", "-m",
            help="Include the normalized messages of each item.",
        ),
    ] = False,
):
    """Extract chat items from every workspace."""
    settings = _settings(storage_path, min_size)
    orchestrator = ExtractionOrchestrator(settings=settings)
    try:
        items = orchestrator.extract_all()
    finally:
        orchestrator.close()

    if output:
        records = [item.to_dict() for item in items]
        if messages:
            # orjson serializes the NormalizedMessage dataclasses directly
            for record, item in zip(records, items):
                record["messages"] = extract_messages(item.data)
        output.write_bytes(orjson.dumps(records, option=orjson.OPT_INDENT_2))
        console.print(f"Wrote {len(items)} chat items to {output}")
        return

    if not items:
        console.print("0 chat items found")
        return

    table = Table(title="Chat items")
    table.add_column("Workspace", style="cyan")
    table.add_column("Key")
    table.add_column("Rich", justify="center")
    table.add_column("Bytes", justify="right")
    table.add_column("Messages", justify="right")
    for item in items:
        table.add_row(
            item.workspace_display_name or item.workspace_name or item.workspace_id,
            item.source_key,
            "yes" if item.is_rich_chat_data else "no",
            f"{item.byte_size:,}",
            str(len(extract_messages(item.data))),
        )
    console.print(table)

    stats = orchestrator.get_statistics()
    console.print(
        f"{stats['items']} chat items ({stats['rich_items']} rich, {stats['prompt_items']} prompts-only) "
        f"from {stats['workspaces_processed']} workspaces"
    )
    if stats["workspaces_failed"]:
        console.print(f"[yellow]{stats['workspaces_failed']} workspaces could not be read[/yellow]")

    if messages:
        for item in items:
            console.rule(f"{item.workspace_id} {item.source_key}")
            for message in extract_messages(item.data):
                console.print(f"[bold]{message.role}:[/bold] {escape(message.content)}", soft_wrap=True)


@app.command()
def keys(
    db_path: Annotated[
        Path,
        typer.Argument(
            help="Path to a state.vscdb file.",
            exists=True,
            dir_okay=False,
        ),
    ],
    pattern: Annotated[
        Optional[str],
        typer.Option(
            "--pattern", "-p",
            help="Only list keys containing this text.",
        ),
    ] = None,
):
    """List the keys stored in a storage file."""
    with StorageConnection() as connection:
        try:
            connection.open(db_path)
            found = connection.list_keys(pattern)
        except (StorageConnectionError, sqlite3.Error) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    for key in found:
        console.print(key, highlight=False, soft_wrap=True)
    console.print(f"\n{len(found)} keys")


@app.command()
def query(
    db_path: Annotated[
        Path,
        typer.Argument(
            help="Path to a state.vscdb file.",
            exists=True,
            dir_okay=False,
        ),
    ],
    sql: Annotated[str, typer.Argument(help="SQL query to run (read-only).")],
):
    """Run a raw SQL query against a storage file."""
    with StorageConnection() as connection:
        try:
            connection.open(db_path)
            rows = connection.execute_raw(sql)
        except (StorageConnectionError, sqlite3.Error) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    if not rows:
        console.print("No rows")
        return

    table = Table()
    for column in rows[0]:
        table.add_column(column)
    for row in rows:
        table.add_row(*(_truncate(value) for value in row.values()))
    console.print(table)
    console.print(f"{len(rows)} rows")


def run():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
