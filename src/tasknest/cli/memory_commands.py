"""Memory management commands."""

import json
from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from tasknest.cli.utils import (
    console,
    format_timestamp,
    open_storage,
    parse_metadata,
    require_found,
    resolve_id,
    run,
    short_id,
)
from tasknest.domain.models import MemoryDraft, MemoryUpdate
from tasknest.storage import Storage

memory_app = typer.Typer(help="Memory management", no_args_is_help=True)

DIR_OPTION_HELP = "Working directory holding the .tasknest data folder"

# Content preview width in tables
PREVIEW_LENGTH = 40


def _resolve_memory_id(storage: Storage, value: str) -> str:
    return resolve_id(value, (m.id for m in storage.memories.list_memories()), "memory")


def _preview(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


@memory_app.command("create")
def create_memory(
    title: str = typer.Argument(..., help="Short title (50 characters or fewer recommended)"),
    content: str = typer.Argument(..., help="Memory content"),
    category: str | None = typer.Option(None, help="Category, e.g. 'project_context'"),
    metadata: str | None = typer.Option(None, help="Metadata as a JSON object"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Store a new memory."""
    metadata_dict = parse_metadata(metadata) or {}

    async def _create() -> None:
        storage = await open_storage(directory)
        memory = await storage.memories.create(
            MemoryDraft(title=title, content=content, category=category, metadata=metadata_dict)
        )
        console.print(f"[green]✓[/green] Memory created: [cyan]{memory.id}[/cyan]")
        if len(memory.title) > storage.config.memory.title_max_length:
            console.print(
                f"[yellow]Warning:[/yellow] title is longer than "
                f"{storage.config.memory.title_max_length} characters"
            )

    run(_create())


@memory_app.command("list")
def list_memories(
    category: str | None = typer.Option(None, help="Filter by category"),
    limit: int | None = typer.Option(None, help="Maximum number of memories", min=1, max=1000),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """List stored memories."""

    async def _list() -> None:
        storage = await open_storage(directory)
        memories = storage.memories.list_memories(
            category=category,
            limit=limit if limit is not None else storage.config.memory.default_list_limit,
        )

        if not memories:
            console.print("[dim]No memories found[/dim]")
            return

        table = Table(title="Memories")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", style="magenta")
        table.add_column("Category", style="green")
        table.add_column("Content")
        table.add_column("Updated", style="blue")

        for memory in memories:
            table.add_row(
                short_id(memory.id),
                escape(memory.title),
                escape(memory.category or "-"),
                escape(_preview(memory.content)),
                format_timestamp(memory.updated_at),
            )

        console.print(table)

    run(_list())


@memory_app.command("show")
def show_memory(
    memory_id: str = typer.Argument(..., help="Memory ID or prefix"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Show a memory in full."""

    async def _show() -> None:
        storage = await open_storage(directory)
        resolved_id = _resolve_memory_id(storage, memory_id)
        memory = require_found(storage.memories.get(resolved_id), "memory", resolved_id)

        console.print(f"[bold]Memory {memory.id}[/bold]")
        console.print(f"Title: [magenta]{escape(memory.title)}[/magenta]")
        console.print(f"Category: {escape(memory.category or '-')}")
        console.print(f"Created: {memory.created_at.isoformat()}")
        console.print(f"Updated: {memory.updated_at.isoformat()}")
        console.print()
        console.print(escape(memory.content))
        if memory.metadata:
            console.print("\n[dim]Metadata:[/dim]")
            console.print(escape(json.dumps(memory.metadata, indent=2)))

    run(_show())


@memory_app.command("update")
def update_memory(
    memory_id: str = typer.Argument(..., help="Memory ID or prefix"),
    title: str | None = typer.Option(None, help="New title"),
    content: str | None = typer.Option(None, help="New content"),
    category: str | None = typer.Option(None, help="New category"),
    metadata: str | None = typer.Option(None, help="Replacement metadata as a JSON object"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Update memory fields. Metadata replaces the stored mapping."""
    changes = {
        "title": title,
        "content": content,
        "category": category,
        "metadata": parse_metadata(metadata),
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        console.print("[yellow]Nothing to update[/yellow]")
        raise typer.Exit(1)

    async def _update() -> None:
        storage = await open_storage(directory)
        memory = await storage.memories.update(
            _resolve_memory_id(storage, memory_id), MemoryUpdate(**changes)
        )
        console.print(f"[green]✓[/green] Memory updated: [cyan]{memory.id}[/cyan]")

    run(_update())


@memory_app.command("delete")
def delete_memory(
    memory_id: str = typer.Argument(..., help="Memory ID or prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm deletion"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Delete a memory (requires --yes)."""

    async def _delete() -> None:
        storage = await open_storage(directory)
        resolved_id = _resolve_memory_id(storage, memory_id)
        await storage.memories.delete(resolved_id, confirm=yes)
        console.print(f"[green]✓[/green] Memory deleted: [cyan]{resolved_id}[/cyan]")

    run(_delete())


@memory_app.command("search")
def search_memories(
    query: str = typer.Argument(..., help="Text to search for"),
    limit: int | None = typer.Option(None, help="Maximum number of results", min=1, max=100),
    threshold: float | None = typer.Option(
        None, help="Minimum relevance score (0-1)", min=0.0, max=1.0
    ),
    category: str | None = typer.Option(None, help="Only search this category"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Search memories by title, content and metadata."""

    async def _search() -> None:
        storage = await open_storage(directory)
        results = storage.memory_search().search(
            query, limit=limit, threshold=threshold, category=category
        )

        if not results:
            console.print("[dim]No matching memories[/dim]")
            return

        table = Table(title=f"Results for '{escape(query)}'")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Score", justify="right")
        table.add_column("Title", style="magenta")
        table.add_column("Matched", style="green")

        for result in results:
            table.add_row(
                short_id(result.memory.id),
                f"{result.score:.2f}",
                escape(result.memory.title),
                ", ".join(result.matched_fields),
            )

        console.print(table)

    run(_search())
