"""TaskNest CLI - hierarchical task, project and memory storage."""

import sys
from pathlib import Path

import typer

from tasknest import __version__
from tasknest.cli.memory_commands import memory_app
from tasknest.cli.project_commands import project_app
from tasknest.cli.task_commands import task_app
from tasknest.cli.utils import console, open_storage, run
from tasknest.infrastructure.config import ConfigManager, resolve_working_directory
from tasknest.infrastructure.document_store import tasks_store
from tasknest.infrastructure.migration import MigrationEngine

# Initialize Typer app
app = typer.Typer(
    name="tasknest",
    help="TaskNest - file-backed hierarchical tasks, projects and memories",
    no_args_is_help=True,
)


# ===== Version =====
@app.command()
def version() -> None:
    """Show TaskNest version."""
    console.print(f"[bold]TaskNest[/bold] version [cyan]{__version__}[/cyan]")


# ===== Sub-apps =====
app.add_typer(project_app, name="project")
app.add_typer(task_app, name="task")
app.add_typer(memory_app, name="memory")


# ===== Migration Commands =====
migrate_app = typer.Typer(help="Legacy subtask migration", no_args_is_help=True)
app.add_typer(migrate_app, name="migrate")


@migrate_app.command("status")
def migrate_status(
    directory: Path = typer.Option(  # noqa: B008
        Path("."), "--dir", help="Working directory holding the .tasknest data folder"
    ),
) -> None:
    """Report whether tasks.json still holds legacy subtasks, without migrating."""

    async def _status() -> None:
        config = ConfigManager(project_root=directory).load_config()
        data_dir = resolve_working_directory(directory, config) / config.storage.directory_name
        document = await tasks_store(data_dir).load()
        status = MigrationEngine(config.migration.dangling_subtasks).status(document)

        console.print(f"Schema version: [cyan]{status.schema_version}[/cyan]")
        console.print(f"Legacy subtasks: [cyan]{status.subtask_count}[/cyan]")
        if status.needs_migration:
            console.print("[yellow]Migration pending[/yellow] (runs on next access)")
        else:
            console.print("[green]✓[/green] Up to date")

    run(_status())


@migrate_app.command("run")
def migrate_run(
    directory: Path = typer.Option(  # noqa: B008
        Path("."), "--dir", help="Working directory holding the .tasknest data folder"
    ),
) -> None:
    """Open storage, migrating legacy subtasks if any are present."""

    async def _run() -> None:
        storage = await open_storage(directory)
        status = storage.migration_status()
        if storage.migrated_on_load:
            console.print("[green]✓[/green] Legacy subtasks migrated")
        else:
            console.print("[green]✓[/green] Nothing to migrate")
        console.print(f"[dim]Schema version: {status.schema_version}[/dim]")

    run(_run())


# ===== Main Entry Point =====
def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
