"""Project management commands."""

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from tasknest.cli.tree_formatter import format_tree
from tasknest.cli.utils import (
    console,
    format_timestamp,
    open_storage,
    require_found,
    resolve_id,
    run,
    short_id,
)
from tasknest.domain.models import ProjectDraft, ProjectUpdate

project_app = typer.Typer(help="Project management", no_args_is_help=True)

DIR_OPTION_HELP = "Working directory holding the .tasknest data folder"


@project_app.command("create")
def create_project(
    name: str = typer.Argument(..., help="Project name"),
    description: str = typer.Option("", help="Project description"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Create a new project."""

    async def _create() -> None:
        storage = await open_storage(directory)
        project = await storage.projects.create(ProjectDraft(name=name, description=description))
        console.print(f"[green]✓[/green] Project created: [cyan]{project.id}[/cyan]")

    run(_create())


@project_app.command("list")
def list_projects(
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """List all projects."""

    async def _list() -> None:
        storage = await open_storage(directory)
        projects = storage.projects.list_projects()

        if not projects:
            console.print("[dim]No projects found[/dim]")
            return

        table = Table(title="Projects")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="magenta")
        table.add_column("Tasks", justify="right")
        table.add_column("Created", style="blue")

        for project in projects:
            table.add_row(
                short_id(project.id),
                escape(project.name),
                str(len(storage.tasks.list_tasks(project_id=project.id))),
                format_timestamp(project.created_at),
            )

        console.print(table)

    run(_list())


@project_app.command("show")
def show_project(
    project_id: str = typer.Argument(..., help="Project ID or prefix"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Show project details and its task tree."""

    async def _show() -> None:
        storage = await open_storage(directory)
        resolved_id = resolve_id(
            project_id, (p.id for p in storage.projects.list_projects()), "project"
        )
        project = require_found(storage.projects.get(resolved_id), "project", resolved_id)

        console.print(f"[bold]Project {project.id}[/bold]")
        console.print(f"Name: [magenta]{escape(project.name)}[/magenta]")
        if project.description:
            console.print(f"Description: {escape(project.description)}")
        console.print(f"Created: {project.created_at.isoformat()}")
        console.print(f"Updated: {project.updated_at.isoformat()}")
        console.print()
        console.print(format_tree(storage.tasks.build_tree(project.id), title="Tasks"))

    run(_show())


@project_app.command("update")
def update_project(
    project_id: str = typer.Argument(..., help="Project ID or prefix"),
    name: str | None = typer.Option(None, help="New name"),
    description: str | None = typer.Option(None, help="New description"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Update project attributes."""
    if name is None and description is None:
        console.print("[yellow]Nothing to update[/yellow]")
        raise typer.Exit(1)

    async def _update() -> None:
        storage = await open_storage(directory)
        resolved_id = resolve_id(
            project_id, (p.id for p in storage.projects.list_projects()), "project"
        )
        project = await storage.projects.update(
            resolved_id, ProjectUpdate(name=name, description=description)
        )
        console.print(f"[green]✓[/green] Project updated: [cyan]{project.id}[/cyan]")

    run(_update())


@project_app.command("delete")
def delete_project(
    project_id: str = typer.Argument(..., help="Project ID or prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm deletion"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Delete a project and all of its tasks (requires --yes)."""

    async def _delete() -> None:
        storage = await open_storage(directory)
        resolved_id = resolve_id(
            project_id, (p.id for p in storage.projects.list_projects()), "project"
        )
        removed_tasks = await storage.projects.delete(resolved_id, confirm=yes)
        console.print(
            f"[green]✓[/green] Project deleted: [cyan]{resolved_id}[/cyan] "
            f"({len(removed_tasks)} task(s) removed)"
        )

    run(_delete())
