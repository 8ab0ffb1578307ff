"""Task management commands."""

from pathlib import Path
from typing import Any

import typer
from rich.markup import escape
from rich.table import Table

from tasknest.cli.tree_formatter import format_tree, get_status_color
from tasknest.cli.utils import (
    console,
    open_storage,
    require_found,
    resolve_id,
    run,
    short_id,
)
from tasknest.domain.models import Task, TaskDraft, TaskStatus, TaskUpdate
from tasknest.storage import Storage

task_app = typer.Typer(help="Task management", no_args_is_help=True)

DIR_OPTION_HELP = "Working directory holding the .tasknest data folder"


def _resolve_task_id(storage: Storage, value: str) -> str:
    return resolve_id(value, (t.id for t in storage.tasks.list_tasks()), "task")


def _resolve_project_id(storage: Storage, value: str) -> str:
    return resolve_id(value, (p.id for p in storage.projects.list_projects()), "project")


def _task_table(tasks: list[Task], title: str, indent: bool = False) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="magenta")
    table.add_column("Level", justify="center")
    table.add_column("Priority", justify="center")
    table.add_column("Status")

    for task in tasks:
        name = escape(task.name)
        if indent:
            name = "  " * task.level + name
        color = get_status_color(task.status)
        table.add_row(
            short_id(task.id),
            name,
            str(task.level),
            str(task.priority),
            f"[{color}]{task.status.value}[/{color}]",
        )
    return table


@task_app.command("create")
def create_task(
    name: str = typer.Argument(..., help="Task name"),
    project: str = typer.Option(..., "--project", "-p", help="Project ID or prefix"),
    parent: str | None = typer.Option(None, "--parent", help="Parent task ID or prefix"),
    details: str = typer.Option("", help="Task details"),
    priority: int = typer.Option(5, help="Priority (1-10)", min=1, max=10),
    complexity: int | None = typer.Option(None, help="Complexity (1-10)", min=1, max=10),
    status: TaskStatus | None = typer.Option(None, help="Initial status"),  # noqa: B008
    tag: list[str] | None = typer.Option(None, "--tag", help="Tag (repeatable)"),  # noqa: B008
    depends_on: list[str]
    | None = typer.Option(None, "--depends-on", help="Dependency task ID (repeatable)"),  # noqa: B008
    estimated_hours: float | None = typer.Option(None, help="Estimated hours", min=0),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Create a task, optionally nested under a parent task.

    Examples:
        tasknest task create "Design schema" --project 3f2a
        tasknest task create "Write migration" --project 3f2a --parent 9c1e --tag db
    """

    async def _create() -> None:
        storage = await open_storage(directory)
        draft = TaskDraft(
            name=name,
            details=details,
            project_id=_resolve_project_id(storage, project),
            parent_id=_resolve_task_id(storage, parent) if parent else None,
            status=status,
            priority=priority,
            complexity=complexity,
            tags=tag or [],
            depends_on=[_resolve_task_id(storage, d) for d in depends_on or []],
            estimated_hours=estimated_hours,
        )
        task = await storage.tasks.create(draft)

        console.print(f"[green]✓[/green] Task created: [cyan]{task.id}[/cyan]")
        console.print(f"[dim]Level: {task.level}[/dim]")

    run(_create())


@task_app.command("list")
def list_tasks(
    project: str | None = typer.Option(None, "--project", "-p", help="Filter by project"),
    parent: str | None = typer.Option(None, "--parent", help="Only the subtree below this task"),
    include_completed: bool = typer.Option(
        True, "--include-completed/--hide-completed", help="Include completed tasks"
    ),
    hierarchical: bool = typer.Option(
        False, "--hierarchical/--flat", help="Order parents before their children"
    ),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """List tasks."""

    async def _list() -> None:
        storage = await open_storage(directory)
        tasks = storage.tasks.list_tasks(
            project_id=_resolve_project_id(storage, project) if project else None,
            parent_id=_resolve_task_id(storage, parent) if parent else None,
            include_completed=include_completed,
            hierarchical=hierarchical,
        )

        if not tasks:
            console.print("[dim]No tasks found[/dim]")
            return

        console.print(_task_table(tasks, title="Tasks", indent=hierarchical))

    run(_list())


@task_app.command("show")
def show_task(
    task_id: str = typer.Argument(..., help="Task ID or prefix"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Get detailed task information."""

    async def _show() -> None:
        storage = await open_storage(directory)
        resolved_id = _resolve_task_id(storage, task_id)
        task = require_found(storage.tasks.get(resolved_id), "task", resolved_id)

        console.print(f"[bold]Task {task.id}[/bold]")
        console.print(f"Name: [magenta]{escape(task.name)}[/magenta]")
        if task.details:
            console.print(f"Details: {escape(task.details)}")
        console.print(f"Project: {task.project_id}")
        console.print(f"Parent: {task.parent_id or '-'}")
        console.print(f"Level: {task.level}")
        console.print(f"Status: {task.status.value}")
        console.print(f"Completed: {'yes' if task.completed else 'no'}")
        console.print(f"Priority: {task.priority}")
        if task.complexity is not None:
            console.print(f"Complexity: {task.complexity}")
        if task.estimated_hours is not None:
            console.print(f"Estimated Hours: {task.estimated_hours}")
        if task.tags:
            console.print(f"Tags: {escape(', '.join(task.tags))}")
        if task.depends_on:
            console.print(f"Depends On: {', '.join(task.depends_on)}")
        console.print(f"Created: {task.created_at.isoformat()}")
        console.print(f"Updated: {task.updated_at.isoformat()}")

        ancestors = storage.tasks.get_ancestors(task.id)
        if ancestors:
            path = " > ".join(escape(a.name) for a in ancestors)
            console.print(f"Path: {path}")

        children = storage.tasks.get_children(task.id)
        if children:
            console.print()
            console.print(_task_table(children, title="Child Tasks"))

    run(_show())


@task_app.command("update")
def update_task(
    task_id: str = typer.Argument(..., help="Task ID or prefix"),
    name: str | None = typer.Option(None, help="New name"),
    details: str | None = typer.Option(None, help="New details"),
    status: TaskStatus | None = typer.Option(None, help="New status"),  # noqa: B008
    completed: bool | None = typer.Option(
        None, "--completed/--not-completed", help="Mark completed or not"
    ),
    priority: int | None = typer.Option(None, help="New priority (1-10)", min=1, max=10),
    complexity: int | None = typer.Option(None, help="New complexity (1-10)", min=1, max=10),
    tag: list[str] | None = typer.Option(None, "--tag", help="Replace tags (repeatable)"),  # noqa: B008
    depends_on: list[str]
    | None = typer.Option(None, "--depends-on", help="Replace dependencies (repeatable)"),  # noqa: B008
    estimated_hours: float | None = typer.Option(None, help="New estimate in hours", min=0),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Update task attributes. Use 'task move' to change the parent.

    Examples:
        tasknest task update 9c1e --status in-progress
        tasknest task update 9c1e --completed
    """

    async def _update() -> None:
        storage = await open_storage(directory)
        resolved_id = _resolve_task_id(storage, task_id)

        changes: dict[str, Any] = {
            "name": name,
            "details": details,
            "status": status,
            "completed": completed,
            "priority": priority,
            "complexity": complexity,
            "estimated_hours": estimated_hours,
            "tags": tag or None,
            "depends_on": [_resolve_task_id(storage, d) for d in depends_on] if depends_on else None,
        }
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            console.print("[yellow]Nothing to update[/yellow]")
            return

        task = await storage.tasks.update(resolved_id, TaskUpdate(**changes))
        console.print(f"[green]✓[/green] Task updated: [cyan]{task.id}[/cyan]")
        console.print(f"[dim]Status: {task.status.value}[/dim]")

    run(_update())


@task_app.command("move")
def move_task(
    task_id: str = typer.Argument(..., help="Task ID or prefix"),
    parent: str | None = typer.Option(None, "--parent", help="New parent task ID or prefix"),
    root: bool = typer.Option(False, "--root", help="Move the task to the root level"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Move a task (and its subtree) under a new parent or to the root."""
    if (parent is None) == (not root):
        raise typer.BadParameter("Specify exactly one of --parent or --root")

    async def _move() -> None:
        storage = await open_storage(directory)
        resolved_id = _resolve_task_id(storage, task_id)
        new_parent_id = _resolve_task_id(storage, parent) if parent else None

        task = await storage.tasks.move(resolved_id, new_parent_id)
        subtree_size = len(storage.tasks.get_descendants(task.id))
        console.print(f"[green]✓[/green] Task moved: [cyan]{task.id}[/cyan]")
        console.print(f"[dim]Level: {task.level}, descendants moved with it: {subtree_size}[/dim]")

    run(_move())


@task_app.command("delete")
def delete_task(
    task_id: str = typer.Argument(..., help="Task ID or prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Confirm deletion"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Delete a task and its whole subtree (requires --yes)."""

    async def _delete() -> None:
        storage = await open_storage(directory)
        resolved_id = _resolve_task_id(storage, task_id)
        removed = await storage.tasks.delete(resolved_id, confirm=yes)
        console.print(
            f"[green]✓[/green] Task deleted: [cyan]{resolved_id}[/cyan] "
            f"({len(removed)} task(s) removed)"
        )

    run(_delete())


@task_app.command("tree")
def task_tree(
    project: str = typer.Option(..., "--project", "-p", help="Project ID or prefix"),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Display a project's tasks as a tree."""

    async def _tree() -> None:
        storage = await open_storage(directory)
        project_id = _resolve_project_id(storage, project)
        project_obj = require_found(storage.projects.get(project_id), "project", project_id)

        console.print(format_tree(storage.tasks.build_tree(project_id), title=project_obj.name))

    run(_tree())


@task_app.command("next")
def next_tasks(
    project: str | None = typer.Option(None, "--project", "-p", help="Only this project"),
    limit: int | None = typer.Option(None, help="Number of recommendations", min=1, max=10),
    tag: list[str] | None = typer.Option(None, "--tag", help="Preferred tag (repeatable)"),  # noqa: B008
    consider_complexity: bool = typer.Option(
        True, "--consider-complexity/--ignore-complexity", help="Prefer simpler tasks"
    ),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """Recommend ready tasks to work on next.

    A task is ready when it is not completed or blocked and every task it
    depends on is completed.

    Examples:
        tasknest task next
        tasknest task next --project 3f2a --tag backend --limit 5
    """

    async def _next() -> None:
        storage = await open_storage(directory)
        recommendations = storage.task_recommender().recommend(
            project_id=_resolve_project_id(storage, project) if project else None,
            limit=limit,
            preferred_tags=tag or None,
            consider_complexity=consider_complexity,
        )

        if not recommendations:
            console.print("[dim]No ready tasks[/dim]")
            return

        table = Table(title="Recommended Tasks")
        table.add_column("#", justify="right")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="magenta")
        table.add_column("Priority", justify="center")
        table.add_column("Why")
        for rank, recommendation in enumerate(recommendations, start=1):
            task = recommendation.task
            table.add_row(
                str(rank),
                short_id(task.id),
                escape(task.name),
                str(task.priority),
                escape(", ".join(recommendation.reasons)),
            )
        console.print(table)

    run(_next())


@task_app.command("complexity")
def complexity_report(
    project: str | None = typer.Option(None, "--project", "-p", help="Only this project"),
    threshold: int | None = typer.Option(
        None, help="Report tasks at or above this complexity", min=1, max=10
    ),
    directory: Path = typer.Option(Path("."), "--dir", help=DIR_OPTION_HELP),  # noqa: B008
) -> None:
    """List open high-complexity tasks and flag those worth breaking down."""

    async def _complexity() -> None:
        storage = await open_storage(directory)
        reports = storage.task_recommender().analyze_complexity(
            project_id=_resolve_project_id(storage, project) if project else None,
            threshold=threshold,
        )

        if not reports:
            console.print("[dim]No tasks above the complexity threshold[/dim]")
            return

        table = Table(title="Complex Tasks")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="magenta")
        table.add_column("Complexity", justify="center")
        table.add_column("Child Tasks", justify="center")
        table.add_column("Suggestion")
        for report in reports:
            suggestion = (
                "[yellow]break down into child tasks[/yellow]"
                if report.needs_breakdown
                else "[dim]already broken down[/dim]"
            )
            table.add_row(
                short_id(report.task.id),
                escape(report.task.name),
                str(report.task.complexity),
                str(report.child_count),
                suggestion,
            )
        console.print(table)

    run(_complexity())
