"""Tree Formatter - Rich tree display of a project's task hierarchy.

Each node shows '<id-prefix> <name> [<status>]' coloured by status; completed
tasks are marked with a check.
"""

from rich.text import Text
from rich.tree import Tree as RichTree

from tasknest.domain.models import Task, TaskStatus, TaskTreeNode

TASK_STATUS_COLORS: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "blue",
    TaskStatus.IN_PROGRESS: "magenta",
    TaskStatus.BLOCKED: "yellow",
    TaskStatus.DONE: "bright_green",
}

# Longer names are truncated in tree labels
MAX_NAME_LENGTH = 60


def get_status_color(status: TaskStatus) -> str:
    """Map TaskStatus to a Rich color name, 'white' if unmapped."""
    return TASK_STATUS_COLORS.get(status, "white")


def format_task_line(task: Task) -> Text:
    """Format a single task as Rich Text: '<id-prefix> <name> [<status>]'."""
    name = task.name
    if len(name) > MAX_NAME_LENGTH:
        name = name[:MAX_NAME_LENGTH] + "..."

    marker = "✓ " if task.completed else ""
    text = Text(f"{marker}{task.id[:8]} {name}", style=get_status_color(task.status))
    text.append(f" [{task.status.value}]", style="dim")
    return text


def format_tree(nodes: list[TaskTreeNode], title: str) -> RichTree:
    """Build a Rich tree from hierarchy nodes.

    Args:
        nodes: Root nodes with their children attached
        title: Label of the tree root (usually the project name)

    Returns:
        Rich Tree ready for console.print()
    """
    root_tree = RichTree(Text(title, style="bold"), guide_style="tree.line")

    if not nodes:
        root_tree.add(Text("No tasks found", style="dim"))
        return root_tree

    def add_subtree(parent_widget: RichTree, node: TaskTreeNode) -> None:
        subtree = parent_widget.add(format_task_line(node.task))
        for child in node.children:
            add_subtree(subtree, child)

    for node in nodes:
        add_subtree(root_tree, node)

    return root_tree
