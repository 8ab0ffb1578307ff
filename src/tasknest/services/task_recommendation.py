"""Next-task recommendations and complexity analysis over stored tasks.

Both are read-only views over TaskRepository. A task is ready when it is not
completed, not marked blocked, and every task it depends on is completed.
Writes only check that dependency ids exist, so dependency cycles are
detected here, at query time.
"""

from pydantic import BaseModel, Field

from tasknest.domain.models import Task, TaskStatus
from tasknest.infrastructure.exceptions import DependencyCycleError
from tasknest.infrastructure.logger import get_logger
from tasknest.services.task_repository import TaskRepository

logger = get_logger(__name__)

DEFAULT_RECOMMENDATION_LIMIT = 3
DEFAULT_COMPLEXITY_THRESHOLD = 7

# Ranking stand-in for tasks without a complexity estimate
UNKNOWN_COMPLEXITY = 5


class TaskRecommendation(BaseModel):
    """A ready task and the reasons it ranked where it did."""

    task: Task
    reasons: list[str] = Field(default_factory=list)


class ComplexityReport(BaseModel):
    """A task at or above the complexity threshold."""

    task: Task
    child_count: int = Field(ge=0)
    needs_breakdown: bool


def find_dependency_cycles(tasks: list[Task]) -> list[list[str]]:
    """Find loops in the ``depends_on`` graph using depth-first search.

    Returns:
        Each cycle as task ids, with the first id repeated at the end. Empty
        when the graph is acyclic.
    """
    graph = {task.id: task.depends_on for task in tasks}
    cycles: list[list[str]] = []
    visited: set[str] = set()
    on_path: set[str] = set()
    path: list[str] = []

    def dfs(node: str) -> None:
        if node in on_path:
            cycles.append(path[path.index(node) :] + [node])
            return
        if node in visited or node not in graph:
            return

        visited.add(node)
        on_path.add(node)
        path.append(node)
        for dependency_id in graph[node]:
            dfs(dependency_id)
        path.pop()
        on_path.remove(node)

    for node in graph:
        if node not in visited:
            dfs(node)
    return cycles


class TaskRecommender:
    """Suggests what to work on next.

    Ready tasks are ranked by priority first. Ties are broken by preferred
    tags, then by tasks already in progress, then (optionally) by lower
    complexity, and finally by insertion order.

    Usage:
        recommender = storage.task_recommender()
        task = recommender.next_task(project_id=project.id)
    """

    def __init__(
        self,
        tasks: TaskRepository,
        default_limit: int = DEFAULT_RECOMMENDATION_LIMIT,
        complexity_threshold: int = DEFAULT_COMPLEXITY_THRESHOLD,
    ) -> None:
        self.tasks = tasks
        self.default_limit = default_limit
        self.complexity_threshold = complexity_threshold

    def ready_tasks(self, project_id: str | None = None) -> list[Task]:
        """Tasks whose dependencies are all completed, in insertion order.

        Raises:
            DependencyCycleError: If any tasks depend on each other in a loop
        """
        all_tasks = self.tasks.list_tasks()
        cycles = find_dependency_cycles(all_tasks)
        if cycles:
            logger.warning("dependency_cycles_found", cycle_count=len(cycles))
            raise DependencyCycleError(cycles)

        completed = {task.id for task in all_tasks if task.completed}
        return [
            task
            for task in all_tasks
            if (project_id is None or task.project_id == project_id)
            and not task.completed
            and task.status != TaskStatus.BLOCKED
            and all(dependency_id in completed for dependency_id in task.depends_on)
        ]

    def recommend(
        self,
        project_id: str | None = None,
        limit: int | None = None,
        preferred_tags: list[str] | None = None,
        consider_complexity: bool = True,
    ) -> list[TaskRecommendation]:
        """Rank ready tasks.

        Args:
            project_id: Only recommend tasks from this project
            limit: Maximum number of recommendations
            preferred_tags: Tags that lift a task above equal-priority tasks
            consider_complexity: Prefer simpler tasks among equal candidates

        Returns:
            Recommendations, best first

        Raises:
            DependencyCycleError: If any tasks depend on each other in a loop
        """
        limit = self.default_limit if limit is None else limit
        preferred = set(preferred_tags or [])

        def rank(task: Task) -> tuple[int, int, int, int]:
            complexity = task.complexity if task.complexity is not None else UNKNOWN_COMPLEXITY
            return (
                -task.priority,
                -int(bool(preferred.intersection(task.tags))),
                -int(task.status == TaskStatus.IN_PROGRESS),
                complexity if consider_complexity else 0,
            )

        # sort is stable, so full ties keep insertion order
        ranked = sorted(self.ready_tasks(project_id), key=rank)[: max(limit, 0)]
        recommendations = [
            TaskRecommendation(
                task=task, reasons=_reasons(task, preferred, consider_complexity)
            )
            for task in ranked
        ]

        logger.debug(
            "tasks_recommended",
            project_id=project_id,
            recommendation_count=len(recommendations),
        )
        return recommendations

    def next_task(
        self,
        project_id: str | None = None,
        preferred_tags: list[str] | None = None,
        consider_complexity: bool = True,
    ) -> Task | None:
        """The single best ready task, or None when nothing is ready."""
        best = self.recommend(
            project_id=project_id,
            limit=1,
            preferred_tags=preferred_tags,
            consider_complexity=consider_complexity,
        )
        return best[0].task if best else None

    def analyze_complexity(
        self, project_id: str | None = None, threshold: int | None = None
    ) -> list[ComplexityReport]:
        """Open tasks whose complexity is at or above ``threshold``.

        A task without child tasks is flagged as needing a breakdown.

        Returns:
            Reports sorted by complexity, highest first
        """
        threshold = self.complexity_threshold if threshold is None else threshold
        candidates = [
            task
            for task in self.tasks.list_tasks(project_id=project_id, include_completed=False)
            if task.complexity is not None and task.complexity >= threshold
        ]
        candidates.sort(key=lambda task: task.complexity or 0, reverse=True)

        reports = []
        for task in candidates:
            child_count = len(self.tasks.get_children(task.id))
            reports.append(
                ComplexityReport(
                    task=task, child_count=child_count, needs_breakdown=child_count == 0
                )
            )
        return reports


def _reasons(task: Task, preferred: set[str], consider_complexity: bool) -> list[str]:
    reasons = [f"priority {task.priority}"]
    matched = sorted(preferred.intersection(task.tags))
    if matched:
        reasons.append(f"preferred tags: {', '.join(matched)}")
    if task.status == TaskStatus.IN_PROGRESS:
        reasons.append("already in progress")
    if consider_complexity and task.complexity is not None:
        reasons.append(f"complexity {task.complexity}")
    if task.depends_on:
        reasons.append("dependencies completed")
    return reasons
