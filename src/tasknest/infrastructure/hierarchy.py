"""Tree operations over the in-memory task collection.

This module owns every read and write of task ancestry: level derivation,
parent/child navigation, subtree collection, re-parenting and tree views.
The ``level`` field is stored on each task, so any change of ancestry must
re-derive it for the whole affected subtree; ``move`` is the only place that
happens after creation.
"""

from collections import defaultdict, deque

from tasknest.domain.models import Task, TaskTreeNode
from tasknest.infrastructure.exceptions import (
    CorruptDataError,
    CrossProjectError,
    CycleError,
    NotFoundError,
)
from tasknest.infrastructure.logger import get_logger

logger = get_logger(__name__)


class HierarchyEngine:
    """Handles hierarchy operations for a task collection.

    The engine works directly on the list owned by the task repository, so
    it always sees the current in-memory state. Callers must mutate that list
    in place rather than rebinding it.
    """

    def __init__(self, tasks: list[Task]) -> None:
        """Initialize the engine.

        Args:
            tasks: The live task list (insertion ordered)
        """
        self.tasks = tasks

    # ===== Lookup helpers =====

    def _index(self) -> dict[str, Task]:
        return {task.id: task for task in self.tasks}

    def _children_map(self) -> dict[str, list[Task]]:
        """Build parent_id -> children adjacency in insertion order."""
        children_map: dict[str, list[Task]] = defaultdict(list)
        for task in self.tasks:
            if task.parent_id is not None:
                children_map[task.parent_id].append(task)
        return children_map

    def require(self, task_id: str) -> Task:
        """Return the task with this id or raise NotFoundError."""
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise NotFoundError("task", task_id)

    # ===== Queries =====

    def compute_level(self, task: Task, index: dict[str, Task] | None = None) -> int:
        """Count parent hops from the task up to its root.

        Raises:
            CorruptDataError: If an intermediate parent is missing or the
                stored parent links loop back on themselves
        """
        index = index if index is not None else self._index()
        level = 0
        seen = {task.id}
        parent_id = task.parent_id
        while parent_id is not None:
            parent = index.get(parent_id)
            if parent is None:
                raise CorruptDataError(
                    f"task {task.id} has missing ancestor {parent_id}"
                )
            if parent.id in seen:
                raise CorruptDataError(f"parent cycle through task {parent.id}")
            seen.add(parent.id)
            level += 1
            parent_id = parent.parent_id
        return level

    def get_children(self, task_id: str) -> list[Task]:
        """Direct children of a task, in insertion order."""
        self.require(task_id)
        return [task for task in self.tasks if task.parent_id == task_id]

    def get_ancestors(self, task_id: str) -> list[Task]:
        """Ancestors of a task ordered from the root down to its parent."""
        task = self.require(task_id)
        index = self._index()
        ancestors: list[Task] = []
        seen = {task.id}
        parent_id = task.parent_id
        while parent_id is not None:
            parent = index.get(parent_id)
            if parent is None:
                raise CorruptDataError(
                    f"task {task.id} has missing ancestor {parent_id}"
                )
            if parent.id in seen:
                raise CorruptDataError(f"parent cycle through task {parent.id}")
            seen.add(parent.id)
            ancestors.append(parent)
            parent_id = parent.parent_id
        ancestors.reverse()
        return ancestors

    def get_descendants(self, task_id: str) -> list[Task]:
        """Every task below the given one, breadth-first. Excludes the task itself."""
        self.require(task_id)
        children_map = self._children_map()
        descendants: list[Task] = []
        visited = {task_id}
        queue = deque([task_id])
        while queue:
            current = queue.popleft()
            for child in children_map.get(current, []):
                if child.id in visited:
                    continue
                visited.add(child.id)
                descendants.append(child)
                queue.append(child.id)
        return descendants

    def walk(self, tasks: list[Task]) -> list[Task]:
        """Order a subset of tasks depth-first, parents before children.

        Tasks whose parent is not in the subset are treated as roots. Siblings
        keep their relative insertion order.
        """
        members = {task.id for task in tasks}
        children_map: dict[str, list[Task]] = defaultdict(list)
        roots: list[Task] = []
        for task in tasks:
            if task.parent_id is not None and task.parent_id in members:
                children_map[task.parent_id].append(task)
            else:
                roots.append(task)

        ordered: list[Task] = []
        visited: set[str] = set()
        stack = list(reversed(roots))
        while stack:
            task = stack.pop()
            if task.id in visited:
                continue
            visited.add(task.id)
            ordered.append(task)
            stack.extend(reversed(children_map.get(task.id, [])))
        return ordered

    def build_tree(self, project_id: str) -> list[TaskTreeNode]:
        """Nest a project's tasks under their parents, starting from roots."""
        project_tasks = [task for task in self.tasks if task.project_id == project_id]
        children_map: dict[str, list[Task]] = defaultdict(list)
        for task in project_tasks:
            if task.parent_id is not None:
                children_map[task.parent_id].append(task)

        def build_node(task: Task) -> TaskTreeNode:
            return TaskTreeNode(
                task=task,
                children=[build_node(child) for child in children_map.get(task.id, [])],
            )

        return [build_node(task) for task in project_tasks if task.parent_id is None]

    # ===== Mutations =====

    def check_parent(self, task: Task, new_parent_id: str | None) -> Task | None:
        """Validate that a task may be placed under ``new_parent_id``.

        Returns:
            The new parent task, or None when moving to the root

        Raises:
            NotFoundError: If the new parent does not exist
            CycleError: If the new parent is the task or one of its descendants
            CrossProjectError: If the new parent belongs to another project
        """
        if new_parent_id is None:
            return None
        if new_parent_id == task.id:
            raise CycleError(task.id, new_parent_id)
        parent = self.require(new_parent_id)
        if any(d.id == new_parent_id for d in self.get_descendants(task.id)):
            raise CycleError(task.id, new_parent_id)
        if parent.project_id != task.project_id:
            raise CrossProjectError(task.project_id, parent.project_id)
        return parent

    def move(self, task_id: str, new_parent_id: str | None) -> Task:
        """Re-parent a task and re-derive levels for it and its subtree."""
        task = self.require(task_id)
        parent = self.check_parent(task, new_parent_id)

        task.parent_id = parent.id if parent else None
        task.level = parent.level + 1 if parent else 0
        changed = self.relevel_subtree(task)

        logger.debug(
            "task_reparented",
            task_id=task_id,
            new_parent_id=new_parent_id,
            level=task.level,
            descendants_releveled=changed,
        )
        return task

    def relevel_subtree(self, task: Task) -> int:
        """Set every descendant's level from its parent's. Returns count updated."""
        children_map = self._children_map()
        updated = 0
        queue = deque([task])
        visited = {task.id}
        while queue:
            current = queue.popleft()
            for child in children_map.get(current.id, []):
                if child.id in visited:
                    continue
                visited.add(child.id)
                if child.level != current.level + 1:
                    child.level = current.level + 1
                    updated += 1
                queue.append(child)
        return updated

    def verify(self) -> list[str]:
        """Check stored ancestry and repair stale levels.

        Returns:
            Ids of tasks whose stored level was corrected

        Raises:
            CorruptDataError: For duplicate ids, missing parents or parent cycles
        """
        index: dict[str, Task] = {}
        for task in self.tasks:
            if task.id in index:
                raise CorruptDataError(f"duplicate task id {task.id}")
            index[task.id] = task

        corrected: list[str] = []
        for task in self.tasks:
            level = self.compute_level(task, index)
            if task.parent_id is not None:
                parent = index[task.parent_id]
                if parent.project_id != task.project_id:
                    raise CorruptDataError(
                        f"task {task.id} is in project {task.project_id} "
                        f"but its parent {parent.id} is in {parent.project_id}"
                    )
            if task.level != level:
                task.level = level
                corrected.append(task.id)

        if corrected:
            logger.warning("task_levels_corrected", count=len(corrected), task_ids=corrected)
        return corrected
