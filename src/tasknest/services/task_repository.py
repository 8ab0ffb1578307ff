"""Task repository: CRUD and hierarchy navigation over tasks.json.

All ancestry reads and writes are delegated to HierarchyEngine. Mutations
update the in-memory document and then rewrite the whole file; a failed
write restores the previous in-memory state.
"""

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from tasknest.domain.models import (
    Task,
    TaskDraft,
    TaskStatus,
    TaskTreeNode,
    TaskUpdate,
    next_timestamp,
    utc_now,
)
from tasknest.infrastructure.document_store import DocumentStore, TasksDocument
from tasknest.infrastructure.exceptions import (
    ConfirmationRequiredError,
    CrossProjectError,
    DanglingReferenceError,
    NotFoundError,
    ValidationError,
)
from tasknest.infrastructure.hierarchy import HierarchyEngine
from tasknest.infrastructure.logger import get_logger

if TYPE_CHECKING:
    from tasknest.services.project_repository import ProjectRepository

logger = get_logger(__name__)

# Fields that may legitimately be cleared back to None by an update
_NULLABLE_FIELDS = {"complexity", "estimated_hours"}


class TaskRepository:
    """Repository for hierarchical tasks.

    Usage:
        repo = TaskRepository(store, document, projects)
        root = await repo.create(TaskDraft(name="Plan", project_id=project.id))
        child = await repo.create(
            TaskDraft(name="Research", project_id=project.id, parent_id=root.id)
        )
        assert child.level == 1
    """

    def __init__(
        self,
        store: DocumentStore[TasksDocument],
        document: TasksDocument,
        projects: "ProjectRepository",
    ) -> None:
        """Initialize task repository.

        Args:
            store: Document store for tasks.json
            document: Loaded (and migrated) tasks document
            projects: Project repository used to validate project references
        """
        self._store = store
        self._document = document
        self._projects = projects
        self.hierarchy = HierarchyEngine(document.tasks)

    @property
    def _tasks(self) -> list[Task]:
        return self._document.tasks

    async def _persist(self) -> None:
        await self._store.persist(self._document)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        """Persist changes made inside the block.

        If anything fails, including the write itself, the task list is put
        back the way it was so memory never runs ahead of disk.
        """
        snapshot = _copies(self._tasks)
        try:
            yield
            await self._persist()
        except BaseException:
            self._tasks[:] = snapshot
            raise

    # ===== CRUD =====

    async def create(self, draft: TaskDraft) -> Task:
        """Create a task, deriving its level from the parent.

        Raises:
            NotFoundError: If the project or parent task does not exist
            CrossProjectError: If the parent belongs to another project
            DanglingReferenceError: If a ``depends_on`` id does not exist
            ValidationError: If the id is already taken
        """
        if self._projects.get(draft.project_id) is None:
            raise NotFoundError("project", draft.project_id)

        if draft.id is not None and self._find(draft.id) is not None:
            raise ValidationError(f"Task id {draft.id} already exists")

        level = 0
        if draft.parent_id is not None:
            parent = self._find(draft.parent_id)
            if parent is None:
                raise NotFoundError("task", draft.parent_id)
            if parent.project_id != draft.project_id:
                raise CrossProjectError(draft.project_id, parent.project_id)
            level = parent.level + 1

        fields = draft.model_dump(exclude={"id", "status", "completed"})
        status = draft.status or TaskStatus.PENDING
        if draft.completed:
            status = TaskStatus.DONE

        now = utc_now()
        task = Task(
            **fields,
            **({"id": draft.id} if draft.id is not None else {}),
            status=status,
            completed=status == TaskStatus.DONE,
            level=level,
            created_at=now,
            updated_at=now,
        )
        self._check_dependencies(task.id, task.depends_on)

        async with self._transaction():
            self._tasks.append(task)

        logger.info(
            "task_created",
            task_id=task.id,
            project_id=task.project_id,
            parent_id=task.parent_id,
            level=task.level,
        )
        return task.model_copy(deep=True)

    def get(self, task_id: str) -> Task | None:
        """Fetch a task by id, or None if it does not exist.

        Returned tasks are copies; change them through ``update`` or ``move``.
        """
        task = self._find(task_id)
        return task.model_copy(deep=True) if task is not None else None

    def list_tasks(
        self,
        project_id: str | None = None,
        parent_id: str | None = None,
        include_completed: bool = True,
        hierarchical: bool = False,
    ) -> list[Task]:
        """List tasks.

        Args:
            project_id: Restrict to one project (None = all projects)
            parent_id: Restrict to the subtree below this task
            include_completed: Include tasks marked completed
            hierarchical: Order depth-first (parents before children) instead
                of insertion order

        Returns:
            Matching tasks
        """
        if parent_id is not None:
            candidates = self.hierarchy.get_descendants(parent_id)
            if not hierarchical:
                member_ids = {task.id for task in candidates}
                candidates = [task for task in self._tasks if task.id in member_ids]
        else:
            candidates = list(self._tasks)

        tasks = [
            task
            for task in candidates
            if (project_id is None or task.project_id == project_id)
            and (include_completed or not task.completed)
        ]
        if hierarchical:
            tasks = self.hierarchy.walk(tasks)
        return _copies(tasks)

    async def update(self, task_id: str, changes: TaskUpdate) -> Task:
        """Apply the fields explicitly set on ``changes``.

        Raises:
            NotFoundError: If the task does not exist
            DanglingReferenceError: If new ``depends_on`` ids do not exist
            ValidationError: If the task would depend on itself
        """
        task = self._find(task_id)
        if task is None:
            raise NotFoundError("task", task_id)

        fields = {
            name: value
            for name, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or name in _NULLABLE_FIELDS
        }

        if "depends_on" in fields:
            fields["depends_on"] = list(dict.fromkeys(fields["depends_on"]))
            self._check_dependencies(task.id, fields["depends_on"])
        if "tags" in fields:
            fields["tags"] = list(dict.fromkeys(fields["tags"]))

        self._sync_completion(task, fields)

        async with self._transaction():
            for name, value in fields.items():
                setattr(task, name, value)
            task.updated_at = next_timestamp(task.updated_at)

        logger.info("task_updated", task_id=task.id, fields=sorted(fields))
        return task.model_copy(deep=True)

    async def delete(self, task_id: str, confirm: bool = False) -> list[str]:
        """Delete a task and its whole subtree.

        Returns:
            Ids of every removed task (the task first, then its descendants)

        Raises:
            ConfirmationRequiredError: If ``confirm`` is not True
            NotFoundError: If the task does not exist
        """
        if confirm is not True:
            raise ConfirmationRequiredError("task", task_id)

        self.hierarchy.require(task_id)
        removed = [task_id] + [task.id for task in self.hierarchy.get_descendants(task_id)]
        async with self._transaction():
            self._remove(removed)

        logger.info("task_deleted", task_id=task_id, removed_count=len(removed))
        return removed

    async def delete_for_project(self, project_id: str) -> list[str]:
        """Remove every task of a project. Used by project deletion."""
        removed = [task.id for task in self._tasks if task.project_id == project_id]
        if removed:
            async with self._transaction():
                self._remove(removed)
            logger.info("project_tasks_deleted", project_id=project_id, removed_count=len(removed))
        return removed

    # ===== Hierarchy =====

    def get_children(self, task_id: str) -> list[Task]:
        return _copies(self.hierarchy.get_children(task_id))

    def get_ancestors(self, task_id: str) -> list[Task]:
        """Ancestors from the root down to the direct parent."""
        return _copies(self.hierarchy.get_ancestors(task_id))

    def get_descendants(self, task_id: str) -> list[Task]:
        return _copies(self.hierarchy.get_descendants(task_id))

    def build_tree(self, project_id: str) -> list[TaskTreeNode]:
        """Nested view of a project's tasks.

        Raises:
            NotFoundError: If the project does not exist
        """
        if self._projects.get(project_id) is None:
            raise NotFoundError("project", project_id)
        return [node.model_copy(deep=True) for node in self.hierarchy.build_tree(project_id)]

    async def move(self, task_id: str, new_parent_id: str | None) -> Task:
        """Re-parent a task (None moves it to the root).

        Raises:
            NotFoundError: If either task does not exist
            CycleError: If the new parent is the task or one of its descendants
            CrossProjectError: If the new parent is in another project
        """
        async with self._transaction():
            task = self.hierarchy.move(task_id, new_parent_id)
            task.updated_at = next_timestamp(task.updated_at)

        logger.info(
            "task_moved",
            task_id=task.id,
            new_parent_id=new_parent_id,
            level=task.level,
        )
        return task.model_copy(deep=True)

    # ===== Helpers =====

    def _find(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def _check_dependencies(self, task_id: str, depends_on: Iterable[str]) -> None:
        known = {task.id for task in self._tasks}
        for dependency_id in depends_on:
            if dependency_id == task_id:
                raise ValidationError(f"Task {task_id} cannot depend on itself")
            if dependency_id not in known:
                raise DanglingReferenceError("task", task_id, dependency_id)

    def _sync_completion(self, task: Task, fields: dict) -> None:
        """Keep ``completed`` and ``status`` consistent for a partial update.

        When both are given they are reconciled the same way ``create`` does:
        ``completed=True`` forces ``done``, otherwise ``completed`` follows
        the status.
        """
        status = fields.get("status")
        completed = fields.get("completed")

        if status is not None and completed is not None:
            if completed:
                fields["status"] = TaskStatus.DONE
            fields["completed"] = fields["status"] == TaskStatus.DONE
        elif status is not None:
            if status == TaskStatus.DONE:
                fields["completed"] = True
            elif task.completed:
                fields["completed"] = False
        elif completed is not None:
            if completed:
                fields["status"] = TaskStatus.DONE
            elif task.status == TaskStatus.DONE:
                fields["status"] = TaskStatus.PENDING

    def _remove(self, task_ids: Iterable[str]) -> None:
        doomed = set(task_ids)
        # The hierarchy engine shares this list, so filter it in place
        self._tasks[:] = [task for task in self._tasks if task.id not in doomed]
        for task in self._tasks:
            if doomed.intersection(task.depends_on):
                task.depends_on = [d for d in task.depends_on if d not in doomed]
                logger.debug("dependencies_pruned", task_id=task.id)


def _copies(tasks: list[Task]) -> list[Task]:
    return [task.model_copy(deep=True) for task in tasks]
