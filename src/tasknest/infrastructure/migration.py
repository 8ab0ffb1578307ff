"""Legacy subtask migration.

Older tasks documents kept a flat ``subtasks`` list alongside ``tasks``, each
subtask pointing at its parent through ``taskId``. The unified model stores
those records as ordinary tasks one level below their parent. Migration is
driven by data shape: a non-empty ``subtasks`` list means the document still
needs migrating; an empty one means it is done.
"""

from typing import Literal

from tasknest.domain.models import LegacySubtask, MigrationStatus, Task, TaskStatus
from tasknest.infrastructure.document_store import CURRENT_SCHEMA_VERSION, TasksDocument
from tasknest.infrastructure.exceptions import DanglingReferenceError
from tasknest.infrastructure.logger import get_logger

logger = get_logger(__name__)

DanglingPolicy = Literal["fail", "orphan"]


class MigrationEngine:
    """Folds legacy subtasks into the unified task hierarchy."""

    def __init__(self, dangling_policy: DanglingPolicy = "fail") -> None:
        """Initialize migration engine.

        Args:
            dangling_policy: What to do with a subtask whose parent task is
                missing: "fail" raises DanglingReferenceError, "orphan"
                migrates it as a root task
        """
        self.dangling_policy = dangling_policy

    def status(self, document: TasksDocument) -> MigrationStatus:
        """Report whether the document still holds legacy subtasks."""
        return MigrationStatus(
            needs_migration=self.needs_migration(document),
            subtask_count=len(document.subtasks),
            schema_version=document.schema_version,
        )

    def needs_migration(self, document: TasksDocument) -> bool:
        return len(document.subtasks) > 0

    def migrate(self, document: TasksDocument) -> bool:
        """Convert legacy subtasks to tasks in place.

        Every parent reference is checked before the document is touched, so
        a DanglingReferenceError leaves it unchanged.

        Returns:
            True if the document was modified and must be persisted

        Raises:
            DanglingReferenceError: If a subtask references a missing task and
                the policy is "fail"
        """
        if not self.needs_migration(document):
            if document.schema_version < CURRENT_SCHEMA_VERSION:
                document.schema_version = CURRENT_SCHEMA_VERSION
                return True
            return False

        index = {task.id: task for task in document.tasks}

        if self.dangling_policy == "fail":
            for subtask in document.subtasks:
                if subtask.task_id not in index and subtask.id not in index:
                    raise DanglingReferenceError("subtask", subtask.id, subtask.task_id)

        migrated: list[Task] = []
        skipped = 0
        orphaned = 0
        for subtask in document.subtasks:
            if subtask.id in index:
                # Already present as a task from an earlier, interrupted run
                skipped += 1
                continue

            parent = index.get(subtask.task_id)
            if parent is None:
                orphaned += 1
                logger.warning(
                    "legacy_subtask_orphaned",
                    subtask_id=subtask.id,
                    missing_task_id=subtask.task_id,
                )
            task = self._convert(subtask, parent)
            document.tasks.append(task)
            index[task.id] = task
            migrated.append(task)

        document.subtasks.clear()
        document.schema_version = CURRENT_SCHEMA_VERSION

        logger.info(
            "legacy_subtasks_migrated",
            migrated=len(migrated),
            skipped=skipped,
            orphaned=orphaned,
        )
        return True

    def _convert(self, subtask: LegacySubtask, parent: Task | None) -> Task:
        return Task(
            id=subtask.id,
            name=subtask.name,
            details=subtask.details,
            project_id=parent.project_id if parent else subtask.project_id,
            parent_id=parent.id if parent else None,
            level=parent.level + 1 if parent else 0,
            completed=subtask.completed,
            status=TaskStatus.DONE if subtask.completed else TaskStatus.PENDING,
            created_at=subtask.created_at,
            updated_at=subtask.updated_at,
        )
