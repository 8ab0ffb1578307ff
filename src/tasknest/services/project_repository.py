"""Project repository: CRUD over projects.json."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from tasknest.domain.models import Project, ProjectDraft, ProjectUpdate, next_timestamp, utc_now
from tasknest.infrastructure.document_store import DocumentStore, ProjectsDocument
from tasknest.infrastructure.exceptions import (
    ConfirmationRequiredError,
    NotFoundError,
    ValidationError,
)
from tasknest.infrastructure.logger import get_logger

if TYPE_CHECKING:
    from tasknest.services.task_repository import TaskRepository

logger = get_logger(__name__)


class ProjectRepository:
    """Repository for projects.

    Deleting a project also deletes every task that belongs to it, so the
    storage facade attaches the task repository after both are built.
    """

    def __init__(self, store: DocumentStore[ProjectsDocument], document: ProjectsDocument) -> None:
        """Initialize project repository.

        Args:
            store: Document store for projects.json
            document: Loaded projects document
        """
        self._store = store
        self._document = document
        self.tasks: TaskRepository | None = None

    @property
    def _projects(self) -> list[Project]:
        return self._document.projects

    async def _persist(self) -> None:
        await self._store.persist(self._document)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        """Persist changes made inside the block, undoing them if the write fails."""
        snapshot = [project.model_copy(deep=True) for project in self._projects]
        try:
            yield
            await self._persist()
        except BaseException:
            self._projects[:] = snapshot
            raise

    def _find(self, project_id: str) -> Project | None:
        for project in self._projects:
            if project.id == project_id:
                return project
        return None

    async def create(self, draft: ProjectDraft) -> Project:
        """Create and persist a new project.

        Raises:
            ValidationError: If the draft carries an id that is already taken
        """
        if draft.id is not None and self._find(draft.id) is not None:
            raise ValidationError(f"Project id {draft.id} already exists")

        now = utc_now()
        project = Project(
            **draft.model_dump(exclude={"id"}),
            **({"id": draft.id} if draft.id is not None else {}),
            created_at=now,
            updated_at=now,
        )
        async with self._transaction():
            self._projects.append(project)

        logger.info("project_created", project_id=project.id, name=project.name)
        return project.model_copy(deep=True)

    def get(self, project_id: str) -> Project | None:
        """Fetch a project by id, or None if it does not exist."""
        project = self._find(project_id)
        return project.model_copy(deep=True) if project is not None else None

    def list_projects(self) -> list[Project]:
        """All projects in insertion order."""
        return [project.model_copy(deep=True) for project in self._projects]

    async def update(self, project_id: str, changes: ProjectUpdate) -> Project:
        """Apply the fields explicitly set on ``changes``.

        Raises:
            NotFoundError: If the project does not exist
        """
        project = self._find(project_id)
        if project is None:
            raise NotFoundError("project", project_id)

        fields = {
            name: value
            for name, value in changes.model_dump(exclude_unset=True).items()
            if value is not None
        }
        async with self._transaction():
            for name, value in fields.items():
                setattr(project, name, value)
            project.updated_at = next_timestamp(project.updated_at)

        logger.info("project_updated", project_id=project.id, fields=sorted(fields))
        return project.model_copy(deep=True)

    async def delete(self, project_id: str, confirm: bool = False) -> list[str]:
        """Delete a project together with all of its tasks.

        Returns:
            Ids of the tasks removed along with the project

        Raises:
            ConfirmationRequiredError: If ``confirm`` is not True
            NotFoundError: If the project does not exist
        """
        if confirm is not True:
            raise ConfirmationRequiredError("project", project_id)

        if self._find(project_id) is None:
            raise NotFoundError("project", project_id)

        removed_tasks: list[str] = []
        if self.tasks is not None:
            removed_tasks = await self.tasks.delete_for_project(project_id)

        async with self._transaction():
            self._projects[:] = [p for p in self._projects if p.id != project_id]

        logger.info(
            "project_deleted",
            project_id=project_id,
            removed_task_count=len(removed_tasks),
        )
        return removed_tasks
