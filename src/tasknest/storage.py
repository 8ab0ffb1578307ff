"""Storage facade: the public entry point to TaskNest data.

Usage:
    storage = await create_storage(Path.cwd())
    project = await storage.projects.create(ProjectDraft(name="Website"))
    task = await storage.tasks.create(TaskDraft(name="Design", project_id=project.id))
"""

from pathlib import Path

from tasknest.domain.models import MigrationStatus
from tasknest.infrastructure.config import Config, resolve_working_directory
from tasknest.infrastructure.document_store import (
    TasksDocument,
    memories_store,
    projects_store,
    tasks_store,
)
from tasknest.infrastructure.exceptions import StorageNotInitializedError
from tasknest.infrastructure.logger import get_logger
from tasknest.infrastructure.migration import MigrationEngine
from tasknest.services.memory_repository import MemoryRepository
from tasknest.services.memory_search import MemorySearch
from tasknest.services.project_repository import ProjectRepository
from tasknest.services.task_recommendation import TaskRecommender
from tasknest.services.task_repository import TaskRepository

logger = get_logger(__name__)


class Storage:
    """Owns the data directory and the three entity repositories.

    Initialization order is load, migrate, verify: legacy subtasks are folded
    into the task hierarchy and stored levels are re-derived before any
    repository is handed out.
    """

    def __init__(self, working_directory: Path, config: Config | None = None) -> None:
        """Initialize storage facade.

        Args:
            working_directory: Directory whose data folder holds the documents
            config: Loaded configuration (default: built-in defaults)
        """
        self.config = config or Config()
        self.working_directory = resolve_working_directory(working_directory, self.config)
        self.data_dir = self.working_directory / self.config.storage.directory_name

        self._projects_store = projects_store(self.data_dir)
        self._tasks_store = tasks_store(self.data_dir)
        self._memories_store = memories_store(self.data_dir)
        self._migration = MigrationEngine(self.config.migration.dangling_subtasks)

        # True when initialize() rewrote tasks.json to fold in legacy subtasks
        self.migrated_on_load = False
        self._tasks_document: TasksDocument | None = None
        self._project_repo: ProjectRepository | None = None
        self._task_repo: TaskRepository | None = None
        self._memory_repo: MemoryRepository | None = None

    async def initialize(self) -> None:
        """Load every document, migrate legacy subtasks and check task ancestry.

        Raises:
            CorruptDataError: If a document is unreadable or task ancestry is
                inconsistent
            DanglingReferenceError: If a legacy subtask references a missing
                task and the migration policy is "fail"
        """
        projects_doc = await self._projects_store.load()
        tasks_doc = await self._tasks_store.load()
        memories_doc = await self._memories_store.load()

        if self._migration.migrate(tasks_doc):
            await self._tasks_store.persist(tasks_doc)
            self.migrated_on_load = True

        project_repo = ProjectRepository(self._projects_store, projects_doc)
        task_repo = TaskRepository(self._tasks_store, tasks_doc, project_repo)
        project_repo.tasks = task_repo

        if task_repo.hierarchy.verify():
            await self._tasks_store.persist(tasks_doc)

        self._tasks_document = tasks_doc
        self._project_repo = project_repo
        self._task_repo = task_repo
        self._memory_repo = MemoryRepository(
            self._memories_store,
            memories_doc,
            title_max_length=self.config.memory.title_max_length,
        )

        logger.info(
            "storage_initialized",
            data_dir=str(self.data_dir),
            projects=len(projects_doc.projects),
            tasks=len(tasks_doc.tasks),
            memories=len(memories_doc.memories),
        )

    @property
    def initialized(self) -> bool:
        return self._task_repo is not None

    @property
    def projects(self) -> ProjectRepository:
        if self._project_repo is None:
            raise StorageNotInitializedError()
        return self._project_repo

    @property
    def tasks(self) -> TaskRepository:
        if self._task_repo is None:
            raise StorageNotInitializedError()
        return self._task_repo

    @property
    def memories(self) -> MemoryRepository:
        if self._memory_repo is None:
            raise StorageNotInitializedError()
        return self._memory_repo

    def memory_search(self) -> MemorySearch:
        """Search helper over the memory repository, using configured defaults."""
        return MemorySearch(
            self.memories,
            default_limit=self.config.memory.search_limit,
            default_threshold=self.config.memory.search_threshold,
        )

    def task_recommender(self) -> TaskRecommender:
        """Next-task and complexity helper over the task repository, using configured defaults."""
        return TaskRecommender(
            self.tasks,
            default_limit=self.config.recommendation.limit,
            complexity_threshold=self.config.recommendation.complexity_threshold,
        )

    def migration_status(self) -> MigrationStatus:
        """Legacy subtask migration state of the loaded tasks document."""
        if self._tasks_document is None:
            raise StorageNotInitializedError()
        return self._migration.status(self._tasks_document)


async def create_storage(working_directory: Path, config: Config | None = None) -> Storage:
    """Construct and initialize a Storage in one call."""
    storage = Storage(working_directory, config)
    await storage.initialize()
    return storage
