"""Infrastructure layer for TaskNest."""

from tasknest.infrastructure.config import Config, ConfigManager, resolve_working_directory
from tasknest.infrastructure.document_store import (
    DocumentStore,
    MemoriesDocument,
    ProjectsDocument,
    TasksDocument,
)
from tasknest.infrastructure.hierarchy import HierarchyEngine
from tasknest.infrastructure.logger import get_logger, setup_logging
from tasknest.infrastructure.migration import MigrationEngine

__all__ = [
    "Config",
    "ConfigManager",
    "DocumentStore",
    "HierarchyEngine",
    "MemoriesDocument",
    "MigrationEngine",
    "ProjectsDocument",
    "TasksDocument",
    "get_logger",
    "resolve_working_directory",
    "setup_logging",
]
