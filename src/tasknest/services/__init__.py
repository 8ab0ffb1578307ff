"""Service layer: entity repositories, memory search and task recommendations."""

from tasknest.services.memory_repository import MemoryRepository
from tasknest.services.memory_search import MemorySearch, MemorySearchResult
from tasknest.services.project_repository import ProjectRepository
from tasknest.services.task_recommendation import (
    ComplexityReport,
    TaskRecommendation,
    TaskRecommender,
)
from tasknest.services.task_repository import TaskRepository

__all__ = [
    "ComplexityReport",
    "MemoryRepository",
    "MemorySearch",
    "MemorySearchResult",
    "ProjectRepository",
    "TaskRecommendation",
    "TaskRecommender",
    "TaskRepository",
]
