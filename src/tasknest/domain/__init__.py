"""Domain models for TaskNest."""

from tasknest.domain.models import (
    LegacySubtask,
    Memory,
    MemoryDraft,
    MemoryUpdate,
    MigrationStatus,
    Project,
    ProjectDraft,
    ProjectUpdate,
    Task,
    TaskDraft,
    TaskStatus,
    TaskTreeNode,
    TaskUpdate,
)

__all__ = [
    "LegacySubtask",
    "Memory",
    "MemoryDraft",
    "MemoryUpdate",
    "MigrationStatus",
    "Project",
    "ProjectDraft",
    "ProjectUpdate",
    "Task",
    "TaskDraft",
    "TaskStatus",
    "TaskTreeNode",
    "TaskUpdate",
]
