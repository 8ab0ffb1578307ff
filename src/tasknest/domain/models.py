"""Core domain models for TaskNest.

Models use snake_case attributes in Python and camelCase keys on disk. Use
``model_dump(mode="json", by_alias=True)`` for the persisted representation.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, JsonValue, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def next_timestamp(previous: datetime) -> datetime:
    """Current UTC time, bumped past ``previous`` if the clock has not advanced."""
    now = utc_now()
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def _ensure_utc(value: datetime) -> datetime:
    # Older documents may carry naive timestamps; treat them as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


def new_id() -> str:
    """Generate a fresh entity identifier."""
    return str(uuid4())


def _dedupe(values: list[str]) -> list[str]:
    """Drop repeated entries, keeping first occurrence order."""
    return list(dict.fromkeys(values))


class CamelModel(BaseModel):
    """Base model persisted with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TaskStatus(str, Enum):
    """Task workflow states."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    BLOCKED = "blocked"
    DONE = "done"


class Project(CamelModel):
    """A container for related tasks."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)


class Task(CamelModel):
    """A unit of work, optionally nested under a parent task.

    Attributes:
        project_id: Owning project, always equal to the parent's project
        parent_id: Parent task, None for root tasks
        level: Depth in the hierarchy (0 for roots), derived and stored
        depends_on: Tasks that must be completed before this one is eligible
    """

    id: str = Field(default_factory=new_id)
    name: str
    details: str = ""
    project_id: str
    parent_id: str | None = None
    level: int = Field(default=0, ge=0)
    completed: bool = False
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    priority: int = Field(default=5, ge=1, le=10)
    complexity: int | None = Field(default=None, ge=1, le=10)
    tags: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list)
    estimated_hours: float | None = Field(default=None, ge=0)
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)

    @field_validator("tags", "depends_on")
    @classmethod
    def dedupe_values(cls, v: list[str]) -> list[str]:
        """Tags and dependencies have set semantics."""
        return _dedupe(v)


class Memory(CamelModel):
    """A free-form piece of remembered context."""

    id: str = Field(default_factory=new_id)
    title: str
    content: str
    category: str | None = None
    metadata: dict[str, JsonValue] = Field(default_factory=dict)
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)


class LegacySubtask(CamelModel):
    """Pre-hierarchy subtask record, read only by the migration engine."""

    id: str
    name: str
    details: str = ""
    task_id: str
    project_id: str
    completed: bool = False
    created_at: UtcDatetime = Field(default_factory=utc_now)
    updated_at: UtcDatetime = Field(default_factory=utc_now)


# ===== Drafts and partial updates =====


class ProjectDraft(CamelModel):
    """Fields accepted when creating a project."""

    id: str | None = None
    name: str
    description: str = ""


class ProjectUpdate(CamelModel):
    """Partial project update. Only fields explicitly set are applied."""

    name: str | None = None
    description: str | None = None


class TaskDraft(CamelModel):
    """Fields accepted when creating a task. ``level`` is always derived."""

    id: str | None = None
    name: str
    details: str = ""
    project_id: str
    parent_id: str | None = None
    completed: bool = False
    status: TaskStatus | None = None
    priority: int = Field(default=5, ge=1, le=10)
    complexity: int | None = Field(default=None, ge=1, le=10)
    tags: list[str] = Field(default_factory=list)
    depends_on: list[str] = Field(default_factory=list)
    estimated_hours: float | None = Field(default=None, ge=0)


class TaskUpdate(CamelModel):
    """Partial task update.

    Has no ``parent_id``, ``project_id`` or ``level``; ancestry changes go
    through ``TaskRepository.move``.
    """

    name: str | None = None
    details: str | None = None
    completed: bool | None = None
    status: TaskStatus | None = None
    priority: int | None = Field(default=None, ge=1, le=10)
    complexity: int | None = Field(default=None, ge=1, le=10)
    tags: list[str] | None = None
    depends_on: list[str] | None = None
    estimated_hours: float | None = Field(default=None, ge=0)


class MemoryDraft(CamelModel):
    """Fields accepted when creating a memory."""

    id: str | None = None
    title: str
    content: str
    category: str | None = None
    metadata: dict[str, JsonValue] = Field(default_factory=dict)


class MemoryUpdate(CamelModel):
    """Partial memory update. ``metadata`` replaces the existing mapping."""

    title: str | None = None
    content: str | None = None
    category: str | None = None
    metadata: dict[str, JsonValue] | None = None


# ===== Derived views =====


class TaskTreeNode(BaseModel):
    """A task with its children attached, for display only."""

    task: Task
    children: list["TaskTreeNode"] = Field(default_factory=list)


class MigrationStatus(BaseModel):
    """Snapshot of the legacy subtask migration state."""

    needs_migration: bool
    subtask_count: int = Field(ge=0)
    schema_version: int
