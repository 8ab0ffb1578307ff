"""Custom exception hierarchy for TaskNest storage errors."""

from pathlib import Path


class TaskNestError(Exception):
    """Base exception for all TaskNest errors."""

    pass


class NotFoundError(TaskNestError):
    """An identifier did not resolve to a stored entity.

    Attributes:
        entity_type: Kind of entity looked up ("project", "task", "memory")
        entity_id: The identifier that failed to resolve
    """

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type.capitalize()} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ConfirmationRequiredError(TaskNestError):
    """A destructive operation was called without explicit confirmation."""

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(
            f"Deleting {entity_type} {entity_id} requires confirm=True"
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(TaskNestError):
    """A write would violate a domain invariant."""

    pass


class CrossProjectError(ValidationError):
    """A parent task belongs to a different project than its child.

    Attributes:
        task_project_id: Project of the task being placed
        parent_project_id: Project of the requested parent
    """

    def __init__(self, task_project_id: str, parent_project_id: str):
        super().__init__(
            f"Parent task belongs to project {parent_project_id}, "
            f"but the task belongs to project {task_project_id}"
        )
        self.task_project_id = task_project_id
        self.parent_project_id = parent_project_id


class CycleError(TaskNestError):
    """Re-parenting would make a task its own ancestor."""

    def __init__(self, task_id: str, new_parent_id: str):
        if task_id == new_parent_id:
            message = f"Task {task_id} cannot be its own parent"
        else:
            message = (
                f"Cannot move task {task_id} under {new_parent_id}: "
                f"{new_parent_id} is one of its descendants"
            )
        super().__init__(message)
        self.task_id = task_id
        self.new_parent_id = new_parent_id


class CorruptDataError(TaskNestError):
    """On-disk data is unparseable or internally inconsistent.

    Attributes:
        path: Document the problem was found in, if known
        reason: Human-readable description of the problem
    """

    def __init__(self, reason: str, path: Path | None = None):
        message = f"{path}: {reason}" if path else reason
        super().__init__(message)
        self.path = path
        self.reason = reason


class DanglingReferenceError(TaskNestError):
    """A record references an entity that does not exist.

    Raised by the migration engine for legacy subtasks whose parent task is
    missing, and by the task repository for unknown ``depends_on`` ids.
    """

    def __init__(self, entity_type: str, entity_id: str, missing_id: str):
        super().__init__(
            f"{entity_type.capitalize()} {entity_id} references missing task {missing_id}"
        )
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.missing_id = missing_id


class StorageNotInitializedError(TaskNestError):
    """A repository was accessed before ``Storage.initialize`` completed."""

    def __init__(self) -> None:
        super().__init__("Storage is not initialized; await initialize() first")


class DependencyCycleError(TaskNestError):
    """Tasks depend on each other in a loop, so none of them can become ready.

    Attributes:
        cycles: Each cycle as task ids, with the first id repeated at the end
    """

    def __init__(self, cycles: list[list[str]]):
        formatted = "; ".join(" -> ".join(cycle) for cycle in cycles)
        super().__init__(f"Circular dependency detected: {formatted}")
        self.cycles = cycles
