"""Unit tests for custom exception hierarchy."""

from pathlib import Path

from tasknest.infrastructure.exceptions import (
    ConfirmationRequiredError,
    CorruptDataError,
    CrossProjectError,
    CycleError,
    DanglingReferenceError,
    DependencyCycleError,
    NotFoundError,
    StorageNotInitializedError,
    TaskNestError,
    ValidationError,
)


class TestExceptionHierarchy:
    """Test custom exception hierarchy."""

    def test_tasknest_error_is_base_exception(self) -> None:
        """Test that TaskNestError is the base exception."""
        error = TaskNestError("Test error")
        assert isinstance(error, Exception)
        assert str(error) == "Test error"

    def test_all_errors_inherit_from_tasknest_error(self) -> None:
        """Test that every storage error can be caught as TaskNestError."""
        errors = [
            NotFoundError("task", "t1"),
            ConfirmationRequiredError("task", "t1"),
            ValidationError("bad"),
            CrossProjectError("p1", "p2"),
            CycleError("t1", "t2"),
            CorruptDataError("broken"),
            DanglingReferenceError("subtask", "s1", "t9"),
            StorageNotInitializedError(),
            DependencyCycleError([["t1", "t2", "t1"]]),
        ]
        for error in errors:
            assert isinstance(error, TaskNestError)

    def test_cross_project_error_is_validation_error(self) -> None:
        """Test that CrossProjectError is a ValidationError."""
        error = CrossProjectError("p1", "p2")

        assert isinstance(error, ValidationError)
        assert error.task_project_id == "p1"
        assert error.parent_project_id == "p2"


class TestExceptionMessages:
    """Test exception attributes and messages."""

    def test_not_found_error_message(self) -> None:
        """Test NotFoundError names the entity type and id."""
        error = NotFoundError("project", "abc")

        assert str(error) == "Project abc not found"
        assert error.entity_type == "project"
        assert error.entity_id == "abc"

    def test_confirmation_required_error(self) -> None:
        """Test ConfirmationRequiredError mentions confirm."""
        error = ConfirmationRequiredError("memory", "m1")

        assert "memory m1" in str(error)
        assert "confirm=True" in str(error)

    def test_cycle_error_self_parent(self) -> None:
        """Test CycleError message when a task would parent itself."""
        error = CycleError("t1", "t1")

        assert "own parent" in str(error)

    def test_cycle_error_descendant_parent(self) -> None:
        """Test CycleError message when the new parent is a descendant."""
        error = CycleError("t1", "t2")

        assert "descendants" in str(error)
        assert error.task_id == "t1"
        assert error.new_parent_id == "t2"

    def test_corrupt_data_error_with_path(self) -> None:
        """Test CorruptDataError prefixes the document path."""
        error = CorruptDataError("invalid JSON", Path("/data/tasks.json"))

        assert str(error) == "/data/tasks.json: invalid JSON"
        assert error.reason == "invalid JSON"
        assert error.path == Path("/data/tasks.json")

    def test_corrupt_data_error_without_path(self) -> None:
        """Test CorruptDataError without a path is just the reason."""
        error = CorruptDataError("parent cycle")

        assert str(error) == "parent cycle"
        assert error.path is None

    def test_dangling_reference_error(self) -> None:
        """Test DanglingReferenceError records the missing id."""
        error = DanglingReferenceError("subtask", "s1", "t404")

        assert "Subtask s1" in str(error)
        assert "t404" in str(error)
        assert error.missing_id == "t404"

    def test_dependency_cycle_error(self) -> None:
        """Test DependencyCycleError lists every cycle."""
        error = DependencyCycleError([["a", "b", "a"], ["c", "d", "c"]])

        assert str(error) == "Circular dependency detected: a -> b -> a; c -> d -> c"
        assert error.cycles == [["a", "b", "a"], ["c", "d", "c"]]
