"""Unit tests for legacy subtask migration."""

from datetime import datetime, timezone

import pytest
from tasknest.domain.models import LegacySubtask, Task, TaskStatus
from tasknest.infrastructure.document_store import (
    CURRENT_SCHEMA_VERSION,
    LEGACY_SCHEMA_VERSION,
    TasksDocument,
)
from tasknest.infrastructure.exceptions import DanglingReferenceError
from tasknest.infrastructure.migration import MigrationEngine

CREATED = datetime(2023, 5, 1, 9, 30, tzinfo=timezone.utc)
UPDATED = datetime(2023, 5, 2, 10, 0, tzinfo=timezone.utc)


def legacy_document() -> TasksDocument:
    """Legacy document: task T1 with two subtasks, one completed."""
    return TasksDocument(
        schema_version=LEGACY_SCHEMA_VERSION,
        tasks=[Task(id="T1", name="Parent", project_id="P")],
        subtasks=[
            LegacySubtask(
                id="S1",
                name="First",
                details="do it",
                task_id="T1",
                project_id="P",
                completed=False,
                created_at=CREATED,
                updated_at=UPDATED,
            ),
            LegacySubtask(
                id="S2", name="Second", task_id="T1", project_id="P", completed=True
            ),
        ],
    )


class TestMigrationStatus:
    """Tests for migration detection."""

    def test_legacy_document_needs_migration(self) -> None:
        """Test that a non-empty subtask list triggers migration."""
        status = MigrationEngine().status(legacy_document())

        assert status.needs_migration is True
        assert status.subtask_count == 2
        assert status.schema_version == LEGACY_SCHEMA_VERSION

    def test_empty_document_needs_nothing(self) -> None:
        """Test that a document without subtasks is already migrated."""
        status = MigrationEngine().status(TasksDocument(schema_version=CURRENT_SCHEMA_VERSION))

        assert status.needs_migration is False
        assert status.subtask_count == 0


class TestMigrate:
    """Tests for MigrationEngine.migrate."""

    def test_subtasks_become_child_tasks(self) -> None:
        """Test the legacy scenario: two subtasks become level-1 children of T1."""
        document = legacy_document()

        changed = MigrationEngine().migrate(document)

        assert changed is True
        assert document.subtasks == []
        assert document.schema_version == CURRENT_SCHEMA_VERSION
        assert [t.id for t in document.tasks] == ["T1", "S1", "S2"]

        first, second = document.tasks[1], document.tasks[2]
        assert first.parent_id == "T1"
        assert first.level == 1
        assert first.project_id == "P"
        assert first.status == TaskStatus.PENDING
        assert first.completed is False
        assert first.details == "do it"
        assert first.priority == 5
        assert first.tags == []
        assert second.status == TaskStatus.DONE
        assert second.completed is True

    def test_timestamps_preserved(self) -> None:
        """Test migrated tasks keep their original timestamps."""
        document = legacy_document()

        MigrationEngine().migrate(document)

        assert document.tasks[1].created_at == CREATED
        assert document.tasks[1].updated_at == UPDATED

    def test_level_follows_nested_parent(self) -> None:
        """Test a subtask of a level-1 task lands at level 2."""
        document = TasksDocument(
            tasks=[
                Task(id="R", name="Root", project_id="P"),
                Task(id="C", name="Child", project_id="P", parent_id="R", level=1),
            ],
            subtasks=[LegacySubtask(id="S", name="Sub", task_id="C", project_id="P")],
        )

        MigrationEngine().migrate(document)

        assert document.tasks[-1].level == 2

    def test_migrate_is_idempotent(self) -> None:
        """Test a second migration finds nothing to do."""
        document = legacy_document()
        engine = MigrationEngine()

        engine.migrate(document)
        snapshot = document.model_dump()
        changed = engine.migrate(document)

        assert changed is False
        assert document.model_dump() == snapshot

    def test_already_present_subtask_skipped(self) -> None:
        """Test a subtask whose id already exists as a task is not duplicated."""
        document = legacy_document()
        document.tasks.append(Task(id="S1", name="First", project_id="P", parent_id="T1", level=1))

        MigrationEngine().migrate(document)

        assert [t.id for t in document.tasks] == ["T1", "S1", "S2"]
        assert document.subtasks == []

    def test_version_bumped_without_subtasks(self) -> None:
        """Test an old document with no subtasks is only re-stamped."""
        document = TasksDocument(schema_version=LEGACY_SCHEMA_VERSION)

        assert MigrationEngine().migrate(document) is True
        assert document.schema_version == CURRENT_SCHEMA_VERSION


class TestDanglingSubtasks:
    """Tests for subtasks whose parent task is missing."""

    def dangling_document(self) -> TasksDocument:
        document = legacy_document()
        document.subtasks.append(
            LegacySubtask(id="S3", name="Lost", task_id="GONE", project_id="P")
        )
        return document

    def test_fail_policy_raises_and_leaves_document(self) -> None:
        """Test the default policy raises before touching anything."""
        document = self.dangling_document()
        snapshot = document.model_dump()

        with pytest.raises(DanglingReferenceError) as exc_info:
            MigrationEngine().migrate(document)

        assert exc_info.value.entity_id == "S3"
        assert exc_info.value.missing_id == "GONE"
        assert document.model_dump() == snapshot

    def test_orphan_policy_migrates_as_root(self) -> None:
        """Test the orphan policy turns the subtask into a root task."""
        document = self.dangling_document()

        MigrationEngine(dangling_policy="orphan").migrate(document)

        orphan = document.tasks[-1]
        assert orphan.id == "S3"
        assert orphan.parent_id is None
        assert orphan.level == 0
        assert orphan.project_id == "P"
        assert document.subtasks == []
