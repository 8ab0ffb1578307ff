"""Unit tests for JSON document persistence."""

import json
import stat
import sys
from pathlib import Path

import pytest
from tasknest.domain.models import Project
from tasknest.infrastructure.document_store import (
    CURRENT_SCHEMA_VERSION,
    LEGACY_SCHEMA_VERSION,
    NEW_FILE_MODE,
    ProjectsDocument,
    memories_store,
    projects_store,
    tasks_store,
)
from tasknest.infrastructure.exceptions import CorruptDataError


class TestDocumentLoad:
    """Tests for DocumentStore.load."""

    async def test_missing_file_created_with_default(self, tmp_path: Path) -> None:
        """Test that loading a missing document creates an empty one on disk."""
        store = projects_store(tmp_path / ".tasknest")
        assert not store.exists

        document = await store.load()

        assert document.projects == []
        assert store.exists
        assert json.loads(store.path.read_text(encoding="utf-8")) == {"projects": []}

    async def test_new_tasks_document_is_current_schema(self, tmp_path: Path) -> None:
        """Test that a freshly created tasks document is stamped with the current schema."""
        store = tasks_store(tmp_path)

        document = await store.load()
        data = json.loads(store.path.read_text(encoding="utf-8"))

        assert document.schema_version == CURRENT_SCHEMA_VERSION
        assert data == {"schemaVersion": CURRENT_SCHEMA_VERSION, "tasks": [], "subtasks": []}

    async def test_tasks_document_without_version_is_legacy(self, tmp_path: Path) -> None:
        """Test that a tasks document lacking schemaVersion reads as version 1."""
        (tmp_path / "tasks.json").write_text('{"tasks": []}', encoding="utf-8")

        document = await tasks_store(tmp_path).load()

        assert document.schema_version == LEGACY_SCHEMA_VERSION
        assert document.subtasks == []

    async def test_invalid_json_raises_corrupt_data(self, tmp_path: Path) -> None:
        """Test that unparseable content raises CorruptDataError."""
        (tmp_path / "memories.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(CorruptDataError) as exc_info:
            await memories_store(tmp_path).load()

        assert exc_info.value.path == tmp_path / "memories.json"
        assert "invalid JSON" in exc_info.value.reason

    async def test_non_object_raises_corrupt_data(self, tmp_path: Path) -> None:
        """Test that a JSON array at top level is rejected."""
        (tmp_path / "projects.json").write_text("[]", encoding="utf-8")

        with pytest.raises(CorruptDataError, match="expected a JSON object"):
            await projects_store(tmp_path).load()

    async def test_wrong_shape_raises_corrupt_data(self, tmp_path: Path) -> None:
        """Test that records missing required fields are rejected."""
        (tmp_path / "projects.json").write_text(
            json.dumps({"projects": [{"id": "p1"}]}), encoding="utf-8"
        )

        with pytest.raises(CorruptDataError, match="unexpected document shape"):
            await projects_store(tmp_path).load()

    async def test_corrupt_file_left_untouched(self, tmp_path: Path) -> None:
        """Test that a failed load does not overwrite the file."""
        path = tmp_path / "projects.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(CorruptDataError):
            await projects_store(tmp_path).load()

        assert path.read_text(encoding="utf-8") == "{broken"


class TestDocumentPersist:
    """Tests for DocumentStore.persist."""

    async def test_persist_writes_pretty_camel_case_json(self, tmp_path: Path) -> None:
        """Test the on-disk format: indented UTF-8 JSON with camelCase keys."""
        store = projects_store(tmp_path)
        document = ProjectsDocument(projects=[Project(id="p1", name="Café")])

        await store.persist(document)
        raw = store.path.read_text(encoding="utf-8")

        assert raw.startswith('{\n  "projects": [')
        assert "Café" in raw
        assert '"createdAt"' in raw
        assert raw.endswith("\n")

    async def test_persist_then_load(self, tmp_path: Path) -> None:
        """Test that a persisted document loads back equal."""
        store = projects_store(tmp_path)
        document = ProjectsDocument(projects=[Project(name="Alpha"), Project(name="Beta")])

        await store.persist(document)
        loaded = await store.load()

        assert loaded == document

    async def test_persist_leaves_no_temp_files(self, tmp_path: Path) -> None:
        """Test that the temporary file is renamed over the target."""
        store = projects_store(tmp_path)

        await store.persist(ProjectsDocument())
        await store.persist(ProjectsDocument(projects=[Project(name="Alpha")]))

        assert sorted(p.name for p in tmp_path.iterdir()) == ["projects.json"]

    async def test_persist_creates_data_directory(self, tmp_path: Path) -> None:
        """Test that missing parent directories are created."""
        store = projects_store(tmp_path / "nested" / ".tasknest")

        await store.persist(ProjectsDocument())

        assert store.path.is_file()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
class TestDocumentPermissions:
    """Tests for the file mode of persisted documents."""

    async def test_new_document_uses_umask_default(self, tmp_path: Path) -> None:
        """Test a new document is not left owner-only like a raw temp file."""
        store = projects_store(tmp_path)

        await store.persist(ProjectsDocument())

        assert stat.S_IMODE(store.path.stat().st_mode) == NEW_FILE_MODE

    async def test_existing_mode_preserved(self, tmp_path: Path) -> None:
        """Test rewriting a document keeps the permissions it already had."""
        store = projects_store(tmp_path)
        await store.persist(ProjectsDocument())
        store.path.chmod(0o640)

        await store.persist(ProjectsDocument(projects=[Project(name="Alpha")]))

        assert stat.S_IMODE(store.path.stat().st_mode) == 0o640
