"""Pytest configuration and fixtures."""

import errno
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from tasknest.domain.models import Project, ProjectDraft
from tasknest.infrastructure.config import DEFAULT_DIRECTORY_NAME
from tasknest.infrastructure.document_store import DocumentStore
from tasknest.storage import Storage, create_storage

TASKNEST_ENV_VARS = (
    "TASKNEST_LOG_LEVEL",
    "TASKNEST_DIRECTORY_NAME",
    "TASKNEST_USE_GLOBAL_DIRECTORY",
    "TASKNEST_DANGLING_SUBTASKS",
)


@pytest.fixture(autouse=True)
def isolated_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> None:
    """Keep user config and TASKNEST_* variables out of every test."""
    for name in TASKNEST_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Empty working directory for a storage instance."""
    directory = tmp_path / "workspace"
    directory.mkdir()
    return directory


@pytest.fixture
def data_dir(work_dir: Path) -> Path:
    """Data folder the storage writes its documents into."""
    return work_dir / DEFAULT_DIRECTORY_NAME


@pytest.fixture
async def storage(work_dir: Path) -> Storage:
    """Initialized storage over an empty working directory."""
    return await create_storage(work_dir)


@pytest.fixture
async def project(storage: Storage) -> Project:
    """A sample project to hang tasks from."""
    return await storage.projects.create(
        ProjectDraft(name="Website Relaunch", description="Sample project")
    )


@pytest.fixture
def write_document(data_dir: Path) -> Callable[[str, Any], Path]:
    """Write a raw JSON document into the data folder before storage opens it."""

    def _write(filename: str, content: Any) -> Path:
        data_dir.mkdir(parents=True, exist_ok=True)
        path = data_dir / filename
        if isinstance(content, str):
            path.write_text(content, encoding="utf-8")
        else:
            path.write_text(json.dumps(content, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def read_document(data_dir: Path) -> Callable[[str], Any]:
    """Read a persisted JSON document from the data folder."""

    def _read(filename: str) -> Any:
        return json.loads((data_dir / filename).read_text(encoding="utf-8"))

    return _read


@pytest.fixture
def break_writes(monkeypatch: pytest.MonkeyPatch) -> Callable[[], None]:
    """Return a switch that makes every later document write fail like a full disk."""

    def _break() -> None:
        async def _fail(self: DocumentStore[Any], document: Any) -> None:
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(DocumentStore, "persist", _fail)

    return _break
