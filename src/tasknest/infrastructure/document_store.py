"""JSON document persistence: one file per collection.

Every document is a single pretty-printed UTF-8 JSON object. Loads validate
the whole document against its pydantic model; persists rewrite the whole
file (write to a sibling temp file, then rename over the target).
"""

import asyncio
import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from tasknest.domain.models import LegacySubtask, Memory, Project, Task
from tasknest.infrastructure.exceptions import CorruptDataError
from tasknest.infrastructure.logger import get_logger

logger = get_logger(__name__)

# Tasks documents without a schemaVersion key predate the unified hierarchy
LEGACY_SCHEMA_VERSION = 1
CURRENT_SCHEMA_VERSION = 2

JSON_INDENT = 2


def _umask_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


# Mode for newly created documents; read once at import, os.umask is process-wide
NEW_FILE_MODE = _umask_file_mode()


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ProjectsDocument(_Document):
    """Contents of projects.json."""

    projects: list[Project] = Field(default_factory=list)


class TasksDocument(_Document):
    """Contents of tasks.json.

    ``subtasks`` holds legacy flat subtask records until the migration engine
    folds them into ``tasks``.
    """

    schema_version: int = Field(default=LEGACY_SCHEMA_VERSION, alias="schemaVersion")
    tasks: list[Task] = Field(default_factory=list)
    subtasks: list[LegacySubtask] = Field(default_factory=list)


class MemoriesDocument(_Document):
    """Contents of memories.json."""

    memories: list[Memory] = Field(default_factory=list)


DocumentT = TypeVar("DocumentT", bound=BaseModel)


class DocumentStore(Generic[DocumentT]):
    """Load and persist a single collection document."""

    def __init__(self, path: Path, model: type[DocumentT], default: DocumentT) -> None:
        """Initialize document store.

        Args:
            path: Location of the JSON document
            model: pydantic model describing the document shape
            default: Document written when the file does not exist yet
        """
        self.path = path
        self.model = model
        self._default = default

    @property
    def exists(self) -> bool:
        return self.path.exists()

    async def load(self) -> DocumentT:
        """Read and validate the document, creating a default one if missing.

        Raises:
            CorruptDataError: If the file is not JSON or has the wrong shape
        """
        return await asyncio.to_thread(self._load_sync)

    async def persist(self, document: DocumentT) -> None:
        """Replace the document on disk with the given in-memory state."""
        await asyncio.to_thread(self._persist_sync, document)

    def _load_sync(self) -> DocumentT:
        if not self.path.exists():
            document = self._default.model_copy(deep=True)
            self._persist_sync(document)
            logger.info("document_created", path=str(self.path))
            return document

        try:
            raw = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise CorruptDataError(f"not valid UTF-8 ({e})", self.path) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDataError(f"invalid JSON ({e.msg} at line {e.lineno})", self.path) from e

        if not isinstance(data, dict):
            raise CorruptDataError(
                f"expected a JSON object, found {type(data).__name__}", self.path
            )

        try:
            document = self.model.model_validate(data)
        except PydanticValidationError as e:
            raise CorruptDataError(
                f"unexpected document shape ({e.error_count()} errors): {e}", self.path
            ) from e

        logger.debug("document_loaded", path=str(self.path))
        return document

    def _persist_sync(self, document: DocumentT) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(
            document.model_dump(mode="json", by_alias=True),
            indent=JSON_INDENT,
            ensure_ascii=False,
        )

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
            # mkstemp creates owner-only files; keep the existing mode or the umask default
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            return NEW_FILE_MODE


def projects_store(data_dir: Path) -> DocumentStore[ProjectsDocument]:
    return DocumentStore(data_dir / "projects.json", ProjectsDocument, ProjectsDocument())


def tasks_store(data_dir: Path) -> DocumentStore[TasksDocument]:
    return DocumentStore(
        data_dir / "tasks.json",
        TasksDocument,
        TasksDocument(schema_version=CURRENT_SCHEMA_VERSION),
    )


def memories_store(data_dir: Path) -> DocumentStore[MemoriesDocument]:
    return DocumentStore(data_dir / "memories.json", MemoriesDocument, MemoriesDocument())
