"""Memory repository: CRUD over memories.json."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from tasknest.domain.models import Memory, MemoryDraft, MemoryUpdate, next_timestamp, utc_now
from tasknest.infrastructure.document_store import DocumentStore, MemoriesDocument
from tasknest.infrastructure.exceptions import (
    ConfirmationRequiredError,
    NotFoundError,
    ValidationError,
)
from tasknest.infrastructure.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TITLE_MAX_LENGTH = 50


class MemoryRepository:
    """Repository for free-form memories.

    Titles longer than ``title_max_length`` are accepted, with a warning.
    """

    def __init__(
        self,
        store: DocumentStore[MemoriesDocument],
        document: MemoriesDocument,
        title_max_length: int = DEFAULT_TITLE_MAX_LENGTH,
    ) -> None:
        """Initialize memory repository.

        Args:
            store: Document store for memories.json
            document: Loaded memories document
            title_max_length: Recommended maximum title length
        """
        self._store = store
        self._document = document
        self.title_max_length = title_max_length

    @property
    def _memories(self) -> list[Memory]:
        return self._document.memories

    async def _persist(self) -> None:
        await self._store.persist(self._document)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        """Persist changes made inside the block, undoing them if the write fails."""
        snapshot = [memory.model_copy(deep=True) for memory in self._memories]
        try:
            yield
            await self._persist()
        except BaseException:
            self._memories[:] = snapshot
            raise

    def _find(self, memory_id: str) -> Memory | None:
        for memory in self._memories:
            if memory.id == memory_id:
                return memory
        return None

    def _check_title(self, memory_id: str, title: str) -> None:
        if len(title) > self.title_max_length:
            logger.warning(
                "memory_title_too_long",
                memory_id=memory_id,
                length=len(title),
                max_length=self.title_max_length,
            )

    async def create(self, draft: MemoryDraft) -> Memory:
        """Create and persist a new memory.

        Raises:
            ValidationError: If the draft carries an id that is already taken
        """
        if draft.id is not None and self._find(draft.id) is not None:
            raise ValidationError(f"Memory id {draft.id} already exists")

        now = utc_now()
        memory = Memory(
            **draft.model_dump(exclude={"id"}),
            **({"id": draft.id} if draft.id is not None else {}),
            created_at=now,
            updated_at=now,
        )
        self._check_title(memory.id, memory.title)

        async with self._transaction():
            self._memories.append(memory)

        logger.info("memory_created", memory_id=memory.id, category=memory.category)
        return memory.model_copy(deep=True)

    def get(self, memory_id: str) -> Memory | None:
        """Fetch a memory by id, or None if it does not exist."""
        memory = self._find(memory_id)
        return memory.model_copy(deep=True) if memory is not None else None

    def list_memories(self, category: str | None = None, limit: int | None = None) -> list[Memory]:
        """List memories in insertion order.

        Args:
            category: Only memories in this category
            limit: Maximum number of memories to return (None = no limit)
        """
        memories = [m for m in self._memories if category is None or m.category == category]
        if limit is not None:
            memories = memories[: max(limit, 0)]
        return [memory.model_copy(deep=True) for memory in memories]

    async def update(self, memory_id: str, changes: MemoryUpdate) -> Memory:
        """Apply the fields explicitly set on ``changes``.

        ``metadata`` replaces the stored mapping; ``category`` may be cleared
        by setting it to None explicitly.

        Raises:
            NotFoundError: If the memory does not exist
        """
        memory = self._find(memory_id)
        if memory is None:
            raise NotFoundError("memory", memory_id)

        fields = {
            name: value
            for name, value in changes.model_dump(exclude_unset=True).items()
            if value is not None or name == "category"
        }
        if "title" in fields:
            self._check_title(memory.id, fields["title"])

        async with self._transaction():
            for name, value in fields.items():
                setattr(memory, name, value)
            memory.updated_at = next_timestamp(memory.updated_at)

        logger.info("memory_updated", memory_id=memory.id, fields=sorted(fields))
        return memory.model_copy(deep=True)

    async def delete(self, memory_id: str, confirm: bool = False) -> None:
        """Delete a memory.

        Raises:
            ConfirmationRequiredError: If ``confirm`` is not True
            NotFoundError: If the memory does not exist
        """
        if confirm is not True:
            raise ConfirmationRequiredError("memory", memory_id)

        if self._find(memory_id) is None:
            raise NotFoundError("memory", memory_id)

        async with self._transaction():
            self._memories[:] = [m for m in self._memories if m.id != memory_id]
        logger.info("memory_deleted", memory_id=memory_id)
