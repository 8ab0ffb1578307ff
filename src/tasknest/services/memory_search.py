"""Text relevance search over stored memories.

Scoring is purely lexical. Each memory is scored against the query on its
title, content and string metadata; the best signal wins:

- title: exact match 1.0, substring 0.8, word overlap up to 0.6
- content: substring 0.6, word overlap up to 0.4
- category and metadata strings: substring 0.3
"""

import re
from collections.abc import Iterator

from pydantic import BaseModel, Field, JsonValue

from tasknest.domain.models import Memory
from tasknest.infrastructure.logger import get_logger
from tasknest.services.memory_repository import MemoryRepository

logger = get_logger(__name__)

TITLE_EXACT_SCORE = 1.0
TITLE_SUBSTRING_SCORE = 0.8
TITLE_WORD_SCORE = 0.6
CONTENT_SUBSTRING_SCORE = 0.6
CONTENT_WORD_SCORE = 0.4
METADATA_SUBSTRING_SCORE = 0.3

DEFAULT_SEARCH_LIMIT = 10
DEFAULT_SEARCH_THRESHOLD = 0.3

_WORD_RE = re.compile(r"\w+")


class MemorySearchResult(BaseModel):
    """A memory paired with its relevance to a query."""

    memory: Memory
    score: float = Field(ge=0.0, le=1.0)
    matched_fields: list[str] = Field(default_factory=list)


def _words(text: str) -> set[str]:
    return set(_WORD_RE.findall(text.lower()))


def _word_overlap(query_words: set[str], text: str) -> float:
    """Fraction of query words that appear in ``text``."""
    if not query_words:
        return 0.0
    return len(query_words & _words(text)) / len(query_words)


def _metadata_strings(value: JsonValue) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from _metadata_strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _metadata_strings(item)


def score_memory(memory: Memory, query: str) -> tuple[float, list[str]]:
    """Score one memory against a query.

    Returns:
        The score in [0, 1] and the names of the fields that matched
    """
    needle = query.strip().lower()
    if not needle:
        return 0.0, []
    query_words = _words(needle)

    signals: dict[str, float] = {}

    title = memory.title.lower()
    if title == needle:
        signals["title"] = TITLE_EXACT_SCORE
    elif needle in title:
        signals["title"] = TITLE_SUBSTRING_SCORE
    else:
        overlap = _word_overlap(query_words, title)
        if overlap:
            signals["title"] = TITLE_WORD_SCORE * overlap

    content = memory.content.lower()
    if needle in content:
        signals["content"] = CONTENT_SUBSTRING_SCORE
    else:
        overlap = _word_overlap(query_words, content)
        if overlap:
            signals["content"] = CONTENT_WORD_SCORE * overlap

    if memory.category and needle in memory.category.lower():
        signals["category"] = METADATA_SUBSTRING_SCORE

    if any(needle in text.lower() for text in _metadata_strings(memory.metadata)):
        signals["metadata"] = METADATA_SUBSTRING_SCORE

    if not signals:
        return 0.0, []
    score = min(max(signals.values()), 1.0)
    return score, sorted(signals, key=lambda name: signals[name], reverse=True)


class MemorySearch:
    """Read-only relevance search over a memory repository.

    Usage:
        search = MemorySearch(storage.memories)
        for result in search.search("deploy checklist", limit=5):
            print(result.score, result.memory.title)
    """

    def __init__(
        self,
        memories: MemoryRepository,
        default_limit: int = DEFAULT_SEARCH_LIMIT,
        default_threshold: float = DEFAULT_SEARCH_THRESHOLD,
    ) -> None:
        self.memories = memories
        self.default_limit = default_limit
        self.default_threshold = default_threshold

    def search(
        self,
        query: str,
        limit: int | None = None,
        threshold: float | None = None,
        category: str | None = None,
    ) -> list[MemorySearchResult]:
        """Find memories relevant to ``query``.

        Args:
            query: Free text to look for
            limit: Maximum number of results
            threshold: Minimum score for a result to be returned
            category: Only search memories in this category

        Returns:
            Results sorted by score descending, ties in insertion order
        """
        limit = self.default_limit if limit is None else limit
        threshold = self.default_threshold if threshold is None else threshold

        results: list[MemorySearchResult] = []
        for memory in self.memories.list_memories(category=category):
            score, matched = score_memory(memory, query)
            if matched and score >= threshold:
                results.append(
                    MemorySearchResult(memory=memory, score=score, matched_fields=matched)
                )

        # sort is stable, so equal scores keep insertion order
        results.sort(key=lambda result: result.score, reverse=True)
        results = results[: max(limit, 0)]

        logger.debug("memory_search", query=query, result_count=len(results))
        return results
