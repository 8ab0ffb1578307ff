"""Shared helpers for CLI commands: storage bootstrap, error reporting, id lookup."""

import asyncio
import json
from collections.abc import Coroutine, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

import typer
from pydantic import JsonValue, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.markup import escape

from tasknest.infrastructure.config import ConfigManager
from tasknest.infrastructure.exceptions import (
    ConfirmationRequiredError,
    NotFoundError,
    TaskNestError,
    ValidationError,
)
from tasknest.infrastructure.logger import setup_logging
from tasknest.storage import Storage, create_storage

console = Console()

T = TypeVar("T")

# Shortest prefix accepted when resolving an id typed on the command line
MIN_ID_PREFIX_LENGTH = 4

_metadata_adapter = TypeAdapter(dict[str, JsonValue])


async def open_storage(directory: Path) -> Storage:
    """Load config for ``directory``, configure logging and initialize storage."""
    config_manager = ConfigManager(project_root=directory)
    config = config_manager.load_config()

    setup_logging(log_level=config.log_level, log_dir=config_manager.get_log_dir())

    return await create_storage(directory, config)


def print_error(message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command coroutine, turning domain errors into ``Error: ...`` and exit 1."""
    try:
        return asyncio.run(coro)
    except ConfirmationRequiredError as e:
        print_error(f"{e} (pass --yes to confirm)")
        raise typer.Exit(1) from e
    except (TaskNestError, PydanticValidationError) as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def resolve_id(value: str, known_ids: Iterable[str], entity_type: str) -> str:
    """Resolve a full id or a unique id prefix.

    Raises:
        NotFoundError: If nothing matches
        ValidationError: If the prefix is ambiguous
    """
    known = list(known_ids)
    if value in known:
        return value

    if len(value) >= MIN_ID_PREFIX_LENGTH:
        matches = [entity_id for entity_id in known if entity_id.startswith(value.lower())]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise ValidationError(
                f"Multiple {entity_type}s match prefix '{value}': {', '.join(matches)}"
            )

    raise NotFoundError(entity_type, value)


def require_found(entity: T | None, entity_type: str, entity_id: str) -> T:
    """Return a looked-up entity, raising NotFoundError if the lookup came back empty."""
    if entity is None:
        raise NotFoundError(entity_type, entity_id)
    return entity


def parse_metadata(raw: str | None) -> dict[str, JsonValue] | None:
    """Parse a ``--metadata`` JSON object argument."""
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Metadata must be valid JSON: {e.msg}") from None
    if not isinstance(data, dict):
        raise typer.BadParameter("Metadata must be a JSON object")
    return _metadata_adapter.validate_python(data)


def short_id(entity_id: str) -> str:
    return entity_id[:8]


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")
