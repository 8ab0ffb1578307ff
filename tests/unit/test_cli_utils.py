"""Unit tests for CLI utility functions."""

from datetime import datetime, timezone

import pytest
import typer
from tasknest.cli.utils import (
    MIN_ID_PREFIX_LENGTH,
    format_timestamp,
    parse_metadata,
    require_found,
    resolve_id,
    run,
    short_id,
)
from tasknest.infrastructure.exceptions import (
    ConfirmationRequiredError,
    NotFoundError,
    ValidationError,
)

KNOWN_IDS = ["3f2a9c1e-0000", "3f2b0000-1111", "9c1e4d2a-2222"]


class TestResolveId:
    """Tests for resolve_id function."""

    def test_full_id(self):
        """Test an exact id resolves to itself."""
        assert resolve_id("9c1e4d2a-2222", KNOWN_IDS, "task") == "9c1e4d2a-2222"

    def test_unique_prefix(self):
        """Test a unique prefix resolves to the full id."""
        assert resolve_id("9c1e", KNOWN_IDS, "task") == "9c1e4d2a-2222"

    def test_prefix_is_case_insensitive(self):
        """Test upper-case prefixes match lower-case ids."""
        assert resolve_id("9C1E", KNOWN_IDS, "task") == "9c1e4d2a-2222"

    def test_ambiguous_prefix(self):
        """Test a prefix shared by two ids is rejected."""
        with pytest.raises(ValidationError, match="Multiple tasks"):
            resolve_id("3f2a", KNOWN_IDS + ["3f2a7777"], "task")

    def test_short_prefix_not_matched(self):
        """Test prefixes below the minimum length are not expanded."""
        prefix = "9c1e"[: MIN_ID_PREFIX_LENGTH - 1]

        with pytest.raises(NotFoundError):
            resolve_id(prefix, KNOWN_IDS, "task")

    def test_no_match(self):
        """Test an unknown id reports the entity type."""
        with pytest.raises(NotFoundError) as exc_info:
            resolve_id("ffff", KNOWN_IDS, "memory")

        assert exc_info.value.entity_type == "memory"


class TestRequireFound:
    """Tests for require_found function."""

    def test_returns_entity(self):
        """Test a found entity is passed through."""
        assert require_found("value", "task", "abc") == "value"

    def test_missing_entity_raises(self):
        """Test an empty lookup becomes NotFoundError rather than an assertion."""
        with pytest.raises(NotFoundError) as exc_info:
            require_found(None, "project", "3f2a")

        assert exc_info.value.entity_type == "project"
        assert exc_info.value.entity_id == "3f2a"


class TestParseMetadata:
    """Tests for parse_metadata function."""

    def test_none(self):
        """Test a missing option stays None."""
        assert parse_metadata(None) is None

    def test_json_object(self):
        """Test a JSON object is parsed."""
        assert parse_metadata('{"a": [1, "b"], "c": null}') == {"a": [1, "b"], "c": None}

    def test_invalid_json(self):
        """Test unparseable JSON is a bad parameter."""
        with pytest.raises(typer.BadParameter, match="valid JSON"):
            parse_metadata("{nope")

    def test_non_object(self):
        """Test a JSON array is rejected."""
        with pytest.raises(typer.BadParameter, match="JSON object"):
            parse_metadata("[1, 2]")


class TestRun:
    """Tests for the command runner."""

    def test_returns_result(self):
        """Test the coroutine result is passed through."""

        async def _ok() -> int:
            return 42

        assert run(_ok()) == 42

    def test_domain_error_exits_with_one(self, capsys: pytest.CaptureFixture[str]):
        """Test domain errors become 'Error:' output and exit code 1."""

        async def _fail() -> None:
            raise NotFoundError("task", "abc")

        with pytest.raises(typer.Exit) as exc_info:
            run(_fail())

        assert exc_info.value.exit_code == 1
        assert "Error: Task abc not found" in capsys.readouterr().out

    def test_confirmation_hint(self, capsys: pytest.CaptureFixture[str]):
        """Test missing confirmation points at --yes."""

        async def _fail() -> None:
            raise ConfirmationRequiredError("task", "abc")

        with pytest.raises(typer.Exit):
            run(_fail())

        assert "--yes" in capsys.readouterr().out


class TestFormatting:
    """Tests for small display helpers."""

    def test_short_id(self):
        """Test ids are cut to eight characters."""
        assert short_id("3f2a9c1e-0000") == "3f2a9c1e"

    def test_format_timestamp(self):
        """Test timestamps render to the minute."""
        value = datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)

        assert format_timestamp(value) == "2024-02-03 04:05"
