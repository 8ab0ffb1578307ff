"""Unit tests for configuration management."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from pydantic import ValidationError
from tasknest.infrastructure.config import (
    Config,
    ConfigManager,
    MemoryConfig,
    MigrationConfig,
    resolve_working_directory,
)


class TestConfig:
    """Tests for Config model."""

    def test_default_config(self) -> None:
        """Test creating a config with defaults."""
        config = Config()

        assert config.version == "0.1.0"
        assert config.log_level == "INFO"
        assert config.storage.directory_name == ".tasknest"
        assert config.storage.use_global_directory is False
        assert config.migration.dangling_subtasks == "fail"
        assert config.memory.title_max_length == 50
        assert config.memory.search_limit == 10
        assert config.memory.search_threshold == 0.3
        assert config.recommendation.limit == 3
        assert config.recommendation.complexity_threshold == 7

    def test_custom_config_values(self) -> None:
        """Test creating a config with custom values."""
        config = Config(
            log_level="DEBUG",
            migration=MigrationConfig(dangling_subtasks="orphan"),
            memory=MemoryConfig(search_limit=25),
        )

        assert config.log_level == "DEBUG"
        assert config.migration.dangling_subtasks == "orphan"
        assert config.memory.search_limit == 25

    def test_invalid_dangling_policy_rejected(self) -> None:
        """Test that unknown migration policies fail validation."""
        with pytest.raises(ValidationError):
            MigrationConfig(dangling_subtasks="ignore")  # type: ignore[arg-type]


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_load_default_config(self) -> None:
        """Test loading config with no files present."""
        with TemporaryDirectory() as tmpdir:
            config_manager = ConfigManager(project_root=Path(tmpdir))
            config = config_manager.load_config()

            assert config.version == "0.1.0"
            assert config.log_level == "INFO"

    def test_load_project_config(self) -> None:
        """Test loading config from the project config file."""
        with TemporaryDirectory() as tmpdir:
            project_root = Path(tmpdir)
            config_dir = project_root / ".tasknest"
            config_dir.mkdir()
            (config_dir / "config.yaml").write_text(
                """
log_level: DEBUG
migration:
  dangling_subtasks: orphan
memory:
  title_max_length: 80
"""
            )

            config = ConfigManager(project_root=project_root).load_config()

            assert config.log_level == "DEBUG"
            assert config.migration.dangling_subtasks == "orphan"
            assert config.memory.title_max_length == 80
            # Untouched sections keep their defaults
            assert config.memory.search_limit == 10

    def test_local_overrides_project_config(self) -> None:
        """Test that local.yaml takes precedence over config.yaml."""
        with TemporaryDirectory() as tmpdir:
            project_root = Path(tmpdir)
            config_dir = project_root / ".tasknest"
            config_dir.mkdir()
            (config_dir / "config.yaml").write_text("log_level: DEBUG\n")
            (config_dir / "local.yaml").write_text("log_level: WARNING\n")

            config = ConfigManager(project_root=project_root).load_config()

            assert config.log_level == "WARNING"

    def test_user_config_loaded_from_home(self) -> None:
        """Test that ~/.tasknest/config.yaml is the lowest-priority file."""
        with TemporaryDirectory() as tmpdir:
            user_dir = Path.home() / ".tasknest"
            user_dir.mkdir(parents=True, exist_ok=True)
            (user_dir / "config.yaml").write_text(
                "memory:\n  search_limit: 5\nlog_level: ERROR\n"
            )
            project_root = Path(tmpdir)
            (project_root / ".tasknest").mkdir()
            (project_root / ".tasknest" / "config.yaml").write_text("log_level: DEBUG\n")

            config = ConfigManager(project_root=project_root).load_config()

            assert config.memory.search_limit == 5
            assert config.log_level == "DEBUG"

    def test_env_var_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that environment variables override config files."""
        with TemporaryDirectory() as tmpdir:
            project_root = Path(tmpdir)
            config_dir = project_root / ".tasknest"
            config_dir.mkdir()
            (config_dir / "config.yaml").write_text("log_level: DEBUG\n")

            monkeypatch.setenv("TASKNEST_LOG_LEVEL", "ERROR")
            monkeypatch.setenv("TASKNEST_DANGLING_SUBTASKS", "orphan")
            monkeypatch.setenv("TASKNEST_USE_GLOBAL_DIRECTORY", "true")

            config = ConfigManager(project_root=project_root).load_config()

            assert config.log_level == "ERROR"
            assert config.migration.dangling_subtasks == "orphan"
            assert config.storage.use_global_directory is True

    def test_config_is_cached(self) -> None:
        """Test that load_config returns the same object on repeated calls."""
        with TemporaryDirectory() as tmpdir:
            config_manager = ConfigManager(project_root=Path(tmpdir))

            assert config_manager.load_config() is config_manager.load_config()

    def test_get_log_dir_created_under_data_folder(self) -> None:
        """Test that the log directory lives inside the data folder."""
        with TemporaryDirectory() as tmpdir:
            project_root = Path(tmpdir)
            log_dir = ConfigManager(project_root=project_root).get_log_dir()

            assert log_dir == project_root.resolve() / ".tasknest" / "logs"
            assert log_dir.is_dir()


class TestResolveWorkingDirectory:
    """Tests for working directory resolution."""

    def test_relative_directory_made_absolute(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that the working directory is resolved to an absolute path."""
        monkeypatch.chdir(tmp_path)

        resolved = resolve_working_directory(Path("."), Config())

        assert resolved == tmp_path.resolve()
        assert resolved.is_absolute()

    def test_global_directory_uses_home(self, tmp_path: Path) -> None:
        """Test that global storage ignores the supplied directory."""
        config = Config.model_validate({"storage": {"use_global_directory": True}})

        assert resolve_working_directory(tmp_path, config) == Path.home()
