"""Configuration management with hierarchical loading."""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from tasknest.infrastructure.logger import get_logger

logger = get_logger(__name__)

DEFAULT_DIRECTORY_NAME = ".tasknest"


class StorageConfig(BaseModel):
    """Where collection documents live."""

    directory_name: str = DEFAULT_DIRECTORY_NAME
    use_global_directory: bool = False


class MigrationConfig(BaseModel):
    """Legacy subtask migration policy."""

    # fail: raise DanglingReferenceError; orphan: migrate as a root task
    dangling_subtasks: Literal["fail", "orphan"] = "fail"


class MemoryConfig(BaseModel):
    """Memory collection defaults."""

    title_max_length: int = Field(default=50, ge=1)
    default_list_limit: int = Field(default=50, ge=1, le=1000)
    search_limit: int = Field(default=10, ge=1, le=100)
    search_threshold: float = Field(default=0.3, ge=0.0, le=1.0)


class RecommendationConfig(BaseModel):
    """Defaults for next-task recommendations and complexity analysis."""

    limit: int = Field(default=3, ge=1, le=10)
    complexity_threshold: int = Field(default=7, ge=1, le=10)


class Config(BaseModel):
    """Main configuration model."""

    version: str = "0.1.0"
    log_level: str = "INFO"
    storage: StorageConfig = Field(default_factory=StorageConfig)
    migration: MigrationConfig = Field(default_factory=MigrationConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    recommendation: RecommendationConfig = Field(default_factory=RecommendationConfig)


class ConfigManager:
    """Manage configuration loading from multiple sources with hierarchy."""

    def __init__(self, project_root: Path | None = None) -> None:
        """Initialize config manager.

        Args:
            project_root: Root directory of the project (default: current directory)
        """
        self.project_root = project_root or Path.cwd()
        self._config: Config | None = None

    def load_config(self) -> Config:
        """Load configuration from all sources in hierarchy order.

        Configuration hierarchy (highest priority last):
        1. System defaults (embedded in Config model)
        2. User defaults (~/.tasknest/config.yaml)
        3. Project config (.tasknest/config.yaml)
        4. Project overrides (.tasknest/local.yaml)
        5. Environment variables (TASKNEST_* prefix)

        Returns:
            Merged configuration
        """
        if self._config is not None:
            return self._config

        config_dict: dict[str, Any] = {}

        for path in (
            Path.home() / DEFAULT_DIRECTORY_NAME / "config.yaml",
            self.project_root / DEFAULT_DIRECTORY_NAME / "config.yaml",
            self.project_root / DEFAULT_DIRECTORY_NAME / "local.yaml",
        ):
            if path.exists():
                config_dict = self._merge_dicts(config_dict, self._load_yaml(path))
                logger.debug("config_file_loaded", path=str(path))

        config_dict = self._apply_env_vars(config_dict)

        self._config = Config(**config_dict)
        return self._config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        """Load YAML configuration file."""
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _merge_dicts(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Recursively merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_vars(self, config_dict: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variables with TASKNEST_ prefix."""
        env_mappings = {
            "TASKNEST_LOG_LEVEL": ["log_level"],
            "TASKNEST_DIRECTORY_NAME": ["storage", "directory_name"],
            "TASKNEST_USE_GLOBAL_DIRECTORY": ["storage", "use_global_directory"],
            "TASKNEST_DANGLING_SUBTASKS": ["migration", "dangling_subtasks"],
        }

        for env_var, path in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                current = config_dict
                for key in path[:-1]:
                    if key not in current:
                        current[key] = {}
                    current = current[key]
                # pydantic coerces "true"/"false"/"1"/"0" for bool fields
                current[path[-1]] = value

        return config_dict

    def get_log_dir(self) -> Path:
        """Get path to log directory."""
        config = self.load_config()
        root = resolve_working_directory(self.project_root, config)
        log_dir = root / config.storage.directory_name / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir


def resolve_working_directory(working_directory: Path, config: Config) -> Path:
    """Resolve the directory whose data folder holds the collection documents.

    Args:
        working_directory: Directory supplied by the caller
        config: Loaded configuration

    Returns:
        The user's home directory when global storage is enabled, otherwise
        the supplied directory as an absolute path
    """
    if config.storage.use_global_directory:
        return Path.home()
    return working_directory.expanduser().resolve()
