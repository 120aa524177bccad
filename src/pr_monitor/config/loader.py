"""Configuration loading.

The loading hierarchy is:
1. Default values from Pydantic models
2. Configuration file (``.pr_monitor/config.yaml`` or ``PR_MONITOR_CONFIG``)
3. Environment variables (and ``.pr_monitor/.env``)
4. Runtime overrides (command line arguments)

Values still missing afterwards are auto-detected from the local checkout:
the repository from the ``origin`` remote and the token from ``gh``.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..git_context import GitContext
from .exceptions import ConfigurationFileError, ConfigurationValidationError
from .models import MONITOR_DIR_NAME, MonitorConfig

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "PR_MONITOR_CONFIG"


class EnvironmentSettings(BaseSettings):
    """Flat view of the environment variables the monitor understands."""

    github_token: str | None = None
    github_repo: str | None = None
    pushover_user: str | None = None
    pushover_token: str | None = None
    check_interval: int | None = None
    claude_cli: str | None = None
    state_file: str | None = None
    log_file: str | None = None
    db_path: str | None = None
    log_level: str | None = None
    github_api_url: str | None = None

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    def to_config_dict(self) -> dict[str, Any]:
        """Map set variables onto the nested configuration layout."""
        mapping: dict[str, tuple[str, str]] = {
            "github_token": ("github", "token"),
            "github_repo": ("github", "repo"),
            "github_api_url": ("github", "base_url"),
            "pushover_user": ("notifications", "pushover_user"),
            "pushover_token": ("notifications", "pushover_token"),
            "check_interval": ("polling", "check_interval"),
            "claude_cli": ("agent", "cli_command"),
            "state_file": ("paths", "state_file"),
            "log_file": ("paths", "log_file"),
            "db_path": ("paths", "db_path"),
            "log_level": ("logging", "level"),
        }
        result: dict[str, Any] = {}
        for field_name, (section, key) in mapping.items():
            value = getattr(self, field_name)
            if value is None or value == "":
                continue
            if field_name == "log_level":
                value = str(value).upper()
            result.setdefault(section, {})[key] = value
        return result


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigurationLoader:
    """Handles loading and validation of configuration from various sources."""

    def __init__(
        self,
        git: GitContext | None = None,
        auto_detect: bool = True,
    ) -> None:
        """Initialize configuration loader.

        Args:
            git: Git helper used for auto-detection
            auto_detect: Whether to fill missing values from the local checkout
        """
        self.git = git or GitContext()
        self.auto_detect = auto_detect
        self._config_file_path: Path | None = None

    @property
    def config_file_path(self) -> Path | None:
        """Get the path of the configuration file used by the last load."""
        return self._config_file_path

    def find_config_file(self, root: Path) -> Path | None:
        """Find configuration file.

        Search order:
        1. PR_MONITOR_CONFIG environment variable
        2. <root>/.pr_monitor/config.yaml

        Args:
            root: Repository root

        Returns:
            Path to found configuration file, or None if not found
        """
        env_path = os.getenv(CONFIG_PATH_ENV)
        if env_path:
            return Path(env_path)

        candidate = root / MONITOR_DIR_NAME / "config.yaml"
        return candidate if candidate.is_file() else None

    def load_file(self, config_path: str | Path) -> dict[str, Any]:
        """Read a YAML configuration file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Raw configuration data

        Raises:
            ConfigurationFileError: If file cannot be read or parsed
        """
        config_path = Path(config_path)

        if not config_path.is_file():
            raise ConfigurationFileError(
                f"Configuration file not found: {config_path}",
                file_path=str(config_path),
            )

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationFileError(
                f"Failed to parse YAML configuration: {e}", file_path=str(config_path)
            ) from e
        except OSError as e:
            raise ConfigurationFileError(
                f"Failed to read configuration file: {e}", file_path=str(config_path)
            ) from e

        if config_data is None:
            return {}
        if not isinstance(config_data, dict):
            raise ConfigurationFileError(
                "Configuration file must contain a mapping",
                file_path=str(config_path),
            )

        self._config_file_path = config_path.resolve()
        return config_data

    def load(
        self,
        config_path: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
        root: Path | None = None,
    ) -> MonitorConfig:
        """Load the monitor configuration.

        Args:
            config_path: Explicit configuration file
            overrides: Nested runtime overrides, e.g. ``{"github": {"repo": ...}}``
            root: Repository root; detected from git when omitted

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationFileError: If the configuration file is unusable
            ConfigurationValidationError: If configuration validation fails
        """
        if root is None:
            root = (self.git.repo_root() if self.auto_detect else None) or Path.cwd()

        data: dict[str, Any] = {"paths": {"root": str(root)}}

        path = Path(config_path) if config_path else self.find_config_file(root)
        if path is not None:
            data = deep_merge(data, self.load_file(path))

        env_file = root / MONITOR_DIR_NAME / ".env"
        env = EnvironmentSettings(_env_file=env_file if env_file.is_file() else None)  # type: ignore[call-arg]
        data = deep_merge(data, env.to_config_dict())

        if overrides:
            data = deep_merge(data, overrides)

        if self.auto_detect:
            self._detect_missing(data)

        try:
            config = MonitorConfig(**data)
        except ValidationError as e:
            raise ConfigurationValidationError(
                f"Configuration validation failed: {e}",
                validation_errors=e.errors(),
            ) from e

        logger.debug(
            "Configuration loaded",
            extra={
                "config_file": str(self._config_file_path)
                if self._config_file_path
                else None,
                "repo": config.github.repo,
                "check_interval": config.polling.check_interval,
                "notifications_enabled": config.notifications.enabled,
            },
        )
        return config

    def _detect_missing(self, data: dict[str, Any]) -> None:
        github = data.setdefault("github", {})
        if not github.get("repo"):
            slug = self.git.repo_slug()
            if slug:
                logger.debug(f"Detected repository {slug} from git remote")
                github["repo"] = slug
        if not github.get("token"):
            token = self.git.gh_token()
            if token:
                logger.debug("Using token from gh CLI")
                github["token"] = token


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> MonitorConfig:
    """Load configuration with the default loader.

    Args:
        config_path: Explicit path to configuration file
        overrides: Nested runtime overrides

    Returns:
        Loaded configuration
    """
    return ConfigurationLoader().load(config_path=config_path, overrides=overrides)
