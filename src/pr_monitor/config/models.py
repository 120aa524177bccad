"""Pydantic configuration models for the PR monitor.

This module defines the configuration schema of a monitor process. Models are
organized by concern:

- MonitorConfig: Root configuration containing all sections
- GitHubSettings: API credentials and target repository
- PollingSettings: Cycle interval
- NotificationSettings: Pushover credentials
- AgentSettings: Remediation agent and failure analysis command
- PathSettings: Locations of state, log and database files
- LoggingSettings: Log level

String values support environment variable substitution using the format
${VAR_NAME} with optional defaults: ${VAR_NAME:default_value}
"""

import os
import re
import shlex
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import ConfigurationValidationError

MONITOR_DIR_NAME = ".pr_monitor"

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")
_REPO_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BaseConfigModel(BaseModel):
    """Base configuration model with environment variable substitution."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def substitute_env_vars(cls, values: Any) -> Any:
        """Substitute environment variables in string values.

        Supports formats:
        - ${VAR_NAME} - Required environment variable
        - ${VAR_NAME:default} - Optional with default value

        Args:
            values: Raw configuration values

        Returns:
            Configuration values with environment variables substituted

        Raises:
            ValueError: If required environment variable is missing
        """
        if not isinstance(values, dict):
            return values

        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)

            env_value = os.getenv(var_name)
            if env_value is not None:
                return env_value
            elif default_value is not None:
                return default_value
            raise ValueError(f"Required environment variable '{var_name}' not found")

        def substitute_value(value: Any) -> Any:
            if isinstance(value, str):
                return _ENV_PATTERN.sub(replacer, value)
            elif isinstance(value, dict):
                return {k: substitute_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [substitute_value(item) for item in value]
            return value

        return {key: substitute_value(value) for key, value in values.items()}


class GitHubSettings(BaseConfigModel):
    """GitHub API access settings."""

    token: str = Field(default="", description="GitHub API token")
    repo: str = Field(default="", description="Repository in owner/name form")
    base_url: str = Field(
        default="https://api.github.com", description="GitHub API base URL"
    )
    timeout: int = Field(
        default=30, ge=1, le=300, description="HTTP request timeout in seconds"
    )

    @field_validator("repo")
    @classmethod
    def validate_repo(cls, v: str) -> str:
        """Validate repository slug format."""
        v = v.strip()
        if v and not _REPO_PATTERN.match(v):
            raise ValueError(f"Repository must be in owner/name form, got '{v}'")
        return v

    @property
    def owner(self) -> str:
        """Repository owner."""
        return self.repo.split("/", 1)[0] if self.repo else ""


class PollingSettings(BaseConfigModel):
    """Polling cycle settings."""

    check_interval: int = Field(
        default=60, ge=1, description="Seconds to sleep between polling cycles"
    )


class NotificationSettings(BaseConfigModel):
    """Pushover notification settings."""

    pushover_user: str = Field(default="", description="Pushover user key")
    pushover_token: str = Field(default="", description="Pushover application token")
    api_url: str = Field(
        default="https://api.pushover.net/1/messages.json",
        description="Pushover messages endpoint",
    )
    timeout: int = Field(default=10, ge=1, description="Request timeout in seconds")

    @property
    def enabled(self) -> bool:
        """Notifications are sent only when both credentials are present."""
        return bool(self.pushover_user and self.pushover_token)


class AgentSettings(BaseConfigModel):
    """Remediation agent and failure analysis settings."""

    cli_command: str = Field(
        default="claude", description="Agent program, optionally with arguments"
    )
    prompt_flag: str = Field(
        default="-p", description="Flag selecting non-interactive prompt mode"
    )
    remediation_enabled: bool = Field(
        default=True, description="Launch a fixing agent for failed runs"
    )
    analysis_enabled: bool = Field(
        default=True, description="Ask the agent for a free-text failure analysis"
    )
    analysis_timeout: int = Field(
        default=120, ge=1, description="Seconds to wait for an analysis"
    )

    @property
    def argv(self) -> list[str]:
        """Command line used to launch the agent."""
        argv = shlex.split(self.cli_command)
        if self.prompt_flag and self.prompt_flag not in argv:
            argv.append(self.prompt_flag)
        return argv


class PathSettings(BaseConfigModel):
    """Filesystem locations.

    Everything lives under ``<root>/.pr_monitor`` unless overridden. The
    explicit ``state_file`` and ``log_file`` overrides apply to a single PR
    and are intended for ad-hoc runs.
    """

    root: Path | None = Field(default=None, description="Repository root")
    state_file: Path | None = Field(default=None, description="State file override")
    log_file: Path | None = Field(default=None, description="Log file override")
    db_path: Path | None = Field(default=None, description="SQLite database path")

    @property
    def base_dir(self) -> Path:
        """Directory holding all monitor files."""
        return (self.root or Path.cwd()) / MONITOR_DIR_NAME

    @property
    def state_dir(self) -> Path:
        return self.base_dir / "data" / "state"

    @property
    def log_dir(self) -> Path:
        return self.base_dir / "logs"

    @property
    def database_path(self) -> Path:
        return self.db_path or self.base_dir / "data" / "pr_tracking.db"

    def state_path(self, pr_number: int) -> Path:
        """State file of one pull request."""
        return self.state_file or self.state_dir / f"pr_{pr_number}.json"

    def log_path(self, pr_number: int) -> Path:
        """Log file of one pull request."""
        return self.log_file or self.log_dir / f"pr_{pr_number}.log"

    def lock_path(self, pr_number: int) -> Path:
        """Lock file held by the poller of one pull request."""
        return self.base_dir / "data" / "locks" / f"pr_{pr_number}.lock"


class LoggingSettings(BaseConfigModel):
    """Logging settings."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        description="Log record format",
    )


class MonitorConfig(BaseConfigModel):
    """Root configuration of a PR monitor."""

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def require_github(self) -> None:
        """Check that the settings needed to talk to GitHub are present.

        Raises:
            ConfigurationValidationError: If token or repository is missing
        """
        missing = []
        if not self.github.token:
            missing.append("GITHUB_TOKEN")
        if not self.github.repo:
            missing.append("GITHUB_REPO")
        if missing:
            raise ConfigurationValidationError(
                f"Missing required settings: {', '.join(missing)}",
                validation_errors=missing,
            )
