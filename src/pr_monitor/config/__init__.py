"""Configuration management for the PR monitor.

Example usage:
    from pr_monitor.config import load_config

    config = load_config(overrides={"github": {"repo": "owner/name"}})
    interval = config.polling.check_interval
"""

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
)
from .loader import ConfigurationLoader, EnvironmentSettings, load_config
from .models import (
    AgentSettings,
    GitHubSettings,
    LoggingSettings,
    LogLevel,
    MonitorConfig,
    NotificationSettings,
    PathSettings,
    PollingSettings,
)

__all__ = [
    "AgentSettings",
    "ConfigurationError",
    "ConfigurationFileError",
    "ConfigurationLoader",
    "ConfigurationValidationError",
    "EnvironmentSettings",
    "GitHubSettings",
    "LogLevel",
    "LoggingSettings",
    "MonitorConfig",
    "NotificationSettings",
    "PathSettings",
    "PollingSettings",
    "load_config",
]
