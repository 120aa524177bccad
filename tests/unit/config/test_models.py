"""
Unit tests for configuration models.

Why: Derived values (agent command line, file locations) are computed from
     the models and used by every command.

What: Tests validation and derived properties of the configuration models.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from pr_monitor.config import (
    AgentSettings,
    ConfigurationValidationError,
    GitHubSettings,
    LogLevel,
    MonitorConfig,
    PathSettings,
)


class TestGitHubSettings:
    """Test GitHubSettings validation."""

    @pytest.mark.parametrize("repo", ["octo/widgets", "my-org/my.repo_2"])
    def test_valid_repo(self, repo: str) -> None:
        assert GitHubSettings(repo=repo).repo == repo

    @pytest.mark.parametrize("repo", ["widgets", "octo/widgets/extra", "octo/"])
    def test_invalid_repo(self, repo: str) -> None:
        with pytest.raises(ValidationError):
            GitHubSettings(repo=repo)

    def test_owner(self) -> None:
        assert GitHubSettings(repo="octo/widgets").owner == "octo"
        assert GitHubSettings().owner == ""


class TestAgentSettings:
    """Test the agent command line."""

    def test_default_argv(self) -> None:
        assert AgentSettings().argv == ["claude", "-p"]

    def test_command_with_arguments(self) -> None:
        settings = AgentSettings(cli_command="npx agent --model 'big one'")
        assert settings.argv == ["npx", "agent", "--model", "big one", "-p"]

    def test_flag_not_duplicated(self) -> None:
        assert AgentSettings(cli_command="claude -p").argv == ["claude", "-p"]

    def test_no_prompt_flag(self) -> None:
        assert AgentSettings(cli_command="fixer", prompt_flag="").argv == ["fixer"]


class TestPathSettings:
    """Test file locations."""

    def test_layout_under_root(self, tmp_path: Path) -> None:
        paths = PathSettings(root=tmp_path)
        base = tmp_path / ".pr_monitor"

        assert paths.state_path(7) == base / "data" / "state" / "pr_7.json"
        assert paths.log_path(7) == base / "logs" / "pr_7.log"
        assert paths.lock_path(7) == base / "data" / "locks" / "pr_7.lock"
        assert paths.database_path == base / "data" / "pr_tracking.db"

    def test_overrides(self, tmp_path: Path) -> None:
        paths = PathSettings(
            root=tmp_path,
            state_file=tmp_path / "state.json",
            log_file=tmp_path / "monitor.log",
            db_path=tmp_path / "db.sqlite",
        )

        assert paths.state_path(1) == tmp_path / "state.json"
        assert paths.log_path(1) == tmp_path / "monitor.log"
        assert paths.database_path == tmp_path / "db.sqlite"


class TestMonitorConfig:
    """Test the root configuration."""

    def test_defaults(self) -> None:
        config = MonitorConfig()

        assert config.polling.check_interval == 60
        assert config.logging.level == LogLevel.INFO
        assert not config.notifications.enabled
        assert config.agent.remediation_enabled

    def test_require_github_lists_missing_settings(self) -> None:
        with pytest.raises(ConfigurationValidationError) as exc_info:
            MonitorConfig(github={"repo": "octo/widgets"}).require_github()

        assert exc_info.value.validation_errors == ["GITHUB_TOKEN"]

    def test_require_github_passes(self, monitor_config: MonitorConfig) -> None:
        monitor_config.require_github()

    def test_missing_required_env_var(self) -> None:
        with pytest.raises(ValidationError):
            MonitorConfig(github={"token": "${PR_MONITOR_TEST_UNSET_VARIABLE}"})
