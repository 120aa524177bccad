"""
Unit tests for the command line interface.

Why: The CLI is how users start, stop and inspect monitors; its exit codes
     and messages are relied upon by scripts.

What: Tests argument parsing, configuration overrides and every command
      except the foreground poller.

How: Configuration and supervisor are patched; database commands run
     against a temporary SQLite file.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from pr_monitor import cli
from pr_monitor.config import ConfigurationValidationError, MonitorConfig
from pr_monitor.workers.monitor.supervisor import MonitorProcess, MonitorSupervisor
from tests.fixtures.monitor import (
    REPO,
    FakeProcessRegistry,
    make_comment,
    make_failed_job,
    make_pull_request,
    make_run,
)


@pytest.fixture
def registry() -> FakeProcessRegistry:
    return FakeProcessRegistry()


@pytest.fixture
def run_cli(monitor_config: MonitorConfig, registry: FakeProcessRegistry):
    """Run the CLI with a fixed configuration and in-memory process table."""

    def run(*argv: str) -> int:
        supervisor = MonitorSupervisor(registry=registry, sleep=lambda seconds: None)
        with (
            patch.object(cli, "load_configuration", return_value=monitor_config),
            patch.object(cli, "MonitorSupervisor", return_value=supervisor),
        ):
            return cli.main(list(argv))

    return run


async def seed_failure(config: MonitorConfig) -> None:
    event_log = cli.event_log_for(config)
    try:
        await event_log.init()
        pr_id = await event_log.record_pull_request(make_pull_request())
        workflow_id = await event_log.record_run(
            pr_id, make_run(1, name="Lint", conclusion="failure")
        )
        await event_log.record_jobs(
            workflow_id, pr_id, [make_failed_job(10, name="eslint", step="Run eslint")]
        )
        await event_log.record_comment(pr_id, make_comment(9))
    finally:
        await event_log.close()


class TestParser:
    """Test argument parsing."""

    def test_start_with_repository(self) -> None:
        args = cli.build_parser().parse_args(["start", "42", "octo/widgets"])

        assert args.command == "start"
        assert args.pr_number == 42
        assert args.repo == "octo/widgets"

    def test_run_options(self) -> None:
        args = cli.build_parser().parse_args(
            ["--log-level", "debug", "run", "42", "--repo", "o/r", "--interval", "30"]
        )

        assert (args.pr_number, args.repo, args.interval) == (42, "o/r", 30)
        assert args.log_level == "debug"

    def test_comments_addressed(self) -> None:
        args = cli.build_parser().parse_args(
            ["comments", "addressed", "42", "9", "--notes", "Renamed"]
        )
        assert (args.pr_number, args.comment_id, args.notes) == (42, 9, "Renamed")

    @pytest.mark.parametrize(
        "argv", [[], ["start"], ["stop", "abc"], ["comments"], ["frobnicate"]]
    )
    def test_invalid_arguments(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(argv)


class TestLoadConfiguration:
    """Test command line overrides."""

    def test_overrides_passed_to_loader(self) -> None:
        args = cli.build_parser().parse_args(
            ["--log-level", "debug", "run", "42", "--repo", "o/r", "--interval", "30"]
        )

        with patch.object(cli, "ConfigurationLoader") as loader_class:
            cli.load_configuration(args)

        loader_class.return_value.load.assert_called_once_with(
            config_path=None,
            overrides={
                "github": {"repo": "o/r"},
                "polling": {"check_interval": 30},
                "logging": {"level": "DEBUG"},
            },
        )

    def test_configuration_error_exit_code(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        error = ConfigurationValidationError("Missing required settings: GITHUB_TOKEN")
        with patch.object(cli, "load_configuration", side_effect=error):
            assert cli.main(["list"]) == 1

        assert "Missing required settings" in capsys.readouterr().err


class TestProcessCommands:
    """Test start, stop, list and cleanup."""

    def test_start(
        self,
        run_cli,
        registry: FakeProcessRegistry,
        monitor_config: MonitorConfig,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run_cli("start", "42") == 0

        output = capsys.readouterr().out
        assert "✅ Monitor started for PR #42 (PID: 5001)" in output
        assert str(monitor_config.paths.log_path(42)) in output
        assert registry.started[0][-3:] == ["42", "--repo", REPO]

    def test_start_refused_when_running(
        self,
        run_cli,
        registry: FakeProcessRegistry,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        registry.processes[77] = MonitorProcess(pid=77, pr_number=42, create_time=0.0)

        assert run_cli("start", "42") == 1

        output = capsys.readouterr().out
        assert "already running for PR #42" in output
        assert "PID: 77" in output
        assert registry.started == []

    def test_stop(
        self,
        run_cli,
        registry: FakeProcessRegistry,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        registry.processes[77] = MonitorProcess(pid=77, pr_number=42, create_time=0.0)

        assert run_cli("stop", "42") == 0
        assert "Stopped 1 monitor(s) for PR #42" in capsys.readouterr().out

    def test_stop_without_monitor(
        self, run_cli, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run_cli("stop", "42") == 1
        assert "No monitor found for PR #42" in capsys.readouterr().out

    def test_list(
        self,
        run_cli,
        registry: FakeProcessRegistry,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run_cli("list") == 0
        assert "No monitors running" in capsys.readouterr().out

        registry.processes[77] = MonitorProcess(pid=77, pr_number=42, create_time=0.0)
        assert run_cli("list") == 0
        assert "PR #42 - PID: 77" in capsys.readouterr().out

    def test_cleanup(
        self,
        run_cli,
        registry: FakeProcessRegistry,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        registry.processes[1] = MonitorProcess(pid=1, pr_number=42, create_time=1.0)
        registry.processes[2] = MonitorProcess(pid=2, pr_number=42, create_time=2.0)

        assert run_cli("cleanup") == 0

        output = capsys.readouterr().out
        assert "PR #42: stopped 1 duplicate monitor(s)" in output
        assert "Stopped PID 2" in output
        assert list(registry.processes) == [1]


class TestDatabaseCommands:
    """Test init, errors and comments."""

    def test_init(
        self,
        run_cli,
        monitor_config: MonitorConfig,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert run_cli("init") == 0

        assert monitor_config.paths.database_path.exists()
        assert monitor_config.paths.state_dir.is_dir()
        assert "Database initialized" in capsys.readouterr().out

    def test_errors_without_database(
        self, run_cli, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run_cli("errors", "42") == 1
        assert "Database not found" in capsys.readouterr().out

    def test_errors_json(
        self,
        run_cli,
        monitor_config: MonitorConfig,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        asyncio.run(seed_failure(monitor_config))

        assert run_cli("errors", "42", "--json") == 0

        document = json.loads(capsys.readouterr().out)
        assert document["pr_number"] == 42
        assert document["total_failures"] == 1
        assert document["failed_jobs"][0]["job"] == "eslint"
        assert document["failed_jobs"][0]["failed_steps"][0]["name"] == "Run eslint"

    def test_errors_text(
        self,
        run_cli,
        monitor_config: MonitorConfig,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        asyncio.run(seed_failure(monitor_config))

        assert run_cli("errors", "42") == 0

        output = capsys.readouterr().out
        assert "🔍 FAILED ACTIONS FOR PR #42" in output
        assert "ACTIONABLE JSON OUTPUT" in output

    def test_errors_for_pr_without_failures(
        self,
        run_cli,
        monitor_config: MonitorConfig,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        asyncio.run(seed_failure(monitor_config))

        assert run_cli("errors", "7") == 0

        output = capsys.readouterr().out
        assert "No failed jobs found for PR #7" in output
        assert "ACTIONABLE JSON OUTPUT" not in output

    def test_comment_addressed(
        self,
        run_cli,
        monitor_config: MonitorConfig,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        asyncio.run(seed_failure(monitor_config))

        assert run_cli("comments", "addressed", "42", "9", "--notes", "Done") == 0
        assert "marked addressed" in capsys.readouterr().out

        assert run_cli("comments", "addressed", "42", "404") == 1


class TestDetect:
    """Test PR detection for the current branch."""

    def test_detect_number(
        self, run_cli, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with patch.object(
            cli, "detect_pull_request", new=AsyncMock(return_value=("feat", 42))
        ):
            assert run_cli("detect", "--number") == 0

        assert capsys.readouterr().out.strip() == "42"

    def test_detect_without_pr(
        self, run_cli, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with patch.object(
            cli, "detect_pull_request", new=AsyncMock(return_value=("main", None))
        ):
            assert run_cli("detect") == 1

        assert "No PR found" in capsys.readouterr().err


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        cli.main(["--version"])
    assert capsys.readouterr().out.strip() == cli.__version__

