"""
Unit tests for failure analysis and remediation dispatch.

Why: A fixing agent must be launched at most once per failed run, never block
     the polling cycle and never crash the poller when it misbehaves.

What: Tests SubprocessAgentCommand, FailureAnalyzer, RemediationDispatcher
      and the fix-commit heuristic.

How: Fake agent commands for dispatch logic; a real Python child process for
     the subprocess plumbing.
"""

import asyncio
import logging
import sys
from unittest.mock import AsyncMock, Mock

import pytest

from pr_monitor.notifications import NotificationPriority
from pr_monitor.workers.monitor.classifier import AgentCategory
from pr_monitor.workers.monitor.exceptions import AgentDispatchError
from pr_monitor.workers.monitor.models import FailureContext
from pr_monitor.workers.monitor.remediation import (
    AgentCommand,
    FailureAnalyzer,
    OutputCallback,
    RemediationDispatcher,
    SubprocessAgentCommand,
    latest_commit_looks_like_fix,
)
from tests.fixtures.monitor import (
    FakeAgentCommand,
    RecordingNotifier,
    make_failed_job,
    make_run,
)


def failure_context(run_name: str = "Lint") -> FailureContext:
    return FailureContext(
        pr_number=42,
        run=make_run(100, name=run_name, conclusion="failure"),
        jobs=[make_failed_job(1, name="eslint", step="Run eslint")],
        diff="+const x = 1",
    )


class SlowAgentCommand(AgentCommand):
    async def run(self, prompt: str, on_output: OutputCallback) -> int:
        on_output("thinking")
        await asyncio.sleep(10)
        return 0


class TestSubprocessAgentCommand:
    """Test the child process plumbing."""

    @pytest.mark.asyncio
    async def test_prompt_on_stdin_output_streamed(self) -> None:
        command = SubprocessAgentCommand(
            [
                sys.executable,
                "-c",
                "import sys; data = sys.stdin.read(); "
                "print('received', len(data)); print('done')",
            ]
        )
        lines: list[str] = []

        exit_code = await command.run("hello agent", lines.append)

        assert exit_code == 0
        assert lines == ["received 11", "done"]

    @pytest.mark.asyncio
    async def test_non_zero_exit_status_is_returned(self) -> None:
        command = SubprocessAgentCommand(
            [sys.executable, "-c", "import sys; sys.exit(3)"]
        )
        assert await command.run("", lambda line: None) == 3

    @pytest.mark.asyncio
    async def test_missing_program_raises_dispatch_error(self) -> None:
        command = SubprocessAgentCommand(["definitely-not-an-agent-cli-xyz", "-p"])

        with pytest.raises(AgentDispatchError):
            await command.run("prompt", lambda line: None)

    def test_empty_command_line_rejected(self) -> None:
        with pytest.raises(ValueError):
            SubprocessAgentCommand([])


class TestLatestCommitLooksLikeFix:
    """Test the fix-commit heuristic."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Fix lint errors", True),
            ("fix(api): handle 404", True),
            ("Add feature", False),
        ],
    )
    async def test_message_heuristic(self, message: str, expected: bool) -> None:
        git = Mock()
        git.latest_commit = AsyncMock(return_value=("abc1234", message))

        result = await latest_commit_looks_like_fix(git)

        assert (result is not None) is expected

    @pytest.mark.asyncio
    async def test_no_commit(self) -> None:
        git = Mock()
        git.latest_commit = AsyncMock(return_value=None)
        assert await latest_commit_looks_like_fix(git) is None


class TestFailureAnalyzer:
    """Test free-text analysis."""

    @pytest.mark.asyncio
    async def test_analysis_text_is_agent_output(self) -> None:
        agent = FakeAgentCommand(output=["Missing import", "in cache.py"])
        analyzer = FailureAnalyzer(agent)

        analysis = await analyzer.analyze("context", "Analyze this")

        assert analysis == "Missing import\nin cache.py"
        assert agent.prompts == ["context\n\nAnalyze this"]

    @pytest.mark.asyncio
    async def test_disabled_analyzer_returns_empty(self) -> None:
        agent = FakeAgentCommand()
        analyzer = FailureAnalyzer(agent, enabled=False)

        assert await analyzer.analyze("context", "Analyze") == ""
        assert agent.prompts == []

    @pytest.mark.asyncio
    async def test_missing_cli_is_reported_not_raised(self) -> None:
        analyzer = FailureAnalyzer(FakeAgentCommand(missing=True))
        assert await analyzer.analyze("context", "Analyze") == FailureAnalyzer.SKIPPED

    @pytest.mark.asyncio
    async def test_timeout_returns_partial_output(self) -> None:
        analyzer = FailureAnalyzer(SlowAgentCommand(), timeout=0.05)
        assert await analyzer.analyze("context", "Analyze") == "thinking"


class TestRemediationDispatcher:
    """Test agent dispatch."""

    @pytest.fixture
    def fix_check(self) -> AsyncMock:
        return AsyncMock(return_value=("abc1234", "Fix lint errors"))

    @pytest.mark.asyncio
    async def test_dispatch_classifies_notifies_and_runs_agent(
        self, fix_check: AsyncMock
    ) -> None:
        agent = FakeAgentCommand(output=["Fixed 3 lint errors"])
        notifier = RecordingNotifier()
        dispatcher = RemediationDispatcher(42, agent, notifier, fix_check=fix_check)

        category = await dispatcher.dispatch(failure_context("Lint"))
        await dispatcher.wait(timeout=5)

        assert category == AgentCategory.LINT
        assert notifier.titles() == ["PR #42: Agent Launching"]
        assert notifier.sent[0].priority == NotificationPriority.NORMAL
        assert "Agent Type: lint-fix" in notifier.sent[0].message
        assert len(agent.prompts) == 1
        assert "PR #42" in agent.prompts[0]
        assert "Run eslint" in agent.prompts[0]
        fix_check.assert_awaited_once()
        assert dispatcher.running == 0

    @pytest.mark.asyncio
    async def test_agent_output_goes_to_agent_logger(
        self, fix_check: AsyncMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        dispatcher = RemediationDispatcher(
            42,
            FakeAgentCommand(output=["step 1", "step 2"]),
            RecordingNotifier(),
            fix_check=fix_check,
        )

        with caplog.at_level(logging.INFO, logger="pr_monitor.agent"):
            await dispatcher.dispatch(failure_context())
            await dispatcher.wait(timeout=5)

        agent_lines = [
            r.getMessage() for r in caplog.records if r.name == "pr_monitor.agent"
        ]
        assert "AGENT step 1" in agent_lines
        assert "AGENT step 2" in agent_lines
        assert any("commit abc1234 created" in line for line in agent_lines)

    @pytest.mark.asyncio
    async def test_failed_agent_is_logged_and_fix_check_skipped(
        self, fix_check: AsyncMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        dispatcher = RemediationDispatcher(
            42, FakeAgentCommand(exit_code=2), RecordingNotifier(), fix_check=fix_check
        )

        with caplog.at_level(logging.ERROR, logger="pr_monitor.agent"):
            await dispatcher.dispatch(failure_context())
            await dispatcher.wait(timeout=5)

        assert "exit code: 2" in caplog.text
        fix_check.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_agent_does_not_raise_from_dispatch(
        self, fix_check: AsyncMock
    ) -> None:
        dispatcher = RemediationDispatcher(
            42, FakeAgentCommand(missing=True), RecordingNotifier(), fix_check=fix_check
        )

        await dispatcher.dispatch(failure_context())
        await dispatcher.wait(timeout=5)

        fix_check.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_fix_check_is_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """
        Why: The agent task is detached; an error after the agent finished
             would otherwise only show up as an unretrieved task exception
        What: Tests that a fix check raising OSError is logged by the task
        How: Injects a fix check that fails like a missing git binary
        """
        fix_check = AsyncMock(side_effect=FileNotFoundError("git"))
        dispatcher = RemediationDispatcher(
            42, FakeAgentCommand(), RecordingNotifier(), fix_check=fix_check
        )

        with caplog.at_level(logging.ERROR, logger="pr_monitor.agent"):
            await dispatcher.dispatch(failure_context())
            await dispatcher.wait(timeout=5)

        fix_check.assert_awaited_once()
        assert "Could not inspect the latest commit" in caplog.text
        assert dispatcher.running == 0

    @pytest.mark.asyncio
    async def test_dispatch_does_not_wait_for_agent(self, fix_check: AsyncMock) -> None:
        dispatcher = RemediationDispatcher(
            42, SlowAgentCommand(), RecordingNotifier(), fix_check=fix_check
        )

        await asyncio.wait_for(dispatcher.dispatch(failure_context()), timeout=1)
        assert dispatcher.running == 1

        await dispatcher.cancel_all()
        assert dispatcher.running == 0
