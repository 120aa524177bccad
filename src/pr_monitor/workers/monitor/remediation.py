"""Failure analysis and remediation agent dispatch.

A failed run is classified, turned into a category-specific prompt and handed
to an external agent program (``claude -p`` by default) that may leave a local
fix commit behind. The agent runs as a detached task so the polling cycle is
never blocked by it; its output is streamed into the PR log.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from functools import partial
from pathlib import Path

from ...git_context import GitContext
from ...notifications import Notification, NotificationPriority, Notifier
from .classifier import AgentCategory, FailureClassifier
from .exceptions import AgentDispatchError
from .models import FailureContext
from .prompts import build_agent_prompt, build_analysis_prompt

logger = logging.getLogger(__name__)
agent_logger = logging.getLogger("pr_monitor.agent")

OutputCallback = Callable[[str], None]
FixCheck = Callable[[], Awaitable[tuple[str, str] | None]]


class AgentCommand(ABC):
    """An external program fed one prompt on stdin."""

    @abstractmethod
    async def run(self, prompt: str, on_output: OutputCallback) -> int:
        """Run the program to completion.

        Args:
            prompt: Text written to the program's stdin
            on_output: Called with every output line as it arrives

        Returns:
            Process exit status

        Raises:
            AgentDispatchError: If the program cannot be started
        """


class SubprocessAgentCommand(AgentCommand):
    """Runs the agent CLI as a child process."""

    def __init__(self, argv: list[str], cwd: Path | None = None):
        """Initialize command.

        Args:
            argv: Program and arguments, e.g. ``["claude", "-p"]``
            cwd: Working directory, normally the repository root
        """
        if not argv:
            raise ValueError("Agent command line must not be empty")
        self.argv = list(argv)
        self.cwd = cwd

    async def run(self, prompt: str, on_output: OutputCallback) -> int:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except OSError as e:
            raise AgentDispatchError(
                f"Agent CLI not available: {self.argv[0]} ({e})"
            ) from e

        # Feed stdin concurrently so a chatty agent cannot fill the stdout pipe
        feeder = asyncio.create_task(self._feed(proc, prompt))
        try:
            assert proc.stdout is not None
            async for raw_line in proc.stdout:
                on_output(raw_line.decode("utf-8", errors="replace").rstrip("\r\n"))
            await feeder
            return await proc.wait()
        except asyncio.CancelledError:
            feeder.cancel()
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

    @staticmethod
    async def _feed(proc: asyncio.subprocess.Process, prompt: str) -> None:
        assert proc.stdin is not None
        try:
            proc.stdin.write(prompt.encode("utf-8"))
            await proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("Agent closed stdin before reading the whole prompt")
        finally:
            proc.stdin.close()


async def latest_commit_looks_like_fix(git: GitContext) -> tuple[str, str] | None:
    """Heuristic for "the agent produced a fix".

    Returns:
        Short SHA and message of HEAD when the message mentions "fix",
        otherwise None
    """
    commit = await git.latest_commit()
    if commit is None:
        return None
    _, message = commit
    return commit if "fix" in message.lower() else None


class FailureAnalyzer:
    """Asks the agent program for a short free-text analysis."""

    SKIPPED = "Agent CLI not installed - analysis skipped"

    def __init__(
        self,
        agent: AgentCommand | None,
        timeout: float = 120,
        enabled: bool = True,
    ):
        self.agent = agent
        self.timeout = timeout
        self.enabled = enabled and agent is not None

    async def analyze(self, context: str, instruction: str) -> str:
        """Return the analysis text, or an empty string when disabled."""
        if not self.enabled or self.agent is None:
            return ""

        lines: list[str] = []
        try:
            exit_code = await asyncio.wait_for(
                self.agent.run(build_analysis_prompt(context, instruction), lines.append),
                timeout=self.timeout,
            )
        except AgentDispatchError as e:
            logger.warning(f"Skipping AI analysis: {e}")
            return self.SKIPPED
        except TimeoutError:
            logger.warning(f"AI analysis timed out after {self.timeout}s")
            return "\n".join(lines).strip() or "Analysis timed out"

        analysis = "\n".join(lines).strip()
        if exit_code != 0:
            logger.warning(
                f"AI analysis exited with status {exit_code}: {analysis[:100]}"
            )
        return analysis


class RemediationDispatcher:
    """Launches at most one fixing agent per failed run.

    Deduplication by run id is the caller's job (it owns the persisted
    state); the dispatcher classifies, notifies and starts the agent task.
    """

    def __init__(
        self,
        pr_number: int,
        agent: AgentCommand,
        notifier: Notifier,
        classifier: FailureClassifier | None = None,
        fix_check: FixCheck | None = None,
    ):
        """Initialize dispatcher.

        Args:
            pr_number: Pull request being fixed
            agent: Agent program
            notifier: Used for the "agent launching" notification
            classifier: Failure classifier (default rules when omitted)
            fix_check: Reports the fix commit once the agent is done
        """
        self.pr_number = pr_number
        self.agent = agent
        self.notifier = notifier
        self.classifier = classifier or FailureClassifier()
        self.fix_check = fix_check or partial(latest_commit_looks_like_fix, GitContext())
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> int:
        """Number of agents still running."""
        return len(self._tasks)

    async def dispatch(self, context: FailureContext) -> AgentCategory:
        """Classify the failure and launch the matching agent in background.

        Returns:
            The category of the launched agent
        """
        category = self.classifier.classify(context.run.name)
        logger.info(
            f"Classified failure of '{context.run.name}' as {category.value}: "
            f"{category.description}",
            extra={"pr_number": self.pr_number, "run_id": context.run.run_id},
        )

        await self.notifier.send(
            Notification(
                title=f"PR #{self.pr_number}: Agent Launching",
                message=(
                    "🤖 Launching Automated Fix Agent\n\n"
                    f"Workflow: {context.run.name}\n"
                    f"Agent Type: {category.value}\n\n"
                    "The agent will analyze the failure, fix the issues, run all "
                    "checks and create a commit (NOT push).\n\n"
                    "You will need to manually review and push the fix."
                ),
                priority=NotificationPriority.NORMAL,
            )
        )

        prompt = build_agent_prompt(category, self.pr_number, context.render())
        task = asyncio.create_task(
            self._run_agent(category, prompt, context.run.name),
            name=f"agent-pr{self.pr_number}-run{context.run.run_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info(f"Launched {category.value} agent in background")
        return category

    async def _run_agent(
        self, category: AgentCategory, prompt: str, run_name: str
    ) -> None:
        agent_logger.info(f"Starting {category.description} for '{run_name}'")
        try:
            exit_code = await self.agent.run(prompt, self._log_output)
            if exit_code != 0:
                raise AgentDispatchError(
                    f"Agent execution failed with exit code: {exit_code}",
                    pr_number=self.pr_number,
                    exit_code=exit_code,
                )
        except AgentDispatchError as e:
            agent_logger.error(str(e))
            return
        except Exception:
            agent_logger.exception(f"Agent for '{run_name}' crashed")
            return

        try:
            commit = await self.fix_check()
        except Exception:
            agent_logger.exception("Could not inspect the latest commit")
            return
        if commit:
            sha, message = commit
            agent_logger.info(f"Agent completed: commit {sha} created (NOT pushed)")
            agent_logger.info(f"Commit message: {message}")
            agent_logger.info(f"Review with: git show {sha}")
        else:
            agent_logger.warning("Agent completed but no fix commit was detected")

    @staticmethod
    def _log_output(line: str) -> None:
        agent_logger.info(f"AGENT {line}")

    async def wait(self, timeout: float | None = None) -> None:
        """Wait for running agents to finish."""
        if self._tasks:
            await asyncio.wait(set(self._tasks), timeout=timeout)

    async def cancel_all(self) -> None:
        """Stop every running agent."""
        tasks = set(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
