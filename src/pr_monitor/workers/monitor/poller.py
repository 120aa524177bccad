"""PR poller worker.

One process watches one pull request. Every cycle it loads the persisted
``PollerState``, fetches the PR with its comments, workflow runs and jobs,
records everything in the event log, derives the pipeline status and decides
whether the user must hear about it. Failed runs are analysed once and handed
to a remediation agent once. The loop ends when the PR is closed or the
process receives SIGTERM/SIGINT.
"""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from functools import partial
from typing import Any, TypeVar

from ...config import MonitorConfig
from ...database import DatabaseConfig, DatabaseConnectionManager
from ...git_context import GitContext
from ...github import GitHubClient, GitHubClientConfig, PersonalAccessTokenAuth
from ...models.enums import ActivityType
from ...notifications import (
    Notification,
    NotificationPriority,
    Notifier,
    PushoverNotifier,
)
from .aggregator import (
    aggregate_pipeline_status,
    build_pipeline_notification,
    decide_notification,
)
from .data_source import GitHubDataSource, PullRequestDataSource
from .event_log import EventLog
from .exceptions import (
    AgentDispatchError,
    AuthError,
    MonitorAlreadyRunningError,
    MonitorError,
    NotFoundError,
    PersistenceError,
    TransientFetchError,
)
from .models import (
    CommentInfo,
    FailureContext,
    PipelineStatus,
    PollerState,
    PullRequestInfo,
    WorkflowJobInfo,
    WorkflowRunInfo,
)
from .prompts import COMMENT_ANALYSIS_PROMPT, FAILURE_ANALYSIS_PROMPT
from .remediation import (
    FailureAnalyzer,
    RemediationDispatcher,
    SubprocessAgentCommand,
    latest_commit_looks_like_fix,
)
from .state_store import FileStateRepository, StateRepository
from .supervisor import FileLease, MonitorLease

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PRPoller:
    """Polling state machine for a single pull request.

    Collaborators are injected so the cycle can run against in-memory fakes:

    - data_source: GitHub (or fake) PR, comment, run and job data
    - state_store: durable ``PollerState``
    - event_log: SQLite history; failures there never stop the cycle
    - notifier: push notifications
    - dispatcher / analyzer: optional remediation and failure analysis
    - lease: single-poller-per-PR guard taken at start-up
    """

    def __init__(
        self,
        pr_number: int,
        repo: str,
        data_source: PullRequestDataSource,
        state_store: StateRepository,
        event_log: EventLog,
        notifier: Notifier,
        dispatcher: RemediationDispatcher | None = None,
        analyzer: FailureAnalyzer | None = None,
        lease: MonitorLease | None = None,
        check_interval: float = 60,
    ):
        self.pr_number = pr_number
        self.repo = repo
        self.data_source = data_source
        self.state_store = state_store
        self.event_log = event_log
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.analyzer = analyzer
        self.lease = lease
        self.check_interval = check_interval

        # Worker state
        self.state = PollerState()
        # Set while the latest state is only held in memory
        self._state_dirty = False
        self.pr_id: int | None = None
        self.iteration = 0
        self.running = False
        self.shutdown_event = asyncio.Event()
        self._previous_handlers: dict[int, Any] = {}

        self.stats: dict[str, Any] = {
            "started_at": None,
            "total_cycles": 0,
            "successful_cycles": 0,
            "failed_cycles": 0,
            "last_cycle_at": None,
            "last_error": None,
        }

    async def run(self) -> None:
        """Run cycles until the PR is closed or shutdown is requested.

        Raises:
            MonitorAlreadyRunningError: If another poller holds the lease
        """
        if self.lease is not None and not self.lease.try_acquire(self.pr_number):
            raise MonitorAlreadyRunningError(
                self.pr_number, self.lease.list_holders(self.pr_number)
            )

        self.running = True
        self.stats["started_at"] = datetime.now(UTC)
        self._setup_signal_handlers()

        try:
            await self.start()

            while self.running and not self.shutdown_event.is_set():
                if await self.run_cycle():
                    break

                # Sleep until the next cycle or until shutdown is requested
                try:
                    await asyncio.wait_for(
                        self.shutdown_event.wait(), timeout=self.check_interval
                    )
                    break
                except TimeoutError:
                    continue
        finally:
            self.running = False
            self._restore_signal_handlers()
            await self.cleanup()
            if self.lease is not None:
                self.lease.release(self.pr_number)
            logger.info(f"Monitor for PR #{self.pr_number} stopped")

    async def start(self) -> None:
        """Register the PR and announce the monitor."""
        logger.info(
            f"Starting PR monitor for PR #{self.pr_number} in {self.repo} "
            f"(interval: {self.check_interval}s)"
        )
        try:
            await self.event_log.init()
            self.pr_id = await self.event_log.ensure_pull_request(
                self.pr_number, self.repo
            )
        except PersistenceError as e:
            logger.warning(f"Event log unavailable, continuing without it: {e}")

        await self.notifier.send(
            Notification(
                title="PR Monitor Started",
                message=(
                    f"Monitoring PR #{self.pr_number} every "
                    f"{self.check_interval / 60:g} minutes"
                ),
                priority=NotificationPriority.LOW,
            )
        )
        await self._write(
            lambda pr_id: self.event_log.log_activity(
                pr_id,
                ActivityType.MONITOR_STARTED,
                "PR monitor started",
                f"Checking every {self.check_interval:g}s",
            )
        )

    async def run_cycle(self) -> bool:
        """Run one polling cycle.

        Returns:
            True when the PR is closed and the monitor should stop
        """
        self.iteration += 1
        self.stats["total_cycles"] += 1
        self.stats["last_cycle_at"] = datetime.now(UTC)
        logger.info(f"Check iteration {self.iteration}")

        self._load_state()
        try:
            closed = await self._poll()
            self.stats["successful_cycles"] += 1
            return closed
        except TransientFetchError as e:
            logger.warning(f"Transient error, retrying next cycle: {e}")
            self._record_failure(e)
        except (AuthError, NotFoundError) as e:
            logger.error(f"Cycle failed: {e}", extra={"pr_number": self.pr_number})
            self._record_failure(e)
        except MonitorError as e:
            logger.error(f"Cycle failed: {e}", extra={"pr_number": self.pr_number})
            self._record_failure(e)
        except Exception as e:
            logger.exception(f"Unexpected error in cycle {self.iteration}: {e}")
            self._record_failure(e)
        finally:
            self._save_state()
        return False

    async def _poll(self) -> bool:
        pull_request = await self.data_source.fetch_pull_request(self.pr_number)
        try:
            self.pr_id = await self.event_log.record_pull_request(pull_request)
        except PersistenceError as e:
            logger.warning(f"Failed to record PR metadata: {e}")

        if pull_request.is_closed:
            await self._on_closed(pull_request)
            return True

        comments = await self.data_source.fetch_comments(self.pr_number)
        await self._process_comments(comments)

        runs = await self.data_source.fetch_runs(pull_request.head_sha)
        failed_runs = 0
        for run in runs:
            jobs = await self.data_source.fetch_jobs(run.run_id)
            await self._record_run(run, jobs)
            if run.is_failed:
                failed_runs += 1
                await self._handle_failed_run(run, jobs)

        status = aggregate_pipeline_status(runs)
        await self._update_pipeline_status(pull_request, status)

        await self._write(
            lambda pr_id: self.event_log.record_check(
                pr_id,
                pr_state=pull_request.display_state,
                comment_count=len(comments),
                workflow_count=len(runs),
                failed_workflows=failed_runs,
                notes=f"Iteration {self.iteration}",
            )
        )
        return False

    async def _process_comments(self, comments: list[CommentInfo]) -> None:
        total = len(comments)
        if total > self.state.last_comment_count:
            logger.info(
                f"Comment count grew from {self.state.last_comment_count} to {total}"
            )
            for comment in comments:
                if comment.comment_id in self.state.notified_comment_ids:
                    continue
                await self._announce_comment(comment)
                self.state.notified_comment_ids.add(comment.comment_id)
        self.state.last_comment_count = total

    async def _announce_comment(self, comment: CommentInfo) -> None:
        await self._write(
            lambda pr_id: self.event_log.record_comment(pr_id, comment)
        )

        analysis = ""
        if self.analyzer is not None:
            context = f"Comment: {comment.body}"
            if comment.path:
                context += f"\nFile: {comment.path}"
            analysis = await self.analyzer.analyze(context, COMMENT_ANALYSIS_PROMPT)

        location = f" on {comment.path}" if comment.path else ""
        message = f"New comment from {comment.author}{location}\n\n{comment.body}"
        if analysis:
            message += f"\n\nAI Analysis:\n{analysis}"

        await self.notifier.send(
            Notification(
                title=f"PR #{self.pr_number}: New Comment",
                message=message,
                priority=NotificationPriority.NORMAL,
            )
        )
        await self._write(
            lambda pr_id: self.event_log.log_activity(
                pr_id,
                ActivityType.COMMENT_POSTED,
                f"New {comment.kind.value} comment from {comment.author}",
                comment.body[:500],
                actor=comment.author,
            )
        )

    async def _record_run(
        self, run: WorkflowRunInfo, jobs: list[WorkflowJobInfo]
    ) -> None:
        if self.pr_id is None:
            return
        try:
            workflow_id = await self.event_log.record_run(self.pr_id, run)
            await self.event_log.record_jobs(workflow_id, self.pr_id, jobs)
        except PersistenceError as e:
            logger.warning(f"Failed to record run {run.run_id}: {e}")

    async def _handle_failed_run(
        self, run: WorkflowRunInfo, jobs: list[WorkflowJobInfo]
    ) -> None:
        """First observation of a failed run: analyse it and dispatch a fix."""
        needs_analysis = run.run_id not in self.state.notified_failed_run_ids
        needs_dispatch = (
            self.dispatcher is not None
            and run.run_id not in self.state.agent_dispatched_run_ids
        )
        if not (needs_analysis or needs_dispatch):
            return

        diff = await self.data_source.fetch_diff(self.pr_number)
        context = FailureContext(
            pr_number=self.pr_number, run=run, jobs=jobs, diff=diff
        )

        if needs_analysis:
            logger.warning(
                f"Workflow failed: {run.name}",
                extra={"run_id": run.run_id, "url": run.html_url},
            )
            if self.analyzer is not None:
                context.analysis = await self.analyzer.analyze(
                    context.render(include_analysis=False), FAILURE_ANALYSIS_PROMPT
                )
            self.state.notified_failed_run_ids.add(run.run_id)

            await self._write(
                lambda pr_id: self.event_log.record_failure_details(
                    pr_id, run.run_id, context.failure_details()
                )
            )
            await self._write(
                lambda pr_id: self.event_log.log_activity(
                    pr_id,
                    ActivityType.WORKFLOW_FAILED,
                    f"Workflow failed: {run.name}",
                    context.failed_jobs_summary() or run.html_url,
                )
            )

        if needs_dispatch and self.dispatcher is not None:
            self.state.agent_dispatched_run_ids.add(run.run_id)
            try:
                category = await self.dispatcher.dispatch(context)
            except AgentDispatchError as e:
                logger.error(f"Failed to dispatch agent for {run.name}: {e}")
                return
            await self._write(
                lambda pr_id: self.event_log.log_activity(
                    pr_id,
                    ActivityType.AGENT_DISPATCHED,
                    f"Launched {category.value} agent for {run.name}",
                    category.description,
                )
            )

    async def _update_pipeline_status(
        self, pull_request: PullRequestInfo, status: PipelineStatus
    ) -> None:
        decision = decide_notification(
            self.state.pipeline_status, self.state.pipeline_notification_sent, status
        )
        if decision.changed:
            logger.info(
                f"Pipeline status changed: {decision.previous_status.value} -> "
                f"{status.value}"
            )

        if decision.notify:
            await self.notifier.send(build_pipeline_notification(pull_request, decision))
            if status == PipelineStatus.SUCCESS:
                await self._write(
                    lambda pr_id: self.event_log.log_activity(
                        pr_id,
                        ActivityType.WORKFLOW_PASSED,
                        "All workflows passed",
                        f"Head {pull_request.head_sha[:7]}",
                    )
                )

        self.state.pipeline_status = status
        self.state.pipeline_notification_sent = decision.notification_sent

    async def _on_closed(self, pull_request: PullRequestInfo) -> None:
        logger.info(f"PR #{self.pr_number} is {pull_request.display_state}, stopping")
        await self.notifier.send(
            Notification(
                title="PR Monitor Stopped",
                message=f"PR #{self.pr_number} is closed",
                priority=NotificationPriority.LOW,
            )
        )
        await self._write(
            lambda pr_id: self.event_log.log_activity(
                pr_id, ActivityType.MONITOR_STOPPED, "PR closed, monitoring stopped"
            )
        )

    async def _write(self, action: Callable[[int], Awaitable[T]]) -> T | None:
        """Run an event log write; failures are logged and never abort the cycle."""
        if self.pr_id is None:
            return None
        try:
            return await action(self.pr_id)
        except PersistenceError as e:
            logger.warning(f"Event log write failed: {e}")
            return None

    def _load_state(self) -> None:
        if self._state_dirty:
            return
        try:
            self.state = self.state_store.load(self.pr_number)
        except PersistenceError as e:
            logger.warning(f"Keeping in-memory state: {e}")

    def _save_state(self) -> None:
        try:
            self.state_store.save(self.pr_number, self.state)
            self._state_dirty = False
        except PersistenceError as e:
            logger.warning(f"State not persisted: {e}")
            self._state_dirty = True

    def _record_failure(self, error: Exception) -> None:
        self.stats["failed_cycles"] += 1
        self.stats["last_error"] = {
            "message": str(error),
            "timestamp": datetime.now(UTC),
        }

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(sig: int, frame: Any) -> None:
            logger.info(f"Received signal {sig}, initiating shutdown...")
            self.shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._previous_handlers[sig] = signal.signal(sig, signal_handler)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    async def shutdown(self) -> None:
        """Initiate graceful shutdown."""
        logger.info(f"Shutting down monitor for PR #{self.pr_number}...")
        self.shutdown_event.set()

    async def cleanup(self) -> None:
        """Stop running agents and close the event log."""
        if self.dispatcher is not None and self.dispatcher.running:
            logger.info(f"Stopping {self.dispatcher.running} running agent(s)")
            await self.dispatcher.cancel_all()
        await self.event_log.close()


async def run_monitor(config: MonitorConfig, pr_number: int) -> None:
    """Build a poller from configuration and run it to completion."""
    config.require_github()

    root = config.paths.root
    notifier = PushoverNotifier(config.notifications)
    if not notifier.enabled:
        logger.info("Pushover credentials not set, notifications disabled")

    agent = SubprocessAgentCommand(config.agent.argv, cwd=root)
    analyzer = FailureAnalyzer(
        agent,
        timeout=config.agent.analysis_timeout,
        enabled=config.agent.analysis_enabled,
    )
    dispatcher = None
    if config.agent.remediation_enabled:
        dispatcher = RemediationDispatcher(
            pr_number,
            agent,
            notifier,
            fix_check=partial(latest_commit_looks_like_fix, GitContext(root)),
        )

    event_log = EventLog(
        DatabaseConnectionManager(DatabaseConfig.for_path(config.paths.database_path))
    )

    auth = PersonalAccessTokenAuth(config.github.token)
    client_config = GitHubClientConfig(
        base_url=config.github.base_url, timeout=config.github.timeout
    )
    async with GitHubClient(auth, client_config) as client:
        poller = PRPoller(
            pr_number=pr_number,
            repo=config.github.repo,
            data_source=GitHubDataSource(client, config.github.repo),
            state_store=FileStateRepository(config.paths.state_path),
            event_log=event_log,
            notifier=notifier,
            dispatcher=dispatcher,
            analyzer=analyzer if config.agent.analysis_enabled else None,
            lease=FileLease(config.paths.lock_path),
            check_interval=config.polling.check_interval,
        )
        await poller.run()
