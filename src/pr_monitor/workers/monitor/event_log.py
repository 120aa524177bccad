"""Persistent event log of a PR monitor.

Thin facade over the repositories: every method runs in its own short
session (several pollers share one SQLite file) and reports database
problems as ``PersistenceError``.
"""

import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...database import DatabaseConnectionManager
from ...models import Activity, CheckHistory, Comment, WorkflowJob, WorkflowRun
from ...models.enums import ActivityType
from ...repositories import (
    ActivityRepository,
    CheckHistoryRepository,
    CommentRepository,
    PullRequestRepository,
    WorkflowJobRepository,
    WorkflowRunRepository,
)
from .exceptions import PersistenceError
from .models import CommentInfo, PullRequestInfo, WorkflowJobInfo, WorkflowRunInfo

logger = logging.getLogger(__name__)


class EventLog:
    """Idempotent writes and natural-key lookups over the tracking database."""

    def __init__(self, manager: DatabaseConnectionManager):
        self.manager = manager

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.manager.get_session() as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(
                f"Event log unavailable while trying to {action}: {e}",
                details={"action": action},
            ) from e

    async def init(self) -> None:
        """Create tables and indexes when missing."""
        try:
            await self.manager.init_schema()
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to initialize event log: {e}") from e

    async def close(self) -> None:
        await self.manager.close()

    async def ensure_pull_request(self, pr_number: int, repo: str) -> int:
        """Row id of a PR, creating a placeholder row when needed."""
        async with self._session("register pull request") as session:
            pull_request = await PullRequestRepository(session).ensure(pr_number, repo)
            return pull_request.id

    async def record_pull_request(self, pull_request: PullRequestInfo) -> int:
        """Upsert PR metadata and return its row id."""
        async with self._session("record pull request") as session:
            row = await PullRequestRepository(session).upsert_pull_request(
                pr_number=pull_request.number,
                repo=pull_request.repo,
                state=pull_request.display_state,
                title=pull_request.title,
                author=pull_request.author,
                url=pull_request.url,
                closed_at=pull_request.closed_at,
            )
            return row.id

    async def record_run(self, pr_id: int, run: WorkflowRunInfo) -> int:
        """Upsert a run observation and return its row id."""
        async with self._session("record workflow run") as session:
            row = await WorkflowRunRepository(session).upsert_run(
                pr_id=pr_id,
                run_id=run.run_id,
                workflow_name=run.name,
                status=run.status,
                conclusion=run.conclusion,
                head_sha=run.head_sha,
                html_url=run.html_url,
                run_number=run.run_number,
                run_attempt=run.run_attempt,
                started_at=run.started_at,
                completed_at=run.updated_at if run.is_completed else None,
            )
            return row.id

    async def record_jobs(
        self, workflow_id: int, pr_id: int, jobs: list[WorkflowJobInfo]
    ) -> None:
        """Upsert the jobs of one run."""
        if not jobs:
            return
        async with self._session("record workflow jobs") as session:
            repo = WorkflowJobRepository(session)
            for job in jobs:
                await repo.upsert_job(
                    workflow_id=workflow_id,
                    pr_id=pr_id,
                    job_id=job.job_id,
                    job_name=job.name,
                    status=job.status,
                    conclusion=job.conclusion,
                    html_url=job.html_url,
                    runner_name=job.runner_name,
                    failed_steps=[step.to_dict() for step in job.failed_steps],
                    error_message=job.error_message,
                    started_at=job.started_at,
                    completed_at=job.completed_at,
                )

    async def record_failure_details(
        self, pr_id: int, run_id: int, details: list[dict[str, Any]]
    ) -> None:
        """Attach the failure summary to a run and stamp it as analysed."""
        async with self._session("record failure details") as session:
            repo = WorkflowRunRepository(session)
            run = await repo.get_by_run_id(pr_id, run_id)
            if run is None:
                logger.warning(f"Run {run_id} not recorded, skipping failure details")
                return
            await repo.update(
                run,
                failure_details=json.dumps(details),
                notified_at=datetime.now(UTC),
            )

    async def record_comment(self, pr_id: int, comment: CommentInfo) -> bool:
        """Insert a comment once.

        Returns:
            True if the comment was not recorded before
        """
        async with self._session("record comment") as session:
            return await CommentRepository(session).record_comment(
                pr_id=pr_id,
                comment_id=comment.comment_id,
                comment_type=comment.kind.value,
                author=comment.author,
                body=comment.body,
                file_path=comment.path,
                created_at=comment.created_at,
            )

    async def log_activity(
        self,
        pr_id: int,
        activity_type: ActivityType,
        summary: str,
        details: str | None = None,
        actor: str = "system",
    ) -> Activity:
        async with self._session("log activity") as session:
            return await ActivityRepository(session).log_activity(
                pr_id=pr_id,
                activity_type=activity_type.value,
                summary=summary,
                details=details,
                actor=actor,
            )

    async def record_check(
        self,
        pr_id: int,
        pr_state: str,
        comment_count: int,
        workflow_count: int,
        failed_workflows: int,
        notes: str | None = None,
    ) -> CheckHistory:
        async with self._session("record check history") as session:
            return await CheckHistoryRepository(session).record_check(
                pr_id=pr_id,
                pr_state=pr_state,
                comment_count=comment_count,
                workflow_count=workflow_count,
                failed_workflows=failed_workflows,
                notes=notes,
            )

    async def mark_comment_addressed(
        self,
        pr_number: int,
        comment_id: int,
        notes: str | None = None,
        repo: str | None = None,
    ) -> Comment | None:
        """Flag a comment as addressed by a reviewer.

        Returns:
            The updated comment, or None when PR or comment are unknown
        """
        async with self._session("mark comment addressed") as session:
            pull_request = await PullRequestRepository(session).get_by_number(
                pr_number, repo
            )
            if pull_request is None:
                return None
            comment = await CommentRepository(session).mark_addressed(
                pull_request.id, comment_id, notes
            )
            if comment is not None:
                await ActivityRepository(session).log_activity(
                    pr_id=pull_request.id,
                    activity_type=ActivityType.COMMENT_ADDRESSED.value,
                    summary=f"Comment {comment_id} addressed",
                    details=notes,
                    actor="reviewer",
                )
            return comment

    async def failed_jobs(
        self, pr_number: int, repo: str | None = None
    ) -> list[tuple[WorkflowJob, WorkflowRun]]:
        """Failed jobs of a PR with their runs, most recent first."""
        async with self._session("list failed jobs") as session:
            pull_request = await PullRequestRepository(session).get_by_number(
                pr_number, repo
            )
            if pull_request is None:
                return []
            return await WorkflowJobRepository(session).list_failed_for_pr(
                pull_request.id
            )

    async def workflow_summary(
        self, pr_number: int, repo: str | None = None
    ) -> dict[str, int]:
        """Total, passed and running run counts of a PR."""
        async with self._session("summarize workflows") as session:
            pull_request = await PullRequestRepository(session).get_by_number(
                pr_number, repo
            )
            if pull_request is None:
                return {"total_workflows": 0, "passed": 0, "running": 0}
            return await WorkflowRunRepository(session).summary_for_pr(
                pull_request.id
            )
