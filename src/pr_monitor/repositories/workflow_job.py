"""WorkflowJob repository."""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import RunConclusion, WorkflowJob, WorkflowRun
from .base import BaseRepository


class WorkflowJobRepository(BaseRepository[WorkflowJob]):
    """Repository for WorkflowJob operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, WorkflowJob)

    async def upsert_job(
        self,
        workflow_id: int,
        pr_id: int,
        job_id: int,
        job_name: str,
        status: str,
        conclusion: str | None = None,
        html_url: str | None = None,
        runner_name: str | None = None,
        failed_steps: list[dict[str, Any]] | None = None,
        error_message: str | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> WorkflowJob:
        """Record a job observation, keyed by (job_id, workflow_id)."""
        return await self.upsert(
            ["job_id", "workflow_id"],
            workflow_id=workflow_id,
            pr_id=pr_id,
            job_id=job_id,
            job_name=job_name,
            status=status,
            conclusion=conclusion,
            html_url=html_url,
            runner_name=runner_name,
            failed_steps=json.dumps(failed_steps) if failed_steps else None,
            error_message=error_message,
            started_at=started_at,
            completed_at=completed_at,
        )

    async def list_failed_for_pr(
        self, pr_id: int
    ) -> list[tuple[WorkflowJob, WorkflowRun]]:
        """List failed jobs of a PR with their runs, most recent first."""
        query = (
            select(WorkflowJob, WorkflowRun)
            .join(WorkflowRun, WorkflowRun.id == WorkflowJob.workflow_id)
            .where(
                and_(
                    WorkflowJob.pr_id == pr_id,
                    WorkflowJob.conclusion == RunConclusion.FAILURE.value,
                )
            )
            .order_by(WorkflowJob.completed_at.desc(), WorkflowJob.id.desc())
        )
        result = await self.session.execute(query)
        return [(job, run) for job, run in result.all()]
