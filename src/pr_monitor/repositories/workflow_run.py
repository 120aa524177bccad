"""WorkflowRun repository."""

from datetime import datetime

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import RunConclusion, RunStatus, WorkflowRun
from .base import BaseRepository


class WorkflowRunRepository(BaseRepository[WorkflowRun]):
    """Repository for WorkflowRun operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, WorkflowRun)

    async def upsert_run(
        self,
        pr_id: int,
        run_id: int,
        workflow_name: str,
        status: str,
        conclusion: str | None = None,
        head_sha: str | None = None,
        html_url: str | None = None,
        run_number: int | None = None,
        run_attempt: int | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
    ) -> WorkflowRun:
        """Record a run observation, keyed by (run_id, pr_id)."""
        return await self.upsert(
            ["run_id", "pr_id"],
            pr_id=pr_id,
            run_id=run_id,
            workflow_name=workflow_name,
            status=status,
            conclusion=conclusion,
            head_sha=head_sha,
            html_url=html_url,
            run_number=run_number,
            run_attempt=run_attempt,
            started_at=started_at,
            completed_at=completed_at,
        )

    async def get_by_run_id(self, pr_id: int, run_id: int) -> WorkflowRun | None:
        """Get run by its natural key."""
        query = select(WorkflowRun).where(
            and_(WorkflowRun.pr_id == pr_id, WorkflowRun.run_id == run_id)
        )
        return await self._execute_single_query(query)

    async def summary_for_pr(self, pr_id: int) -> dict[str, int]:
        """Count total, passed and still running runs of a PR."""
        query = select(
            func.count(WorkflowRun.id),
            func.sum(
                case((WorkflowRun.conclusion == RunConclusion.SUCCESS.value, 1), else_=0)
            ),
            func.sum(
                case((WorkflowRun.status != RunStatus.COMPLETED.value, 1), else_=0)
            ),
        ).where(WorkflowRun.pr_id == pr_id)
        total, passed, running = (await self.session.execute(query)).one()
        return {
            "total_workflows": total or 0,
            "passed": passed or 0,
            "running": running or 0,
        }
