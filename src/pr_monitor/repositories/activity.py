"""Activity and check history repositories."""

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Activity, CheckHistory
from .base import BaseRepository


class ActivityRepository(BaseRepository[Activity]):
    """Repository for the activity log."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, Activity)

    async def log_activity(
        self,
        pr_id: int,
        activity_type: str,
        summary: str,
        details: str | None = None,
        actor: str = "system",
    ) -> Activity:
        """Append an activity entry."""
        return await self.create(
            pr_id=pr_id,
            activity_type=activity_type,
            summary=summary,
            details=details,
            actor=actor,
        )


class CheckHistoryRepository(BaseRepository[CheckHistory]):
    """Repository for per-cycle check history."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, CheckHistory)

    async def record_check(
        self,
        pr_id: int,
        pr_state: str,
        comment_count: int,
        workflow_count: int,
        failed_workflows: int,
        notes: str | None = None,
    ) -> CheckHistory:
        """Append one polling cycle summary."""
        return await self.create(
            pr_id=pr_id,
            pr_state=pr_state,
            comment_count=comment_count,
            workflow_count=workflow_count,
            failed_workflows=failed_workflows,
            notes=notes,
        )
