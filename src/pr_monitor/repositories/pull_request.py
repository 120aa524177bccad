"""PullRequest repository."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import PullRequest
from .base import BaseRepository


class PullRequestRepository(BaseRepository[PullRequest]):
    """Repository for PullRequest operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, PullRequest)

    async def upsert_pull_request(
        self,
        pr_number: int,
        repo: str,
        state: str,
        title: str | None = None,
        author: str | None = None,
        url: str | None = None,
        closed_at: datetime | None = None,
    ) -> PullRequest:
        """Record PR metadata, keyed by (pr_number, repo)."""
        return await self.upsert(
            ["pr_number", "repo"],
            pr_number=pr_number,
            repo=repo,
            state=state,
            title=title,
            author=author,
            url=url,
            closed_at=closed_at,
        )

    async def ensure(self, pr_number: int, repo: str) -> PullRequest:
        """Return the PR row, creating a placeholder when it was never seen."""
        existing = await self.get_by_number(pr_number, repo)
        if existing is not None:
            return existing
        await self.insert_if_absent(
            ["pr_number", "repo"], pr_number=pr_number, repo=repo, state="open"
        )
        pull_request = await self.get_by_number(pr_number, repo)
        assert pull_request is not None
        return pull_request

    async def get_by_number(
        self, pr_number: int, repo: str | None = None
    ) -> PullRequest | None:
        """Get PR by number, optionally restricted to one repository."""
        query = select(PullRequest).where(PullRequest.pr_number == pr_number)
        if repo:
            query = query.where(PullRequest.repo == repo)
        query = query.order_by(PullRequest.updated_at.desc()).limit(1)
        return await self._execute_single_query(query)
