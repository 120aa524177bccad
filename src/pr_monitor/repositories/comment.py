"""Comment repository."""

from datetime import UTC, datetime

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Comment
from .base import BaseRepository


class CommentRepository(BaseRepository[Comment]):
    """Repository for Comment operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, Comment)

    async def record_comment(
        self,
        pr_id: int,
        comment_id: int,
        comment_type: str,
        author: str,
        body: str,
        file_path: str | None = None,
        created_at: datetime | None = None,
    ) -> bool:
        """Insert a comment once; later observations leave the row untouched.

        Returns:
            True if the comment was new
        """
        values = {
            "pr_id": pr_id,
            "comment_id": comment_id,
            "comment_type": comment_type,
            "author": author,
            "body": body,
            "file_path": file_path,
            "notified_at": datetime.now(UTC),
        }
        if created_at is not None:
            values["created_at"] = created_at
        return await self.insert_if_absent(["comment_id", "pr_id"], **values)

    async def get_by_comment_id(self, pr_id: int, comment_id: int) -> Comment | None:
        """Get comment by its natural key."""
        query = select(Comment).where(
            and_(Comment.pr_id == pr_id, Comment.comment_id == comment_id)
        )
        return await self._execute_single_query(query)

    async def mark_addressed(
        self, pr_id: int, comment_id: int, notes: str | None = None
    ) -> Comment | None:
        """Flag a comment as addressed.

        Returns:
            The updated comment, or None when it is unknown
        """
        comment = await self.get_by_comment_id(pr_id, comment_id)
        if comment is None:
            return None
        return await self.update(
            comment,
            addressed=True,
            addressed_at=datetime.now(UTC),
            addressed_notes=notes,
        )
