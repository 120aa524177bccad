"""Comment SQLAlchemy model."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, utc_now


class Comment(BaseModel):
    """Model for a review or conversation comment on a pull request."""

    __tablename__ = "comments"
    __table_args__ = (
        UniqueConstraint("comment_id", "pr_id", name="uq_comments_comment_pr"),
        Index("idx_comments_pr", "pr_id"),
        Index("idx_comments_addressed", "addressed"),
    )

    pr_id: Mapped[int] = mapped_column(ForeignKey("prs.id"), nullable=False)
    comment_id: Mapped[int] = mapped_column(Integer, nullable=False)
    comment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    file_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    notified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Only changed by an explicit reviewer action
    addressed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    addressed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    addressed_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<Comment(id={self.id}, comment_id={self.comment_id}, "
            f"type={self.comment_type}, addressed={self.addressed})>"
        )
