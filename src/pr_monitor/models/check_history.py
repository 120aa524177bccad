"""CheckHistory SQLAlchemy model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, utc_now


class CheckHistory(BaseModel):
    """Model for one row per polling cycle."""

    __tablename__ = "check_history"
    __table_args__ = (Index("idx_check_history_pr", "pr_id"),)

    pr_id: Mapped[int] = mapped_column(ForeignKey("prs.id"), nullable=False)
    check_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    pr_state: Mapped[str] = mapped_column(String(20), nullable=False)
    comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    workflow_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_workflows: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<CheckHistory(id={self.id}, pr_id={self.pr_id}, state={self.pr_state})>"
