"""Activity SQLAlchemy model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, utc_now


class Activity(BaseModel):
    """Model for the per-PR activity log (monitor lifecycle, failures, agents)."""

    __tablename__ = "activities"
    __table_args__ = (
        Index("idx_activities_pr", "pr_id"),
        Index("idx_activities_type", "activity_type"),
    )

    pr_id: Mapped[int] = mapped_column(ForeignKey("prs.id"), nullable=False)
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    activity_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Activity(id={self.id}, type={self.activity_type})>"
