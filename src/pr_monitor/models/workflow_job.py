"""WorkflowJob SQLAlchemy model."""

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, utc_now

if TYPE_CHECKING:
    from .workflow_run import WorkflowRun


class WorkflowJob(BaseModel):
    """Model for one job of a workflow run."""

    __tablename__ = "workflow_jobs"
    __table_args__ = (
        UniqueConstraint("job_id", "workflow_id", name="uq_workflow_jobs_job_workflow"),
        Index("idx_workflow_jobs_workflow", "workflow_id"),
        Index("idx_workflow_jobs_pr", "pr_id"),
        Index("idx_workflow_jobs_status", "status", "conclusion"),
    )

    workflow_id: Mapped[int] = mapped_column(ForeignKey("workflows.id"), nullable=False)
    pr_id: Mapped[int] = mapped_column(ForeignKey("prs.id"), nullable=False)
    job_id: Mapped[int] = mapped_column(Integer, nullable=False)
    job_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    conclusion: Mapped[str | None] = mapped_column(String(30), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    runner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # JSON array of {name, number, started_at, completed_at, conclusion}
    failed_steps: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    workflow_run: Mapped["WorkflowRun"] = relationship(
        "WorkflowRun", back_populates="jobs"
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<WorkflowJob(id={self.id}, job_id={self.job_id}, "
            f"name={self.job_name}, conclusion={self.conclusion})>"
        )

    @property
    def failed_step_list(self) -> list[dict[str, Any]]:
        """Decoded failed steps, empty when none were recorded."""
        if not self.failed_steps:
            return []
        try:
            steps = json.loads(self.failed_steps)
        except json.JSONDecodeError:
            return []
        return steps if isinstance(steps, list) else []
