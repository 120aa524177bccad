"""WorkflowRun SQLAlchemy model."""

from datetime import datetime
from typing import TYPE_CHECKING

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
from .enums import RunConclusion, RunStatus

if TYPE_CHECKING:
    from .workflow_job import WorkflowJob


class WorkflowRun(BaseModel):
    """Model for a GitHub Actions workflow run observed on a pull request."""

    __tablename__ = "workflows"
    __table_args__ = (
        UniqueConstraint("run_id", "pr_id", name="uq_workflows_run_pr"),
        Index("idx_workflows_pr", "pr_id"),
        Index("idx_workflows_status", "status", "conclusion"),
    )

    pr_id: Mapped[int] = mapped_column(ForeignKey("prs.id"), nullable=False)
    run_id: Mapped[int] = mapped_column(Integer, nullable=False)
    workflow_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    conclusion: Mapped[str | None] = mapped_column(String(30), nullable=True)
    head_sha: Mapped[str | None] = mapped_column(String(64), nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    run_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    run_attempt: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # JSON summary of the failed jobs and steps
    failure_details: Mapped[str | None] = mapped_column(Text, nullable=True)

    jobs: Mapped[list["WorkflowJob"]] = relationship(
        "WorkflowJob", back_populates="workflow_run"
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<WorkflowRun(id={self.id}, run_id={self.run_id}, "
            f"name={self.workflow_name}, status={self.status})>"
        )

    @property
    def is_completed(self) -> bool:
        """Check if the run is completed."""
        return self.status == RunStatus.COMPLETED.value

    @property
    def is_failed(self) -> bool:
        """Check if the run completed with a failure."""
        return self.is_completed and self.conclusion == RunConclusion.FAILURE.value
