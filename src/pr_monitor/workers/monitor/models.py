"""Data models for the PR monitor.

Plain dataclasses describe what one polling cycle observes on GitHub; the
pydantic ``PollerState`` is the durable record carried across cycles and
restarts.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from ...models.enums import CommentKind, PRState, RunConclusion, RunStatus


class PipelineStatus(str, Enum):
    """Aggregate status of every workflow run for the PR head commit."""

    UNKNOWN = "unknown"
    NO_RUNS = "no_runs"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Terminal statuses are the only ones that notify."""
        return self in (PipelineStatus.SUCCESS, PipelineStatus.FAILED)


@dataclass(frozen=True)
class PullRequestInfo:
    """Pull request metadata as fetched from GitHub."""

    number: int
    repo: str
    state: str
    head_sha: str
    title: str = ""
    author: str = ""
    url: str = ""
    merged: bool = False
    closed_at: datetime | None = None

    @property
    def is_closed(self) -> bool:
        """Check if the PR is closed (merged PRs are closed too)."""
        return self.state == PRState.CLOSED.value

    @property
    def display_state(self) -> str:
        """State including the merged distinction."""
        return PRState.MERGED.value if self.merged else self.state


@dataclass(frozen=True)
class FailedStep:
    """A failed step of a workflow job."""

    name: str
    number: int
    started_at: str | None = None
    completed_at: str | None = None
    conclusion: str = RunConclusion.FAILURE.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "number": self.number,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "conclusion": self.conclusion,
        }


@dataclass(frozen=True)
class WorkflowJobInfo:
    """One job of a workflow run."""

    job_id: int
    name: str
    status: str
    conclusion: str | None = None
    html_url: str = ""
    runner_name: str | None = None
    failed_steps: tuple[FailedStep, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_failed(self) -> bool:
        return self.conclusion == RunConclusion.FAILURE.value

    @property
    def error_message(self) -> str | None:
        """Name of the first failed step, used as the primary error."""
        return self.failed_steps[0].name if self.failed_steps else None


@dataclass(frozen=True)
class WorkflowRunInfo:
    """A workflow run for the PR head commit.

    ``conclusion`` is only meaningful once ``status`` is ``completed``; every
    other status (queued, in_progress, waiting, pending, requested) counts as
    not completed.
    """

    run_id: int
    name: str
    status: str
    conclusion: str | None = None
    head_sha: str = ""
    html_url: str = ""
    run_number: int | None = None
    run_attempt: int | None = None
    started_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == RunStatus.COMPLETED.value

    @property
    def is_failed(self) -> bool:
        return self.is_completed and self.conclusion == RunConclusion.FAILURE.value

    @property
    def is_successful(self) -> bool:
        return self.is_completed and self.conclusion == RunConclusion.SUCCESS.value


@dataclass(frozen=True)
class CommentInfo:
    """A review (inline) or general (conversation) comment."""

    comment_id: int
    kind: CommentKind
    author: str
    body: str
    path: str | None = None
    html_url: str = ""
    created_at: datetime | None = None


@dataclass
class FailureContext:
    """Everything known about a failed run, handed to analysis and agents."""

    pr_number: int
    run: WorkflowRunInfo
    jobs: list[WorkflowJobInfo] = field(default_factory=list)
    diff: str = ""
    analysis: str = ""

    @property
    def failed_jobs(self) -> list[WorkflowJobInfo]:
        return [job for job in self.jobs if job.is_failed]

    def failed_jobs_summary(self) -> str:
        """Failed jobs with their failed steps, one block per job."""
        blocks = []
        for job in self.failed_jobs:
            lines = [f"{job.name}:"]
            lines.extend(
                f"  • Step {step.number}: {step.name}" for step in job.failed_steps
            )
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)

    def failure_details(self) -> list[dict[str, Any]]:
        """JSON-ready summary stored with the run in the event log."""
        return [
            {
                "job_id": job.job_id,
                "job": job.name,
                "failed_steps": [step.to_dict() for step in job.failed_steps],
            }
            for job in self.failed_jobs
        ]

    def render(self, include_analysis: bool = True) -> str:
        """Render the context as prompt text."""
        sections = [
            f"Workflow: {self.run.name}",
            f"Run URL: {self.run.html_url}",
            "",
            f"Failed Jobs ({len(self.failed_jobs)}/{len(self.jobs)}):",
            self.failed_jobs_summary(),
        ]
        if include_analysis and self.analysis:
            sections.extend(["", "AI Analysis:", self.analysis])
        sections.extend(["", "PR Changes:", self.diff])
        return "\n".join(sections)


class PollerState(BaseModel):
    """Durable per-PR state, persisted as JSON between cycles.

    Older state files used different key names; they are accepted on load and
    rewritten with the current names on the next save.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    last_comment_count: int = 0
    notified_comment_ids: set[int] = Field(
        default_factory=set,
        validation_alias=AliasChoices("notified_comment_ids", "notified_comments"),
    )
    notified_failed_run_ids: set[int] = Field(
        default_factory=set,
        validation_alias=AliasChoices("notified_failed_run_ids", "notified_workflows"),
    )
    agent_dispatched_run_ids: set[int] = Field(
        default_factory=set,
        validation_alias=AliasChoices(
            "agent_dispatched_run_ids", "agent_triggered_workflows"
        ),
    )
    pipeline_status: PipelineStatus = PipelineStatus.UNKNOWN
    pipeline_notification_sent: bool = False

    @field_validator("pipeline_status", mode="before")
    @classmethod
    def normalize_pipeline_status(cls, v: Any) -> Any:
        """Map the legacy ``no_workflows`` value and tolerate unknown ones."""
        if v == "no_workflows":
            return PipelineStatus.NO_RUNS
        if isinstance(v, str) and v not in PipelineStatus._value2member_map_:
            return PipelineStatus.UNKNOWN
        return v

    @field_serializer(
        "notified_comment_ids", "notified_failed_run_ids", "agent_dispatched_run_ids"
    )
    def serialize_id_set(self, ids: set[int]) -> list[int]:
        return sorted(ids)
