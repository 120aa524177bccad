"""Failed-job report of a pull request (the ``errors`` command)."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ...models import WorkflowJob, WorkflowRun

RULE = "━" * 80


@dataclass
class FailedJobEntry:
    """One failed job as shown in the report."""

    workflow: str
    job: str
    error: str | None
    failed_steps: list[dict[str, Any]]
    job_url: str | None
    runner: str | None
    completed_at: datetime | None

    @classmethod
    def from_rows(cls, job: WorkflowJob, run: WorkflowRun) -> "FailedJobEntry":
        return cls(
            workflow=run.workflow_name,
            job=job.job_name,
            error=job.error_message,
            failed_steps=job.failed_step_list,
            job_url=job.html_url,
            runner=job.runner_name,
            completed_at=job.completed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflow": self.workflow,
            "job": self.job,
            "error": self.error,
            "failed_steps": self.failed_steps,
            "job_url": self.job_url,
            "runner": self.runner,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ErrorReport:
    """Failed jobs of a PR plus the overall run summary."""

    pr_number: int
    failed_jobs: list[FailedJobEntry] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        pr_number: int,
        rows: list[tuple[WorkflowJob, WorkflowRun]],
        summary: dict[str, int],
    ) -> "ErrorReport":
        return cls(
            pr_number=pr_number,
            failed_jobs=[FailedJobEntry.from_rows(job, run) for job, run in rows],
            summary=summary,
        )

    @property
    def total_failures(self) -> int:
        return len(self.failed_jobs)

    def by_workflow(self) -> dict[str, list[str]]:
        """Failed job names grouped by workflow."""
        grouped: dict[str, list[str]] = defaultdict(list)
        for entry in self.failed_jobs:
            grouped[entry.workflow].append(entry.job)
        return dict(grouped)

    def to_dict(self) -> dict[str, Any]:
        """Actionable document meant to be fed to an agent."""
        return {
            "pr_number": self.pr_number,
            "total_failures": self.total_failures,
            "failed_jobs": [entry.to_dict() for entry in self.failed_jobs],
        }

    def render_text(self) -> str:
        """Human-readable report."""
        lines = [RULE, f"🔍 FAILED ACTIONS FOR PR #{self.pr_number}", RULE, ""]

        if not self.failed_jobs:
            lines.append(f"✅ No failed jobs found for PR #{self.pr_number}")
            lines.append("")
            lines.append("📊 Workflow Summary:")
            lines.append(f"   Total workflows: {self.summary.get('total_workflows', 0)}")
            lines.append(f"   Passed: {self.summary.get('passed', 0)}")
            lines.append(f"   Running: {self.summary.get('running', 0)}")
            return "\n".join(lines)

        lines.append(f"Found {self.total_failures} failed job(s)")
        lines.append("")

        for entry in self.failed_jobs:
            completed = entry.completed_at.isoformat() if entry.completed_at else "Unknown"
            lines.extend(
                [
                    RULE,
                    f"❌ Workflow: {entry.workflow}",
                    f"   Job: {entry.job}",
                    RULE,
                    "",
                    f"🔗 Job URL: {entry.job_url or 'Unknown'}",
                    f"🏃 Runner: {entry.runner or 'Unknown'}",
                    f"⏱️  Completed: {completed}",
                    "",
                ]
            )
            if entry.failed_steps:
                lines.append("📋 Failed Steps:")
                lines.extend(
                    f"   • Step {step.get('number', '?')}: {step.get('name', '')}"
                    for step in entry.failed_steps
                )
            else:
                lines.append(f"📋 Primary Error: {entry.error or 'Unknown error'}")
            lines.append("")

        lines.extend([RULE, "📊 SUMMARY", RULE, ""])
        lines.append(f"Total Failed Jobs: {self.total_failures}")
        lines.append("")
        lines.append("Failures by Workflow:")
        for workflow, jobs in self.by_workflow().items():
            lines.append(f"   {workflow}: {len(jobs)} ({', '.join(jobs)})")
        return "\n".join(lines)
