"""Pipeline status aggregation and notification decisions.

A PR usually has several workflow runs for its head commit, each progressing
on its own. They are reduced to one ``PipelineStatus``:

1. no runs at all -> ``no_runs``
2. any run not completed -> ``in_progress``
3. any completed run concluded ``failure`` -> ``failed``
4. otherwise -> ``success``

The user hears about a terminal status once. The persisted
``pipeline_notification_sent`` flag is cleared on every status transition
and set when a notification goes out, so ``success -> in_progress -> success``
(a new push) notifies again while a stable status never does.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from ...notifications import Notification, NotificationPriority
from .models import PipelineStatus, PullRequestInfo, WorkflowRunInfo

SUCCESS_MESSAGE = "✅ Pipeline passed - all workflows completed successfully!"
FAILURE_MESSAGE = "❌ Pipeline failed - one or more workflows have failed."


def aggregate_pipeline_status(runs: Iterable[WorkflowRunInfo]) -> PipelineStatus:
    """Reduce run statuses to a single pipeline status."""
    runs = list(runs)
    if not runs:
        return PipelineStatus.NO_RUNS
    if any(not run.is_completed for run in runs):
        return PipelineStatus.IN_PROGRESS
    if any(run.is_failed for run in runs):
        return PipelineStatus.FAILED
    return PipelineStatus.SUCCESS


@dataclass(frozen=True)
class PipelineDecision:
    """Outcome of comparing the new status against the persisted one."""

    previous_status: PipelineStatus
    status: PipelineStatus
    notify: bool
    notification_sent: bool

    @property
    def changed(self) -> bool:
        return self.status != self.previous_status

    @property
    def priority(self) -> NotificationPriority:
        if self.status == PipelineStatus.FAILED:
            return NotificationPriority.HIGH
        return NotificationPriority.NORMAL


def decide_notification(
    previous_status: PipelineStatus,
    notification_sent: bool,
    status: PipelineStatus,
) -> PipelineDecision:
    """Decide whether the new pipeline status warrants a notification.

    Args:
        previous_status: Status persisted by the previous cycle
        notification_sent: Persisted flag for the previous status
        status: Status derived in this cycle

    Returns:
        The decision, including the flag value to persist
    """
    if status != previous_status:
        notification_sent = False

    notify = not notification_sent and status.is_terminal
    if notify:
        notification_sent = True

    return PipelineDecision(
        previous_status=previous_status,
        status=status,
        notify=notify,
        notification_sent=notification_sent,
    )


def build_pipeline_notification(
    pull_request: PullRequestInfo, decision: PipelineDecision
) -> Notification:
    """Notification announcing a terminal pipeline status."""
    message = (
        FAILURE_MESSAGE if decision.status == PipelineStatus.FAILED else SUCCESS_MESSAGE
    )
    return Notification(
        title=f"PR #{pull_request.number}: {pull_request.title}",
        message=message,
        priority=decision.priority,
    )
