"""
Unit tests for pipeline status aggregation and notification decisions.

Why: The aggregator decides what the user is paged about; a wrong status or
     a missing re-arm means duplicate or lost notifications.

What: Tests aggregate_pipeline_status, decide_notification and
      build_pipeline_notification.

How: Pure functions exercised with hand-built WorkflowRunInfo values.
"""

import pytest

from pr_monitor.notifications import NotificationPriority
from pr_monitor.workers.monitor.aggregator import (
    FAILURE_MESSAGE,
    SUCCESS_MESSAGE,
    aggregate_pipeline_status,
    build_pipeline_notification,
    decide_notification,
)
from pr_monitor.workers.monitor.models import PipelineStatus
from tests.fixtures.monitor import make_pull_request, make_run


class TestAggregatePipelineStatus:
    """Test reduction of run statuses to one pipeline status."""

    def test_no_runs(self) -> None:
        assert aggregate_pipeline_status([]) == PipelineStatus.NO_RUNS

    @pytest.mark.parametrize("status", ["queued", "in_progress", "waiting", "pending"])
    def test_any_incomplete_run_means_in_progress(self, status: str) -> None:
        runs = [
            make_run(1, conclusion="failure"),
            make_run(2, status=status, conclusion=None),
            make_run(3),
        ]
        assert aggregate_pipeline_status(runs) == PipelineStatus.IN_PROGRESS

    def test_completed_with_failure_is_failed(self) -> None:
        runs = [make_run(1), make_run(2, conclusion="failure")]
        assert aggregate_pipeline_status(runs) == PipelineStatus.FAILED

    def test_all_completed_without_failure_is_success(self) -> None:
        runs = [make_run(1), make_run(2, conclusion="skipped"), make_run(3)]
        assert aggregate_pipeline_status(runs) == PipelineStatus.SUCCESS

    def test_cancelled_run_does_not_fail_pipeline(self) -> None:
        runs = [make_run(1, conclusion="cancelled")]
        assert aggregate_pipeline_status(runs) == PipelineStatus.SUCCESS


class TestDecideNotification:
    """Test the notify-once-per-terminal-status contract."""

    def test_first_terminal_status_notifies(self) -> None:
        decision = decide_notification(
            PipelineStatus.IN_PROGRESS, False, PipelineStatus.SUCCESS
        )

        assert decision.notify is True
        assert decision.notification_sent is True
        assert decision.changed is True

    def test_stable_terminal_status_with_flag_never_notifies(self) -> None:
        decision = decide_notification(
            PipelineStatus.SUCCESS, True, PipelineStatus.SUCCESS
        )

        assert decision.notify is False
        assert decision.notification_sent is True
        assert decision.changed is False

    def test_stable_terminal_status_without_flag_notifies(self) -> None:
        """A status persisted before the notification went out is retried."""
        decision = decide_notification(
            PipelineStatus.FAILED, False, PipelineStatus.FAILED
        )
        assert decision.notify is True

    @pytest.mark.parametrize(
        "status", [PipelineStatus.IN_PROGRESS, PipelineStatus.NO_RUNS]
    )
    def test_non_terminal_statuses_only_rearm(self, status: PipelineStatus) -> None:
        decision = decide_notification(PipelineStatus.SUCCESS, True, status)

        assert decision.notify is False
        assert decision.notification_sent is False

    def test_rearm_cycle_emits_exactly_one_new_notification(self) -> None:
        statuses = [
            PipelineStatus.SUCCESS,
            PipelineStatus.SUCCESS,
            PipelineStatus.IN_PROGRESS,
            PipelineStatus.SUCCESS,
            PipelineStatus.SUCCESS,
        ]
        previous, sent, emitted = PipelineStatus.UNKNOWN, False, 0
        for status in statuses:
            decision = decide_notification(previous, sent, status)
            emitted += decision.notify
            previous, sent = status, decision.notification_sent

        assert emitted == 2

    def test_transition_between_terminal_statuses_notifies(self) -> None:
        decision = decide_notification(
            PipelineStatus.SUCCESS, True, PipelineStatus.FAILED
        )
        assert decision.notify is True
        assert decision.priority == NotificationPriority.HIGH


class TestBuildPipelineNotification:
    """Test notification content."""

    def test_failure_notification_is_high_priority(self) -> None:
        decision = decide_notification(
            PipelineStatus.IN_PROGRESS, False, PipelineStatus.FAILED
        )
        notification = build_pipeline_notification(make_pull_request(), decision)

        assert notification.title == "PR #42: Add widget cache"
        assert notification.message == FAILURE_MESSAGE
        assert notification.priority == NotificationPriority.HIGH

    def test_success_notification_is_normal_priority(self) -> None:
        decision = decide_notification(
            PipelineStatus.IN_PROGRESS, False, PipelineStatus.SUCCESS
        )
        notification = build_pipeline_notification(make_pull_request(), decision)

        assert notification.message == SUCCESS_MESSAGE
        assert notification.priority == NotificationPriority.NORMAL
