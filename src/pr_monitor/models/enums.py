"""Enums for database models."""

import enum


class PRState(str, enum.Enum):
    """Pull request state enum."""

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


class RunStatus(str, enum.Enum):
    """Workflow run and job status values reported by GitHub Actions."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    WAITING = "waiting"
    PENDING = "pending"
    REQUESTED = "requested"


class RunConclusion(str, enum.Enum):
    """Workflow run and job conclusion values."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    NEUTRAL = "neutral"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"


class CommentKind(str, enum.Enum):
    """Comment origin: inline review comment or PR conversation comment."""

    REVIEW = "review"
    GENERAL = "general"


class ActivityType(str, enum.Enum):
    """Activity log entry types."""

    MONITOR_STARTED = "monitor_started"
    MONITOR_STOPPED = "monitor_stopped"
    COMMENT_POSTED = "comment_posted"
    COMMENT_ADDRESSED = "comment_addressed"
    WORKFLOW_FAILED = "workflow_failed"
    WORKFLOW_PASSED = "workflow_passed"
    AGENT_DISPATCHED = "agent_dispatched"
