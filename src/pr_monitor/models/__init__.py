"""Database models for the PR monitor event log."""

from .activity import Activity
from .base import Base, BaseModel
from .check_history import CheckHistory
from .comment import Comment
from .enums import ActivityType, CommentKind, PRState, RunConclusion, RunStatus
from .pull_request import PullRequest
from .workflow_job import WorkflowJob
from .workflow_run import WorkflowRun

__all__ = [
    "Activity",
    "ActivityType",
    "Base",
    "BaseModel",
    "CheckHistory",
    "Comment",
    "CommentKind",
    "PRState",
    "PullRequest",
    "RunConclusion",
    "RunStatus",
    "WorkflowJob",
    "WorkflowRun",
]
