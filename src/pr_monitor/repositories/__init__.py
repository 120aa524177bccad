"""Repository layer over the SQLite event log."""

from .activity import ActivityRepository, CheckHistoryRepository
from .base import BaseRepository
from .comment import CommentRepository
from .pull_request import PullRequestRepository
from .workflow_job import WorkflowJobRepository
from .workflow_run import WorkflowRunRepository

__all__ = [
    "ActivityRepository",
    "BaseRepository",
    "CheckHistoryRepository",
    "CommentRepository",
    "PullRequestRepository",
    "WorkflowJobRepository",
    "WorkflowRunRepository",
]
