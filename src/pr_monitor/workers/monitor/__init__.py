"""Single pull request CI monitor.

This package polls one pull request, aggregates its workflow runs into a
pipeline status, notifies once per terminal outcome and dispatches fixing
agents for failed runs.
"""

from .aggregator import aggregate_pipeline_status, decide_notification
from .classifier import AgentCategory, FailureClassifier, classify
from .data_source import GitHubDataSource, PullRequestDataSource
from .event_log import EventLog
from .exceptions import (
    AgentDispatchError,
    AuthError,
    MonitorAlreadyRunningError,
    MonitorError,
    MonitorNotRunningError,
    NotFoundError,
    PersistenceError,
    TransientFetchError,
)
from .models import PipelineStatus, PollerState
from .poller import PRPoller, run_monitor
from .remediation import (
    AgentCommand,
    FailureAnalyzer,
    RemediationDispatcher,
    SubprocessAgentCommand,
    latest_commit_looks_like_fix,
)
from .state_store import FileStateRepository, StateRepository
from .supervisor import (
    FileLease,
    MonitorLease,
    MonitorSupervisor,
    ProcessListLease,
    ProcessRegistry,
    PsutilProcessRegistry,
)

__all__ = [
    "AgentCategory",
    "AgentCommand",
    "AgentDispatchError",
    "AuthError",
    "EventLog",
    "FailureAnalyzer",
    "FailureClassifier",
    "FileLease",
    "FileStateRepository",
    "GitHubDataSource",
    "MonitorAlreadyRunningError",
    "MonitorError",
    "MonitorLease",
    "MonitorNotRunningError",
    "MonitorSupervisor",
    "NotFoundError",
    "PRPoller",
    "PersistenceError",
    "PipelineStatus",
    "PollerState",
    "ProcessListLease",
    "ProcessRegistry",
    "PsutilProcessRegistry",
    "PullRequestDataSource",
    "RemediationDispatcher",
    "StateRepository",
    "SubprocessAgentCommand",
    "TransientFetchError",
    "aggregate_pipeline_status",
    "classify",
    "decide_notification",
    "latest_commit_looks_like_fix",
    "run_monitor",
]
