"""Exceptions raised by the PR monitor.

The GitHub data source translates client errors into this taxonomy so that
the poller only has to distinguish "try again next cycle" (transient) from
"this cycle cannot succeed" (auth, not found) failures.
"""

from typing import Any


class MonitorError(Exception):
    """Base exception for PR monitor errors."""

    def __init__(
        self,
        message: str,
        pr_number: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize monitor error.

        Args:
            message: Human-readable error message
            pr_number: Pull request the error relates to
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.pr_number = pr_number
        self.details = details or {}


class TransientFetchError(MonitorError):
    """Network failure, timeout, rate limit or 5xx response; retry next cycle."""


class AuthError(MonitorError):
    """The GitHub token is missing, invalid or lacks permissions."""


class NotFoundError(MonitorError):
    """The pull request, run or repository does not exist."""


class PersistenceError(MonitorError):
    """The state file or the event log database is unavailable."""


class AgentDispatchError(MonitorError):
    """The remediation agent could not be started or exited with an error."""

    def __init__(
        self,
        message: str,
        pr_number: int | None = None,
        exit_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, pr_number, details)
        self.exit_code = exit_code


class MonitorAlreadyRunningError(MonitorError):
    """A poller for the pull request is already running."""

    def __init__(self, pr_number: int, pids: list[int]):
        pid_list = ", ".join(str(pid) for pid in pids)
        super().__init__(
            f"Monitor for PR #{pr_number} is already running (PID: {pid_list})",
            pr_number,
            {"pids": pids},
        )
        self.pids = pids


class MonitorNotRunningError(MonitorError):
    """No poller for the pull request is running."""

    def __init__(self, pr_number: int):
        super().__init__(f"No monitor running for PR #{pr_number}", pr_number)
