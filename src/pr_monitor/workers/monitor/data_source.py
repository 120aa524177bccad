"""Read-only view of a pull request's GitHub data.

``GitHubDataSource`` turns REST payloads into the monitor's dataclasses and
translates client errors into the monitor taxonomy:

- rate limit, 5xx, timeout, connection problems -> ``TransientFetchError``
- 401 and permission 403 -> ``AuthError``
- 404 -> ``NotFoundError``
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from ...github import (
    GitHubAuthenticationError,
    GitHubClient,
    GitHubConnectionError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
)
from ...models.enums import CommentKind, RunConclusion
from .exceptions import AuthError, MonitorError, NotFoundError, TransientFetchError
from .models import (
    CommentInfo,
    FailedStep,
    PullRequestInfo,
    WorkflowJobInfo,
    WorkflowRunInfo,
)

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubConnectionError,
)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse a GitHub ISO 8601 timestamp."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring malformed timestamp: {value}")
        return None


class PullRequestDataSource(ABC):
    """Source of pull request, comment and workflow data."""

    @abstractmethod
    async def fetch_pull_request(self, number: int) -> PullRequestInfo: ...

    @abstractmethod
    async def fetch_comments(self, number: int) -> list[CommentInfo]: ...

    @abstractmethod
    async def fetch_runs(self, head_sha: str) -> list[WorkflowRunInfo]: ...

    @abstractmethod
    async def fetch_jobs(self, run_id: int) -> list[WorkflowJobInfo]: ...

    @abstractmethod
    async def fetch_diff(self, number: int) -> str: ...

    @abstractmethod
    async def find_pull_request_for_branch(self, branch: str) -> int | None: ...


class GitHubDataSource(PullRequestDataSource):
    """Data source backed by the GitHub REST API."""

    def __init__(self, client: GitHubClient, repo: str):
        """Initialize data source.

        Args:
            client: GitHub API client
            repo: Repository in ``owner/name`` form
        """
        self.client = client
        self.repo = repo

    @contextmanager
    def _translate_errors(self, what: str, pr_number: int | None = None) -> Iterator[None]:
        try:
            yield
        except _TRANSIENT_ERRORS as e:
            raise TransientFetchError(
                f"Temporary failure fetching {what}: {e}",
                pr_number=pr_number,
                details={"status_code": e.status_code},
            ) from e
        except GitHubAuthenticationError as e:
            raise AuthError(
                f"GitHub rejected credentials while fetching {what}: {e}",
                pr_number=pr_number,
                details={"status_code": e.status_code},
            ) from e
        except GitHubNotFoundError as e:
            raise NotFoundError(
                f"Not found: {what}", pr_number=pr_number, details={"repo": self.repo}
            ) from e
        except GitHubError as e:
            raise MonitorError(
                f"GitHub request for {what} failed: {e}",
                pr_number=pr_number,
                details={"status_code": e.status_code},
            ) from e

    async def fetch_pull_request(self, number: int) -> PullRequestInfo:
        with self._translate_errors(f"pull request #{number}", number):
            data = await self.client.get_pull(self.repo, number)

        return PullRequestInfo(
            number=data["number"],
            repo=self.repo,
            state=data["state"],
            head_sha=data["head"]["sha"],
            title=data.get("title") or "",
            author=(data.get("user") or {}).get("login", ""),
            url=data.get("html_url") or "",
            merged=bool(data.get("merged") or data.get("merged_at")),
            closed_at=parse_timestamp(data.get("closed_at")),
        )

    async def fetch_comments(self, number: int) -> list[CommentInfo]:
        """Review (inline) comments followed by general comments."""
        with self._translate_errors(f"comments of pull request #{number}", number):
            review = await self.client.list_review_comments(self.repo, number)
            general = await self.client.list_issue_comments(self.repo, number)

        comments = [self._comment(item, CommentKind.REVIEW) for item in review]
        comments.extend(self._comment(item, CommentKind.GENERAL) for item in general)
        return comments

    @staticmethod
    def _comment(data: dict[str, Any], kind: CommentKind) -> CommentInfo:
        return CommentInfo(
            comment_id=data["id"],
            kind=kind,
            author=(data.get("user") or {}).get("login", "unknown"),
            body=data.get("body") or "",
            path=data.get("path") if kind == CommentKind.REVIEW else None,
            html_url=data.get("html_url") or "",
            created_at=parse_timestamp(data.get("created_at")),
        )

    async def fetch_runs(self, head_sha: str) -> list[WorkflowRunInfo]:
        with self._translate_errors(f"workflow runs for {head_sha[:7]}"):
            items = await self.client.list_workflow_runs(self.repo, head_sha)

        return [
            WorkflowRunInfo(
                run_id=item["id"],
                name=item.get("name") or "",
                status=item["status"],
                conclusion=item.get("conclusion"),
                head_sha=item.get("head_sha") or head_sha,
                html_url=item.get("html_url") or "",
                run_number=item.get("run_number"),
                run_attempt=item.get("run_attempt"),
                started_at=parse_timestamp(item.get("run_started_at")),
                updated_at=parse_timestamp(item.get("updated_at")),
            )
            for item in items
        ]

    async def fetch_jobs(self, run_id: int) -> list[WorkflowJobInfo]:
        with self._translate_errors(f"jobs of run {run_id}"):
            items = await self.client.list_workflow_jobs(self.repo, run_id)

        jobs = []
        for item in items:
            failed_steps = tuple(
                FailedStep(
                    name=step.get("name", ""),
                    number=step.get("number", 0),
                    started_at=step.get("started_at"),
                    completed_at=step.get("completed_at"),
                    conclusion=step.get("conclusion") or RunConclusion.FAILURE.value,
                )
                for step in item.get("steps") or []
                if step.get("conclusion") == RunConclusion.FAILURE.value
            )
            jobs.append(
                WorkflowJobInfo(
                    job_id=item["id"],
                    name=item.get("name") or "",
                    status=item["status"],
                    conclusion=item.get("conclusion"),
                    html_url=item.get("html_url") or "",
                    runner_name=item.get("runner_name"),
                    failed_steps=failed_steps,
                    started_at=parse_timestamp(item.get("started_at")),
                    completed_at=parse_timestamp(item.get("completed_at")),
                )
            )
        return jobs

    async def fetch_diff(self, number: int) -> str:
        with self._translate_errors(f"diff of pull request #{number}", number):
            return await self.client.get_pull_diff(self.repo, number)

    async def find_pull_request_for_branch(self, branch: str) -> int | None:
        """Number of the open PR whose head is ``branch``, if any."""
        owner = self.repo.split("/", 1)[0]
        with self._translate_errors(f"pull requests for branch {branch}"):
            pulls = await self.client.list_pulls(self.repo, head=f"{owner}:{branch}")

        if not pulls:
            return None
        if len(pulls) > 1:
            logger.warning(
                f"Branch {branch} has {len(pulls)} open pull requests, using the first"
            )
        number: int = pulls[0]["number"]
        return number
