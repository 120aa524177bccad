"""GitHub REST API client used by the PR poller.

The client performs exactly one HTTP attempt per call. A failed request is
raised to the caller as one of the ``GitHubError`` subclasses; the poller
decides what to do with it (usually: log and wait for the next cycle).
"""

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin

import aiohttp

from .auth import AuthProvider
from .exceptions import (
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
)
from .pagination import AsyncPaginator, PaginatedResponse

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/vnd.github.v3+json"
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


@dataclass
class GitHubClientConfig:
    """Configuration for GitHub client."""

    base_url: str = "https://api.github.com"
    timeout: int = 30
    user_agent: str = "pr-monitor/1.0"


class GitHubClient:
    """Async GitHub API client."""

    def __init__(
        self,
        auth: AuthProvider,
        config: GitHubClientConfig | None = None,
    ) -> None:
        """Initialize GitHub client.

        Args:
            auth: Authentication provider
            config: Client configuration
        """
        self.auth = auth
        self.config = config or GitHubClientConfig()

        # HTTP session will be initialized on first use
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def __aenter__(self) -> "GitHubClient":
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> None:
        """Ensure HTTP session is initialized."""
        if self._session is None or self._session.closed:
            async with self._session_lock:
                if self._session is None or self._session.closed:
                    self._session = aiohttp.ClientSession(
                        timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                        headers={
                            "User-Agent": self.config.user_agent,
                            "Accept": JSON_MEDIA_TYPE,
                        },
                    )

    async def close(self) -> None:
        """Close HTTP session and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _url(self, path: str) -> str:
        return urljoin(self.config.base_url.rstrip("/") + "/", path.lstrip("/"))

    async def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        accept: str = JSON_MEDIA_TYPE,
    ) -> tuple[Any, dict[str, str]]:
        """Perform one HTTP request and decode the body.

        Args:
            method: HTTP method
            url: Absolute request URL
            params: Query parameters
            accept: Media type to request; anything other than JSON is
                returned as text

        Returns:
            Tuple of decoded body and response headers

        Raises:
            GitHubError: Various GitHub API errors
        """
        correlation_id = str(uuid.uuid4())[:8]

        await self._ensure_session()
        if not self._session:
            raise GitHubConnectionError("Failed to initialize HTTP session")

        headers = {"Accept": accept}
        headers.update((await self.auth.get_token()).to_header())

        start_time = time.time()
        logger.debug(f"GitHub API request [{correlation_id}] {method} {url}")

        try:
            async with self._session.request(
                method, url, params=params, headers=headers
            ) as response:
                logger.debug(
                    f"GitHub API response [{correlation_id}] "
                    f"{response.status} in {time.time() - start_time:.2f}s"
                )

                if response.status >= 400:
                    await self._handle_error_response(response, correlation_id)

                try:
                    if accept == JSON_MEDIA_TYPE:
                        body: Any = await response.json()
                    else:
                        body = await response.text()
                except ValueError as e:
                    raise GitHubServerError(
                        f"Malformed response body for {method} {url}: {e}",
                        response.status,
                    ) from e
                return body, dict(response.headers)

        except TimeoutError as e:
            raise GitHubTimeoutError(f"Request timeout for {method} {url}") from e
        except aiohttp.ClientError as e:
            raise GitHubConnectionError(
                f"Connection error for {method} {url}: {e}"
            ) from e

    async def _handle_error_response(
        self, response: aiohttp.ClientResponse, correlation_id: str
    ) -> None:
        """Raise the exception matching an error response.

        Args:
            response: HTTP response
            correlation_id: Request correlation ID

        Raises:
            GitHubError: Appropriate error based on status code
        """
        try:
            error_data = await response.json()
        except (json.JSONDecodeError, aiohttp.ContentTypeError):
            error_data = {"message": await response.text()}
        if not isinstance(error_data, dict):
            error_data = {"message": str(error_data)}

        error_message = error_data.get("message") or f"HTTP {response.status}"

        logger.warning(
            f"GitHub API error [{correlation_id}] {response.status}: {error_message}"
        )

        if response.status == 401:
            raise GitHubAuthenticationError(error_message, response.status, error_data)
        elif response.status in (403, 429):
            if response.status == 429 or "rate limit" in error_message.lower():
                reset_time = response.headers.get("X-RateLimit-Reset")
                raise GitHubRateLimitError(
                    error_message,
                    reset_time=int(reset_time) if reset_time else None,
                    remaining=int(response.headers.get("X-RateLimit-Remaining", "0")),
                    limit=int(response.headers.get("X-RateLimit-Limit", "0")),
                )
            raise GitHubAuthenticationError(error_message, response.status, error_data)
        elif response.status == 404:
            raise GitHubNotFoundError(error_message, response.status, error_data)
        elif response.status == 422:
            raise GitHubValidationError(error_message, response.status, error_data)
        elif 500 <= response.status < 600:
            raise GitHubServerError(error_message, response.status, error_data)
        else:
            raise GitHubError(error_message, response.status, error_data)

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make GET request to GitHub API.

        Args:
            path: API path (e.g., '/repos/owner/repo/pulls')
            params: Query parameters

        Returns:
            JSON response data
        """
        body, _ = await self._request("GET", self._url(path), params)
        return body

    async def get_text(self, path: str, accept: str = DIFF_MEDIA_TYPE) -> str:
        """Make GET request returning the raw body (diffs, patches)."""
        body, _ = await self._request("GET", self._url(path), accept=accept)
        return str(body)

    async def _fetch_paginated(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        items_key: str | None = None,
    ) -> PaginatedResponse:
        """Fetch one page (used by AsyncPaginator)."""
        data, headers = await self._request("GET", url, params)
        return PaginatedResponse(data, headers, url, items_key=items_key)

    def paginate(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        per_page: int = 100,
        max_pages: int | None = None,
        items_key: str | None = None,
    ) -> AsyncPaginator:
        """Create async paginator for GitHub API endpoint.

        Args:
            path: API path
            params: Query parameters
            per_page: Items per page (max 100)
            max_pages: Maximum pages to fetch
            items_key: Member holding the items for wrapped responses

        Returns:
            AsyncPaginator for iterating through results
        """
        return AsyncPaginator(
            client=self,
            initial_url=self._url(path),
            params=params,
            per_page=per_page,
            max_pages=max_pages,
            items_key=items_key,
        )

    # Convenience methods for the endpoints the poller uses

    async def get_pull(self, repo: str, pull_number: int) -> dict[str, Any]:
        """Get a pull request.

        Args:
            repo: Repository in ``owner/name`` form
            pull_number: Pull request number
        """
        pull: dict[str, Any] = await self.get(f"/repos/{repo}/pulls/{pull_number}")
        return pull

    async def get_pull_diff(self, repo: str, pull_number: int) -> str:
        """Get the unified diff of a pull request."""
        return await self.get_text(f"/repos/{repo}/pulls/{pull_number}")

    async def list_pulls(
        self, repo: str, head: str | None = None, state: str = "open"
    ) -> list[dict[str, Any]]:
        """List pull requests, optionally filtered by ``owner:branch`` head."""
        params: dict[str, Any] = {"state": state}
        if head:
            params["head"] = head
        return await self.paginate(f"/repos/{repo}/pulls", params=params).collect_all()

    async def list_review_comments(
        self, repo: str, pull_number: int
    ) -> list[dict[str, Any]]:
        """List inline review comments of a pull request."""
        return await self.paginate(
            f"/repos/{repo}/pulls/{pull_number}/comments"
        ).collect_all()

    async def list_issue_comments(
        self, repo: str, pull_number: int
    ) -> list[dict[str, Any]]:
        """List conversation (issue) comments of a pull request."""
        return await self.paginate(
            f"/repos/{repo}/issues/{pull_number}/comments"
        ).collect_all()

    async def list_workflow_runs(
        self, repo: str, head_sha: str
    ) -> list[dict[str, Any]]:
        """List Actions workflow runs for a commit."""
        return await self.paginate(
            f"/repos/{repo}/actions/runs",
            params={"head_sha": head_sha},
            items_key="workflow_runs",
        ).collect_all()

    async def list_workflow_jobs(self, repo: str, run_id: int) -> list[dict[str, Any]]:
        """List the jobs of a workflow run."""
        return await self.paginate(
            f"/repos/{repo}/actions/runs/{run_id}/jobs",
            items_key="jobs",
        ).collect_all()
