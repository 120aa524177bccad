"""
Unit tests for GitHub API client.

Why: Ensure the client sends authenticated requests, follows pagination and
     raises the exception matching each error response, since the poller
     decides between "retry next cycle" and "give up" from the type alone.

What: Tests GitHubClient HTTP operations, error mapping and the convenience
      methods used by the poller.

How: Uses aioresponses to intercept aiohttp requests without making real
     GitHub API calls.
"""

import aiohttp
import pytest
from aioresponses import aioresponses

from pr_monitor.github.auth import PersonalAccessTokenAuth
from pr_monitor.github.client import (
    DIFF_MEDIA_TYPE,
    GitHubClient,
    GitHubClientConfig,
)
from pr_monitor.github.exceptions import (
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
)

API = "https://api.github.com"
REPO = "octo/widgets"


class TestGitHubClientConfig:
    """Test GitHubClientConfig data class."""

    def test_github_client_config_defaults(self) -> None:
        config = GitHubClientConfig()

        assert config.base_url == "https://api.github.com"
        assert config.timeout == 30
        assert config.user_agent == "pr-monitor/1.0"


class TestGitHubClient:
    """Test GitHubClient class."""

    @pytest.fixture
    def github_client(self) -> GitHubClient:
        """Create GitHubClient instance with a test token."""
        return GitHubClient(auth=PersonalAccessTokenAuth("ghp_test"))

    @pytest.mark.asyncio
    async def test_get_pull_sends_token(self) -> None:
        """
        Why: Every request must carry the token, otherwise private repositories
             look like missing ones (404).
        What: Tests get_pull request URL and headers.
        How: Intercepts the request and inspects the recorded call.
        """
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(f"{API}/repos/{REPO}/pulls/42", payload={"number": 42})

                pull = await client.get_pull(REPO, 42)

                assert pull == {"number": 42}
                ((_, calls),) = mocked.requests.items()
                assert calls[0].kwargs["headers"]["Authorization"] == "token ghp_test"

    @pytest.mark.asyncio
    async def test_get_pull_diff_requests_diff_media_type(self) -> None:
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/pulls/42",
                    body="diff --git a/x b/x\n+y\n",
                    content_type="text/plain",
                )

                diff = await client.get_pull_diff(REPO, 42)

                assert diff.startswith("diff --git")
                ((_, calls),) = mocked.requests.items()
                assert calls[0].kwargs["headers"]["Accept"] == DIFF_MEDIA_TYPE

    @pytest.mark.asyncio
    async def test_list_pulls_follows_link_header(self) -> None:
        """
        Why: Busy repositories have more open pull requests than one page holds.
        What: Tests that list_pulls collects every page.
        How: Serves two pages chained by a Link header.
        """
        page_2 = f"{API}/repos/{REPO}/pulls?state=open&head=octo:feature&per_page=100&page=2"
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/pulls?state=open&head=octo:feature&per_page=100",
                    payload=[{"number": 1}],
                    headers={"Link": f'<{page_2}>; rel="next"'},
                )
                mocked.get(page_2, payload=[{"number": 2}])

                pulls = await client.list_pulls(REPO, head="octo:feature")

        assert [p["number"] for p in pulls] == [1, 2]

    @pytest.mark.asyncio
    async def test_list_workflow_runs_unwraps_items(self) -> None:
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/actions/runs?head_sha=abc&per_page=100",
                    payload={"total_count": 1, "workflow_runs": [{"id": 7}]},
                )

                runs = await client.list_workflow_runs(REPO, "abc")

        assert runs == [{"id": 7}]

    @pytest.mark.asyncio
    async def test_list_workflow_jobs_unwraps_items(self) -> None:
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/actions/runs/7/jobs?per_page=100",
                    payload={"total_count": 0, "jobs": []},
                )

                assert await client.list_workflow_jobs(REPO, 7) == []

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, github_client: GitHubClient) -> None:
        await github_client.close()
        await github_client.close()


class TestGitHubClientErrors:
    """Test error response mapping."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "message", "expected"),
        [
            (401, "Bad credentials", GitHubAuthenticationError),
            (403, "Resource not accessible by integration", GitHubAuthenticationError),
            (404, "Not Found", GitHubNotFoundError),
            (422, "Validation Failed", GitHubValidationError),
            (502, "Bad Gateway", GitHubServerError),
            (418, "I'm a teapot", GitHubError),
        ],
    )
    async def test_status_mapping(
        self, status: int, message: str, expected: type[GitHubError]
    ) -> None:
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/pulls/42",
                    status=status,
                    payload={"message": message},
                )

                with pytest.raises(expected) as exc_info:
                    await client.get_pull(REPO, 42)

        assert type(exc_info.value) is expected
        assert str(exc_info.value) == message

    @pytest.mark.asyncio
    async def test_rate_limit(self) -> None:
        """
        Why: Rate limiting is transient; the reset time tells when to retry.
        What: Tests 403 "rate limit exceeded" mapping.
        How: Serves a 403 with GitHub's rate limit headers.
        """
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/pulls/42",
                    status=403,
                    payload={"message": "API rate limit exceeded for user"},
                    headers={
                        "X-RateLimit-Reset": "1700000000",
                        "X-RateLimit-Remaining": "0",
                        "X-RateLimit-Limit": "5000",
                    },
                )

                with pytest.raises(GitHubRateLimitError) as exc_info:
                    await client.get_pull(REPO, 42)

        assert exc_info.value.reset_time == 1700000000
        assert exc_info.value.limit == 5000

    @pytest.mark.asyncio
    async def test_secondary_rate_limit_429(self) -> None:
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/pulls/42",
                    status=429,
                    payload={"message": "You have exceeded a secondary rate limit"},
                )

                with pytest.raises(GitHubRateLimitError):
                    await client.get_pull(REPO, 42)

    @pytest.mark.asyncio
    async def test_server_error_with_html_body(self) -> None:
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/pulls/42",
                    status=503,
                    body="<html>Unicorn!</html>",
                    content_type="text/html",
                )

                with pytest.raises(GitHubServerError) as exc_info:
                    await client.get_pull(REPO, 42)

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_malformed_json_body(self) -> None:
        """
        Why: A truncated 200 response must be retried next cycle instead of
             escaping the client as a decoding error
        What: Tests that an undecodable JSON body raises GitHubServerError
        How: Serves an incomplete JSON document with a 200 status
        """
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/pulls/42",
                    status=200,
                    body='{"number": 42, "head": ',
                    content_type="application/json",
                )

                with pytest.raises(GitHubServerError) as exc_info:
                    await client.get_pull(REPO, 42)

        assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(
                    f"{API}/repos/{REPO}/pulls/42",
                    exception=aiohttp.ClientConnectionError("Connection refused"),
                )

                with pytest.raises(GitHubConnectionError):
                    await client.get_pull(REPO, 42)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        async with GitHubClient(auth=PersonalAccessTokenAuth("ghp_test")) as client:
            with aioresponses() as mocked:
                mocked.get(f"{API}/repos/{REPO}/pulls/42", exception=TimeoutError())

                with pytest.raises(GitHubTimeoutError):
                    await client.get_pull(REPO, 42)
