"""Unit tests for GitHub authentication module."""

import pytest

from pr_monitor.github.auth import AuthToken, PersonalAccessTokenAuth
from pr_monitor.github.exceptions import GitHubAuthenticationError


class TestAuthToken:
    """Test AuthToken data class."""

    def test_to_header(self) -> None:
        token = AuthToken(token="test_token", token_type="Bearer")
        assert token.to_header() == {"Authorization": "Bearer test_token"}


class TestPersonalAccessTokenAuth:
    """Test PersonalAccessTokenAuth."""

    @pytest.mark.asyncio
    async def test_token_scheme(self) -> None:
        auth = PersonalAccessTokenAuth("ghp_abc")

        token = await auth.get_token()

        assert token.to_header() == {"Authorization": "token ghp_abc"}

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(GitHubAuthenticationError):
            PersonalAccessTokenAuth("")
