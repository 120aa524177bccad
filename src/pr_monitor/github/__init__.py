"""GitHub API client package."""

from .auth import AuthProvider, AuthToken, PersonalAccessTokenAuth
from .client import GitHubClient, GitHubClientConfig
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
from .pagination import AsyncPaginator, LinkHeader, PaginatedResponse

__all__ = [
    "AsyncPaginator",
    "AuthProvider",
    "AuthToken",
    "GitHubAuthenticationError",
    "GitHubClient",
    "GitHubClientConfig",
    "GitHubConnectionError",
    "GitHubError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubServerError",
    "GitHubTimeoutError",
    "GitHubValidationError",
    "LinkHeader",
    "PaginatedResponse",
    "PersonalAccessTokenAuth",
]
