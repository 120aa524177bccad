"""GitHub authentication handlers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .exceptions import GitHubAuthenticationError


@dataclass
class AuthToken:
    """Authentication token with its header scheme."""

    token: str
    token_type: str = "Bearer"

    def to_header(self) -> dict[str, str]:
        """Convert to authorization header."""
        return {"Authorization": f"{self.token_type} {self.token}"}


class AuthProvider(ABC):
    """Abstract base class for authentication providers."""

    @abstractmethod
    async def get_token(self) -> AuthToken:
        """Get authentication token."""


class PersonalAccessTokenAuth(AuthProvider):
    """Personal Access Token authentication provider.

    Works for classic and fine-grained tokens as well as the token printed by
    ``gh auth token``.
    """

    def __init__(self, token: str):
        """Initialize PAT authentication.

        Args:
            token: GitHub Personal Access Token
        """
        if not token:
            raise GitHubAuthenticationError("Personal Access Token is required")
        self._token = AuthToken(token=token, token_type="token")  # nosec B106

    async def get_token(self) -> AuthToken:
        """Get authentication token."""
        return self._token
