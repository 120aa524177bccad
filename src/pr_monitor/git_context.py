"""Local git and gh CLI integration.

Used to auto-detect the repository being worked on (root, GitHub slug,
current branch, token) and to inspect the commit an agent left behind.
"""

import asyncio
import logging
import re
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_REMOTE_PATTERNS = (
    re.compile(r"^git@[^:]+:(?P<slug>[^/]+/[^/]+?)(?:\.git)?/?$"),
    re.compile(r"^(?:https?|ssh|git)://(?:[^@/]+@)?[^/]+/(?P<slug>[^/]+/[^/]+?)(?:\.git)?/?$"),
)


def parse_remote_url(url: str) -> str | None:
    """Extract ``owner/name`` from a GitHub remote URL.

    Handles ``git@github.com:owner/name.git`` and
    ``https://github.com/owner/name(.git)`` forms.
    """
    url = url.strip()
    for pattern in _REMOTE_PATTERNS:
        match = pattern.match(url)
        if match:
            return match.group("slug")
    return None


class GitContext:
    """Runs git (and gh) commands inside one working tree."""

    def __init__(self, repo_path: Path | None = None) -> None:
        self._repo_path = repo_path

    def _run(self, *args: str) -> str | None:
        """Run a command and return stripped stdout, or None on failure."""
        try:
            result = subprocess.run(  # nosec B603
                list(args),
                capture_output=True,
                text=True,
                cwd=str(self._repo_path) if self._repo_path else None,
                timeout=15,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Command {args[0]} unavailable: {e}")
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def repo_root(self) -> Path | None:
        """Top-level directory of the working tree."""
        root = self._run("git", "rev-parse", "--show-toplevel")
        return Path(root) if root else None

    def repo_slug(self) -> str | None:
        """GitHub ``owner/name`` of the ``origin`` remote."""
        url = self._run("git", "remote", "get-url", "origin")
        return parse_remote_url(url) if url else None

    def current_branch(self) -> str | None:
        """Checked-out branch, None when detached."""
        return self._run("git", "branch", "--show-current")

    def gh_token(self) -> str | None:
        """Token of the logged-in gh CLI user."""
        return self._run("gh", "auth", "token")

    async def latest_commit(self) -> tuple[str, str] | None:
        """Short SHA and message of HEAD."""
        try:
            proc = await asyncio.create_subprocess_exec(
                "git",
                "log",
                "-1",
                "--pretty=%h%n%B",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self._repo_path) if self._repo_path else None,
            )
        except OSError as e:
            logger.debug(f"Command git unavailable: {e}")
            return None
        stdout, _ = await proc.communicate()
        if proc.returncode != 0:
            return None
        sha, _, message = stdout.decode().partition("\n")
        return sha.strip(), message.strip()
