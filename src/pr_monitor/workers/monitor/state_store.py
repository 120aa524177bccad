"""Durable per-PR poller state.

The whole ``PollerState`` is read and rewritten on every cycle; there are no
partial updates.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError

from .exceptions import PersistenceError
from .models import PollerState

logger = logging.getLogger(__name__)


class StateRepository(ABC):
    """Storage backend for poller state."""

    @abstractmethod
    def load(self, pr_number: int) -> PollerState:
        """Load state, returning fresh defaults when none was saved.

        Raises:
            PersistenceError: If stored state exists but cannot be read
        """

    @abstractmethod
    def save(self, pr_number: int, state: PollerState) -> None:
        """Replace the stored state.

        Raises:
            PersistenceError: If the state cannot be written
        """


class FileStateRepository(StateRepository):
    """One JSON file per pull request, replaced atomically on save."""

    def __init__(self, path_for: Callable[[int], Path]):
        """Initialize repository.

        Args:
            path_for: Maps a PR number to its state file
        """
        self.path_for = path_for

    def load(self, pr_number: int) -> PollerState:
        path = self.path_for(pr_number)
        if not path.exists():
            logger.debug(f"No state file at {path}, starting fresh")
            return PollerState()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return PollerState.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise PersistenceError(
                f"Failed to load state from {path}: {e}",
                pr_number=pr_number,
                details={"path": str(path)},
            ) from e

    def save(self, pr_number: int, state: PollerState) -> None:
        path = self.path_for(pr_number)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(state.model_dump(mode="json"), f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(
                f"Failed to save state to {path}: {e}",
                pr_number=pr_number,
                details={"path": str(path)},
            ) from e
