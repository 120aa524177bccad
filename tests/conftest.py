"""
Test configuration and shared fixtures.

Provides the in-memory fakes from ``tests.fixtures.monitor`` as fixtures,
a monitor configuration rooted in a temporary directory and a throwaway
SQLite event log.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from pr_monitor.config import MonitorConfig
from pr_monitor.database import DatabaseConfig, DatabaseConnectionManager
from pr_monitor.workers.monitor.event_log import EventLog
from tests.fixtures.monitor import (
    REPO,
    FakeAgentCommand,
    FakeDataSource,
    InMemoryStateRepository,
    RecordingNotifier,
)


@pytest.fixture
def state_store() -> InMemoryStateRepository:
    return InMemoryStateRepository()


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def agent() -> FakeAgentCommand:
    return FakeAgentCommand()


@pytest.fixture
def monitor_config(tmp_path: Path) -> MonitorConfig:
    """Configuration rooted in a temporary directory."""
    return MonitorConfig(
        github={"token": "ghp_test", "repo": REPO},
        paths={"root": str(tmp_path)},
        polling={"check_interval": 1},
    )


@pytest_asyncio.fixture
async def event_log(tmp_path: Path) -> AsyncGenerator[EventLog, None]:
    """
    Event log over a fresh SQLite file.

    Why: Upserts rely on SQLite's ON CONFLICT support, so repositories are
         tested against a real database rather than mocks
    What: Creates the schema in a temporary database and disposes the engine
    """
    manager = DatabaseConnectionManager(
        DatabaseConfig.for_path(tmp_path / "data" / "pr_tracking.db")
    )
    log = EventLog(manager)
    await log.init()
    yield log
    await log.close()
