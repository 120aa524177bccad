"""Monitor process supervision.

Each pull request is watched by exactly one poller process, started as
``python -m pr_monitor run <PR> --repo <owner/name>``. The supervisor finds
pollers by that command line signature in the process table, so no shared
lock service is needed. The pollers additionally hold a ``FileLease`` for
their PR while running.
"""

from __future__ import annotations

import fcntl
import logging
import os
import subprocess
import sys
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

import psutil

from .exceptions import MonitorAlreadyRunningError, MonitorError, MonitorNotRunningError

logger = logging.getLogger(__name__)

MODULE_NAME = "pr_monitor"
SCRIPT_NAMES = {"pr-monitor", "pr_monitor"}
RUN_COMMAND = "run"


@dataclass(frozen=True)
class MonitorProcess:
    """A running poller process."""

    pid: int
    pr_number: int
    create_time: float
    repo: str | None = None
    cmdline: tuple[str, ...] = field(default=(), compare=False)

    @property
    def uptime(self) -> float:
        """Seconds since the process started."""
        return max(0.0, time.time() - self.create_time)


def parse_monitor_cmdline(cmdline: list[str]) -> tuple[int, str | None] | None:
    """Recognize a poller invocation.

    Accepts both ``python -m pr_monitor run 42`` and the ``pr-monitor run 42``
    console script.

    Returns:
        PR number and ``--repo`` value, or None for other processes
    """
    for index, arg in enumerate(cmdline):
        if arg != RUN_COMMAND or index == 0:
            continue
        launcher = cmdline[index - 1]
        if launcher != MODULE_NAME and Path(launcher).name not in SCRIPT_NAMES:
            continue
        if index + 1 >= len(cmdline) or not cmdline[index + 1].isdigit():
            return None

        repo = None
        rest = cmdline[index + 2 :]
        for pos, option in enumerate(rest):
            if option == "--repo" and pos + 1 < len(rest):
                repo = rest[pos + 1]
            elif option.startswith("--repo="):
                repo = option.split("=", 1)[1]
        return int(cmdline[index + 1]), repo
    return None


def format_uptime(seconds: float) -> str:
    """Render an uptime like ``ps`` etime: ``[[dd-]hh:]mm:ss``."""
    total = int(seconds)
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    if days:
        return f"{days}-{hours:02d}:{minutes:02d}:{secs:02d}"
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


class ProcessRegistry(ABC):
    """Access to the operating system's process table."""

    @abstractmethod
    def list(self) -> list[MonitorProcess]:
        """Enumerate running pollers."""

    @abstractmethod
    def start(self, argv: list[str], log_path: Path, cwd: Path | None = None) -> int:
        """Spawn a detached process and return its pid."""

    @abstractmethod
    def terminate(self, pid: int, force: bool = False) -> None:
        """Send SIGTERM, or SIGKILL when ``force`` is set."""

    @abstractmethod
    def is_alive(self, pid: int) -> bool:
        """Check whether a process still runs."""


class PsutilProcessRegistry(ProcessRegistry):
    """Process registry backed by psutil."""

    def list(self) -> list[MonitorProcess]:
        own_pid = os.getpid()
        processes = []
        for proc in psutil.process_iter(["pid", "cmdline", "create_time"]):
            try:
                info = proc.info
                if info["pid"] == own_pid or not info["cmdline"]:
                    continue
                parsed = parse_monitor_cmdline(info["cmdline"])
                if parsed is None:
                    continue
                pr_number, repo = parsed
                processes.append(
                    MonitorProcess(
                        pid=info["pid"],
                        pr_number=pr_number,
                        create_time=info["create_time"],
                        repo=repo,
                        cmdline=tuple(info["cmdline"]),
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return processes

    def start(self, argv: list[str], log_path: Path, cwd: Path | None = None) -> int:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "ab") as log_file:
            proc = subprocess.Popen(  # nosec B603
                argv,
                stdin=subprocess.DEVNULL,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                cwd=str(cwd) if cwd else None,
                start_new_session=True,
            )
        return proc.pid

    def terminate(self, pid: int, force: bool = False) -> None:
        try:
            proc = psutil.Process(pid)
            if force:
                proc.kill()
            else:
                proc.terminate()
        except psutil.NoSuchProcess:
            logger.debug(f"Process {pid} already exited")

    def is_alive(self, pid: int) -> bool:
        try:
            return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False


class MonitorSupervisor:
    """Starts, stops and de-duplicates poller processes."""

    def __init__(
        self,
        registry: ProcessRegistry | None = None,
        grace_period: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize supervisor.

        Args:
            registry: Process table access
            grace_period: Seconds between SIGTERM and SIGKILL
            sleep: Sleep function, replaceable in tests
        """
        self.registry = registry or PsutilProcessRegistry()
        self.grace_period = grace_period
        self.sleep = sleep

    def list(self) -> list[MonitorProcess]:
        """Running pollers ordered by PR number, then start time."""
        return sorted(
            self.registry.list(), key=lambda p: (p.pr_number, p.create_time, p.pid)
        )

    def find(self, pr_number: int) -> list[MonitorProcess]:
        return [p for p in self.list() if p.pr_number == pr_number]

    def is_running(self, pr_number: int) -> bool:
        return bool(self.find(pr_number))

    def start(
        self,
        pr_number: int,
        repo: str | None,
        log_path: Path,
        cwd: Path | None = None,
    ) -> int:
        """Launch a poller for a PR.

        Returns:
            Pid of the new process

        Raises:
            MonitorAlreadyRunningError: If a poller for the PR exists
        """
        running = self.find(pr_number)
        if running:
            raise MonitorAlreadyRunningError(pr_number, [p.pid for p in running])

        argv = [sys.executable, "-m", MODULE_NAME, RUN_COMMAND, str(pr_number)]
        if repo:
            argv.extend(["--repo", repo])

        pid = self.registry.start(argv, log_path, cwd)
        logger.info(f"Started monitor for PR #{pr_number} (PID: {pid})")
        return pid

    def stop(self, pr_number: int) -> list[int]:
        """Terminate every poller of a PR.

        Returns:
            Pids that were stopped

        Raises:
            MonitorNotRunningError: If no poller for the PR runs
            MonitorError: If a process survived SIGKILL
        """
        running = self.find(pr_number)
        if not running:
            raise MonitorNotRunningError(pr_number)

        pids = [p.pid for p in running]
        self._terminate(pids)

        if self.is_running(pr_number):
            remaining = [p.pid for p in self.find(pr_number)]
            raise MonitorError(
                f"Failed to stop monitor for PR #{pr_number} (PID: "
                f"{', '.join(str(pid) for pid in remaining)})",
                pr_number=pr_number,
                details={"pids": remaining},
            )

        logger.info(f"Stopped monitor for PR #{pr_number}")
        return pids

    def cleanup(self) -> dict[int, list[int]]:
        """Keep only the earliest poller of each PR.

        Returns:
            Terminated pids per PR number
        """
        by_pr: dict[int, list[MonitorProcess]] = defaultdict(list)
        for process in self.list():
            by_pr[process.pr_number].append(process)

        stopped: dict[int, list[int]] = {}
        for pr_number, processes in by_pr.items():
            if len(processes) < 2:
                continue
            keep, *duplicates = processes
            pids = [p.pid for p in duplicates]
            logger.info(
                f"PR #{pr_number} has {len(processes)} monitors, keeping PID {keep.pid}"
            )
            self._terminate(pids)
            stopped[pr_number] = pids
        return stopped

    def _terminate(self, pids: list[int]) -> None:
        for pid in pids:
            self.registry.terminate(pid)

        self.sleep(self.grace_period)

        survivors = [pid for pid in pids if self.registry.is_alive(pid)]
        if survivors:
            logger.warning(
                f"Processes did not stop gracefully, force killing: {survivors}"
            )
            for pid in survivors:
                self.registry.terminate(pid, force=True)
            self.sleep(self.grace_period)


class MonitorLease(ABC):
    """Mutual exclusion of pollers per PR."""

    @abstractmethod
    def try_acquire(self, pr_number: int) -> bool:
        """Take the lease; False when another process holds it."""

    @abstractmethod
    def release(self, pr_number: int) -> None:
        """Give the lease back."""

    @abstractmethod
    def list_holders(self, pr_number: int) -> list[int]:
        """Pids of other processes holding the lease."""


class ProcessListLease(MonitorLease):
    """Lease derived from the process table: held while a poller runs."""

    def __init__(self, registry: ProcessRegistry | None = None):
        self.registry = registry or PsutilProcessRegistry()

    def list_holders(self, pr_number: int) -> list[int]:
        own_pid = os.getpid()
        return [
            p.pid
            for p in self.registry.list()
            if p.pr_number == pr_number and p.pid != own_pid
        ]

    def try_acquire(self, pr_number: int) -> bool:
        return not self.list_holders(pr_number)

    def release(self, pr_number: int) -> None:
        """Nothing to release; the lease ends with the process."""


class FileLease(MonitorLease):
    """Advisory ``flock`` on a per-PR lock file containing the holder's pid."""

    def __init__(self, path_for: Callable[[int], Path]):
        """Initialize lease.

        Args:
            path_for: Maps a PR number to its lock file
        """
        self.path_for = path_for
        self._handles: dict[int, IO[str]] = {}

    def try_acquire(self, pr_number: int) -> bool:
        if pr_number in self._handles:
            return True

        path = self.path_for(pr_number)
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = open(path, "a+", encoding="utf-8")
        try:
            fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            handle.close()
            return False

        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()))
        handle.flush()
        self._handles[pr_number] = handle
        return True

    def release(self, pr_number: int) -> None:
        handle = self._handles.pop(pr_number, None)
        if handle is None:
            return
        try:
            handle.seek(0)
            handle.truncate()
            fcntl.flock(handle, fcntl.LOCK_UN)
        finally:
            handle.close()

    def list_holders(self, pr_number: int) -> list[int]:
        if pr_number in self._handles:
            return []
        path = self.path_for(pr_number)
        if not path.exists():
            return []

        with open(path, "a+", encoding="utf-8") as handle:
            try:
                fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                handle.seek(0)
                content = handle.read().strip()
                return [int(content)] if content.isdigit() else []
            fcntl.flock(handle, fcntl.LOCK_UN)
        return []
