"""Command line interface.

Usage:
    pr-monitor start <PR> [REPO]     Start a background monitor
    pr-monitor run <PR> [--repo R]   Run a monitor in the foreground
    pr-monitor stop <PR>             Stop the monitors of a PR
    pr-monitor list                  List running monitors
    pr-monitor cleanup               Stop duplicate monitors
    pr-monitor detect                Find the PR of the current branch
    pr-monitor errors [PR] [--json]  Show failed jobs of a PR
    pr-monitor init                  Create the tracking database
    pr-monitor comments addressed <PR> <COMMENT_ID> [--notes N]
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .config import ConfigurationError, ConfigurationLoader, MonitorConfig
from .database import DatabaseConfig, DatabaseConnectionManager
from .git_context import GitContext
from .github import GitHubClient, GitHubClientConfig, PersonalAccessTokenAuth
from .workers.monitor import (
    EventLog,
    GitHubDataSource,
    MonitorAlreadyRunningError,
    MonitorError,
    MonitorNotRunningError,
    MonitorSupervisor,
    run_monitor,
)
from .workers.monitor.reports import ErrorReport
from .workers.monitor.supervisor import format_uptime

logger = logging.getLogger(__name__)


def configure_logging(config: MonitorConfig, log_file: Path | None = None) -> None:
    """Log to the console and, for pollers, to the per-PR log file."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=config.logging.level.value,
        format=config.logging.format,
        handlers=handlers,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pr-monitor",
        description="Monitor a pull request's CI pipeline and react to failures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Monitor the PR of the current branch
  pr-monitor start $(pr-monitor detect --number)

  # Monitor a PR of another repository
  pr-monitor start 123 owner/repo

  # Feed the failures of a PR to an agent
  pr-monitor errors 123 --json
        """,
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("--config", "-c", help="Configuration file path")
    parser.add_argument("--log-level", help="Log level (default: from configuration)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    start = subparsers.add_parser("start", help="Start a background monitor")
    start.add_argument("pr_number", type=int)
    start.add_argument("repo", nargs="?", help="Repository in owner/name form")

    run = subparsers.add_parser("run", help="Run a monitor in the foreground")
    run.add_argument("pr_number", type=int)
    run.add_argument("--repo", help="Repository in owner/name form")
    run.add_argument("--interval", type=int, help="Seconds between checks")

    stop = subparsers.add_parser("stop", help="Stop the monitors of a PR")
    stop.add_argument("pr_number", type=int)

    subparsers.add_parser("list", help="List running monitors")
    subparsers.add_parser("cleanup", help="Stop duplicate monitors")

    detect = subparsers.add_parser("detect", help="Find the PR of the current branch")
    detect.add_argument(
        "--number", action="store_true", help="Print only the PR number"
    )

    errors = subparsers.add_parser("errors", help="Show failed jobs of a PR")
    errors.add_argument("pr_number", type=int, nargs="?")
    errors.add_argument("--json", action="store_true", help="Print only the JSON")

    subparsers.add_parser("init", help="Create the tracking database")

    comments = subparsers.add_parser("comments", help="Manage review comments")
    comment_commands = comments.add_subparsers(dest="comment_command", required=True)
    addressed = comment_commands.add_parser(
        "addressed", help="Mark a comment as addressed"
    )
    addressed.add_argument("pr_number", type=int)
    addressed.add_argument("comment_id", type=int)
    addressed.add_argument("--notes", help="How the comment was addressed")

    return parser


def load_configuration(args: argparse.Namespace) -> MonitorConfig:
    overrides: dict[str, Any] = {}
    repo = getattr(args, "repo", None)
    if repo:
        overrides.setdefault("github", {})["repo"] = repo
    interval = getattr(args, "interval", None)
    if interval:
        overrides.setdefault("polling", {})["check_interval"] = interval
    if args.log_level:
        overrides.setdefault("logging", {})["level"] = args.log_level.upper()

    return ConfigurationLoader().load(config_path=args.config, overrides=overrides)


def event_log_for(config: MonitorConfig) -> EventLog:
    return EventLog(
        DatabaseConnectionManager(DatabaseConfig.for_path(config.paths.database_path))
    )


def cmd_start(args: argparse.Namespace, config: MonitorConfig) -> int:
    supervisor = MonitorSupervisor()
    pr_number = args.pr_number
    log_path = config.paths.log_path(pr_number)

    try:
        pid = supervisor.start(
            pr_number,
            config.github.repo or None,
            log_path=log_path.with_suffix(".out"),
            cwd=config.paths.root,
        )
    except MonitorAlreadyRunningError:
        print(f"⚠️  Monitor is already running for PR #{pr_number}")
        print("")
        print("Running monitors:")
        for process in supervisor.find(pr_number):
            print(f"  PID: {process.pid} - Running: {format_uptime(process.uptime)}")
        print("")
        print(f"To stop existing monitors: pr-monitor stop {pr_number}")
        return 1

    print(f"✅ Monitor started for PR #{pr_number} (PID: {pid})")
    print(f"📁 Repository: {config.github.repo or 'auto-detected'}")
    print(f"📄 Log file: {log_path}")
    print("")
    print(f"To stop: pr-monitor stop {pr_number}")
    print(f"To view logs: tail -f {log_path}")
    return 0


def cmd_run(args: argparse.Namespace, config: MonitorConfig) -> int:
    configure_logging(config, config.paths.log_path(args.pr_number))
    try:
        asyncio.run(run_monitor(config, args.pr_number))
    except MonitorAlreadyRunningError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    return 0


def cmd_stop(args: argparse.Namespace, config: MonitorConfig) -> int:
    try:
        pids = MonitorSupervisor().stop(args.pr_number)
    except MonitorNotRunningError:
        print(f"⚠️  No monitor found for PR #{args.pr_number}")
        return 1
    except MonitorError as e:
        print(f"❌ {e}")
        return 1

    print(f"✅ Stopped {len(pids)} monitor(s) for PR #{args.pr_number}")
    return 0


def cmd_list(args: argparse.Namespace, config: MonitorConfig) -> int:
    processes = MonitorSupervisor().list()
    print("Running PR Monitors:")
    print("")
    if not processes:
        print("  No monitors running")
    for process in processes:
        print(
            f"  PR #{process.pr_number} - PID: {process.pid} - "
            f"Running: {format_uptime(process.uptime)}"
        )
    print("")
    print("To stop a monitor: pr-monitor stop <PR_NUMBER>")
    return 0


def cmd_cleanup(args: argparse.Namespace, config: MonitorConfig) -> int:
    print("🔍 Checking for duplicate monitors...")
    print("")
    stopped = MonitorSupervisor().cleanup()
    if not stopped:
        print("✅ No duplicate monitors found")
        return 0

    for pr_number, pids in stopped.items():
        print(f"⚠️  PR #{pr_number}: stopped {len(pids)} duplicate monitor(s)")
        for pid in pids:
            print(f"   ✅ Stopped PID {pid}")
    return 0


async def detect_pull_request(config: MonitorConfig) -> tuple[str, int | None]:
    """Current branch and the number of its open PR."""
    branch = GitContext(config.paths.root).current_branch()
    if not branch:
        return "", None

    config.require_github()
    auth = PersonalAccessTokenAuth(config.github.token)
    client_config = GitHubClientConfig(
        base_url=config.github.base_url, timeout=config.github.timeout
    )
    async with GitHubClient(auth, client_config) as client:
        source = GitHubDataSource(client, config.github.repo)
        return branch, await source.find_pull_request_for_branch(branch)


def cmd_detect(args: argparse.Namespace, config: MonitorConfig) -> int:
    branch, pr_number = asyncio.run(detect_pull_request(config))
    if pr_number is None:
        print("❌ No PR found for current branch", file=sys.stderr)
        return 1

    if args.number:
        print(pr_number)
        return 0

    print(f"✅ Detected PR #{pr_number}")
    print(f"Branch: {branch}")
    print("")
    print(f"To start monitoring: pr-monitor start {pr_number}")
    return 0


async def build_error_report(config: MonitorConfig, pr_number: int) -> ErrorReport:
    event_log = event_log_for(config)
    try:
        rows = await event_log.failed_jobs(pr_number, config.github.repo or None)
        summary = await event_log.workflow_summary(
            pr_number, config.github.repo or None
        )
    finally:
        await event_log.close()
    return ErrorReport.build(pr_number, rows, summary)


def cmd_errors(args: argparse.Namespace, config: MonitorConfig) -> int:
    if not config.paths.database_path.exists():
        print(f"❌ Database not found at {config.paths.database_path}")
        print("Tip: run `pr-monitor init` and start a monitor first")
        return 1

    pr_number = args.pr_number
    if pr_number is None:
        _, pr_number = asyncio.run(detect_pull_request(config))
        if pr_number is None:
            print("❌ PR number is required (no PR found for current branch)")
            return 1

    report = asyncio.run(build_error_report(config, pr_number))
    document = json.dumps(report.to_dict(), indent=2)

    if args.json:
        print(document)
        return 0

    print(report.render_text())
    if report.failed_jobs:
        print("")
        print("🤖 ACTIONABLE JSON OUTPUT (for AI agent)")
        print("")
        print(document)
    return 0


async def initialize(config: MonitorConfig) -> None:
    for directory in (config.paths.state_dir, config.paths.log_dir):
        directory.mkdir(parents=True, exist_ok=True)
    event_log = event_log_for(config)
    try:
        await event_log.init()
    finally:
        await event_log.close()


def cmd_init(args: argparse.Namespace, config: MonitorConfig) -> int:
    asyncio.run(initialize(config))
    print(f"✅ Database initialized at {config.paths.database_path}")
    print(f"📁 State directory: {config.paths.state_dir}")
    print(f"📄 Log directory: {config.paths.log_dir}")
    return 0


async def mark_addressed(
    config: MonitorConfig, pr_number: int, comment_id: int, notes: str | None
) -> bool:
    event_log = event_log_for(config)
    try:
        comment = await event_log.mark_comment_addressed(
            pr_number, comment_id, notes, repo=config.github.repo or None
        )
    finally:
        await event_log.close()
    return comment is not None


def cmd_comments(args: argparse.Namespace, config: MonitorConfig) -> int:
    if asyncio.run(
        mark_addressed(config, args.pr_number, args.comment_id, args.notes)
    ):
        print(f"✅ Comment {args.comment_id} on PR #{args.pr_number} marked addressed")
        return 0
    print(f"❌ Comment {args.comment_id} not found for PR #{args.pr_number}")
    return 1


COMMANDS = {
    "start": cmd_start,
    "run": cmd_run,
    "stop": cmd_stop,
    "list": cmd_list,
    "cleanup": cmd_cleanup,
    "detect": cmd_detect,
    "errors": cmd_errors,
    "init": cmd_init,
    "comments": cmd_comments,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_configuration(args)
        if args.command != "run":
            logging.basicConfig(
                level=config.logging.level.value, format=config.logging.format
            )
        return COMMANDS[args.command](args, config)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1
    except MonitorError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted by user")
        return 1
