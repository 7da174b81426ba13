"""jiratrack CLI interface."""

import argparse
import asyncio
import os
import re
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

from .exceptions import ConfigError, TrackerError
from .logging_config import configure_logging
from .models import (
    JiraConfig,
    SyncStatus,
    TrackerConfig,
    WorklogFilter,
    format_duration_short,
)
from .store import JsonWorklogStore, TimerStateStore
from .sync import WorklogSyncer
from .timer import IndicatorState, TimerStateMachine

DURATION_PATTERN = re.compile(r"^(?:(\d+)h)?\s*(?:(\d+)m)?\s*(?:(\d+)s)?$")


def get_root_path() -> Path:
    """Get the root path from environment or the home directory."""
    root = os.environ.get("JIRATRACK_ROOT")
    if root:
        return Path(root)
    return Path.home()


def get_stores(root: Path | None = None) -> tuple[JsonWorklogStore, TimerStateStore]:
    """Get the ledger and timer stores."""
    if root is None:
        root = get_root_path()
    return JsonWorklogStore(root), TimerStateStore(root)


def get_client(config: TrackerConfig):
    """Build a Jira client from the saved configuration."""
    from .jira import JiraClient

    if not config.jira.is_configured():
        raise ConfigError("Jira not configured. Run 'jiratrack jira setup' first.")
    return JiraClient(config.jira.url, config.jira.email, config.jira.api_token)


def make_timer(
    store: JsonWorklogStore, state_store: TimerStateStore, sink=None
) -> TimerStateMachine:
    return TimerStateMachine(store, state_store, sink=sink, config=store.get_config())


def parse_duration(value: str) -> int:
    """Parse ``90``, ``45m``, ``1h30m`` or ``1h 5m 10s`` into seconds."""
    value = value.strip()
    if value.isdigit():
        return int(value)
    match = DURATION_PATTERN.match(value)
    if not value or not match:
        raise ValueError(f"Invalid duration: {value!r}")
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


def parse_datetime(value: str) -> datetime:
    """Parse an ISO timestamp. Naive values are taken as local time."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def parse_date(value: str) -> date:
    return date.fromisoformat(value)


class ConsoleSink:
    """Writes the timer display to a single terminal line."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self.indicator = IndicatorState.IDLE

    def set_display_text(self, text: str) -> None:
        self.stream.write(f"\r\033[K{text}")
        self.stream.flush()

    def set_indicator_state(self, state: IndicatorState) -> None:
        self.indicator = state


def _print_summary(summary) -> None:
    print(f"Pushed {summary.success}/{summary.total} worklogs ({summary.failed} failed)")
    for error in summary.errors:
        print(f"  - {error}", file=sys.stderr)


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize the .jiratrack/ data directory."""
    store, _ = get_stores()

    if store.data_dir.exists():
        print(f"jiratrack already initialized in {store.data_dir}")
        return 0

    store.initialize()
    print(f"Initialized jiratrack in {store.data_dir}")
    return 0


def cmd_start(args: argparse.Namespace) -> int:
    """Start a timer, stopping the current one first."""
    store, state_store = get_stores()

    async def run():
        timer = make_timer(store, state_store)
        await timer.restore()
        try:
            return await timer.start(args.issue_key)
        finally:
            await timer.shutdown()

    stopped = asyncio.run(run())
    if stopped:
        print(
            f"Stopped {stopped.issue_key}: worklog #{stopped.id} "
            f"({format_duration_short(stopped.duration_seconds)})"
        )
    print(f"Started timer for {args.issue_key}")
    return 0


def cmd_pause(args: argparse.Namespace) -> int:
    """Pause the running timer."""
    store, state_store = get_stores()

    async def run():
        timer = make_timer(store, state_store)
        await timer.restore()
        try:
            await timer.pause()
            return timer.display_text()
        finally:
            await timer.shutdown()

    print(f"Paused: {asyncio.run(run())}")
    return 0


def cmd_resume(args: argparse.Namespace) -> int:
    """Resume the paused timer."""
    store, state_store = get_stores()

    async def run():
        timer = make_timer(store, state_store)
        await timer.restore()
        try:
            await timer.resume()
            return timer.display_text()
        finally:
            await timer.shutdown()

    print(f"Resumed: {asyncio.run(run())}")
    return 0


def cmd_stop(args: argparse.Namespace) -> int:
    """Stop the timer and record a worklog."""
    store, state_store = get_stores()

    async def run():
        timer = make_timer(store, state_store)
        await timer.restore()
        try:
            return await timer.stop()
        finally:
            await timer.shutdown()

    stopped = asyncio.run(run())
    print(
        f"Stopped {stopped.issue_key}: worklog #{stopped.id} "
        f"({format_duration_short(stopped.duration_seconds)})"
    )
    return 0


def cmd_describe(args: argparse.Namespace) -> int:
    """Set the running timer's description."""
    store, state_store = get_stores()

    async def run():
        timer = make_timer(store, state_store)
        await timer.restore()
        try:
            await timer.update_description(args.text)
        finally:
            await timer.shutdown()

    asyncio.run(run())
    print("Description updated.")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show the timer and pending worklog count."""
    store, state_store = get_stores()

    async def run():
        timer = make_timer(store, state_store)
        await timer.restore()
        try:
            return timer.state, timer.display_text(), timer.session
        finally:
            await timer.shutdown()

    state, text, session = asyncio.run(run())
    if session is None:
        print("No active timer.")
    else:
        print(f"[{state.value}] {text}")
        if session.description:
            print(f"    {session.description}")

    pending = store.list_worklogs(WorklogFilter(sync_status=SyncStatus.PENDING))
    errors = store.list_worklogs(WorklogFilter(sync_status=SyncStatus.ERROR))
    print(f"{len(pending)} pending, {len(errors)} failed worklogs")
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    """Show a live timer until interrupted."""
    store, state_store = get_stores()

    async def run():
        timer = make_timer(store, state_store, sink=ConsoleSink())
        session = await timer.restore()
        if session is None:
            print("No active timer.")
            return
        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            await timer.shutdown()
            print()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    return 0


def cmd_log(args: argparse.Namespace) -> int:
    """Record a worklog by hand."""
    store, _ = get_stores()

    duration = parse_duration(args.duration)
    started = (
        parse_datetime(args.started)
        if args.started
        else datetime.now().astimezone() - timedelta(seconds=duration)
    )
    worklog = store.create_worklog(
        issue_key=args.issue_key,
        started_at=started,
        duration_seconds=duration,
        description=args.description or "",
    )
    print(f"Logged worklog #{worklog.id}: {worklog.issue_key} {format_duration_short(duration)}")
    return 0


def cmd_worklogs(args: argparse.Namespace) -> int:
    """List worklogs."""
    store, _ = get_stores()

    worklog_filter = WorklogFilter(
        issue_key=args.issue,
        sync_status=SyncStatus(args.status) if args.status else None,
        date_from=parse_date(args.date_from) if args.date_from else None,
        date_to=parse_date(args.date_to) if args.date_to else None,
    )
    worklogs = store.list_worklogs(worklog_filter)

    if not worklogs:
        print("No worklogs found.")
        return 0

    for worklog in worklogs:
        print(worklog.format_display())

    total = sum(w.duration_seconds for w in worklogs)
    print(f"\n{len(worklogs)} worklogs, {format_duration_short(total)} total")
    return 0


def cmd_edit(args: argparse.Namespace) -> int:
    """Edit a worklog, optionally mirroring the edit to Jira."""
    store, _ = get_stores()

    fields = {
        "duration_seconds": parse_duration(args.duration) if args.duration else None,
        "description": args.description,
        "started_at": parse_datetime(args.started) if args.started else None,
    }

    if args.sync:

        async def run():
            async with get_client(store.get_config()) as client:
                return await WorklogSyncer(store, client).update_and_sync(
                    args.worklog_id, **fields
                )

        worklog = asyncio.run(run())
    else:
        worklog = store.update_worklog(args.worklog_id, **fields)

    print(worklog.format_display())
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    """Delete a worklog locally, or from Jira and locally."""
    store, _ = get_stores()

    if args.remote:

        async def run():
            async with get_client(store.get_config()) as client:
                await WorklogSyncer(store, client).remove_from_jira(args.worklog_id)

        asyncio.run(run())
        print(f"Deleted worklog #{args.worklog_id} from Jira and locally")
    else:
        store.delete_worklog(args.worklog_id)
        print(f"Deleted worklog #{args.worklog_id}")
    return 0


def cmd_push(args: argparse.Namespace) -> int:
    """Push worklogs to Jira."""
    store, _ = get_stores()

    if not args.worklog_ids and not args.all:
        print("Give worklog ids or --all.", file=sys.stderr)
        return 1

    async def run():
        async with get_client(store.get_config()) as client:
            syncer = WorklogSyncer(store, client)
            if args.all:
                day = parse_date(args.date) if args.date else None
                return await syncer.push_all(day)
            return await syncer.push_selected(args.worklog_ids)

    summary = asyncio.run(run())
    _print_summary(summary)
    return 0 if summary.failed == 0 else 1


def cmd_import(args: argparse.Namespace) -> int:
    """Import the user's Jira worklogs for a day."""
    store, _ = get_stores()
    day = parse_date(args.date) if args.date else date.today()

    async def run():
        async with get_client(store.get_config()) as client:
            return await WorklogSyncer(store, client).import_worklogs(day)

    summary = asyncio.run(run())
    print(
        f"Imported {summary.success} of {summary.total} worklogs for {day.isoformat()} "
        f"({summary.skipped} already present, {summary.failed} failed)"
    )
    for error in summary.errors:
        print(f"  - {error}", file=sys.stderr)
    return 0 if summary.failed == 0 else 1


def cmd_jira_setup(args: argparse.Namespace) -> int:
    """Configure the Jira connection."""
    store, _ = get_stores()
    store.ensure_initialized()
    config = store.get_config()

    url = args.url or input("Jira URL (e.g., https://company.atlassian.net): ").strip()
    email = args.email or input("Your Jira email: ").strip()
    token = args.token or input("API token: ").strip()

    if not all([url, email, token]):
        print("Error: URL, email, and token are required.", file=sys.stderr)
        return 1

    print("Testing connection...")
    from .jira import JiraClient

    async def test_connection():
        async with JiraClient(url, email, token) as client:
            return await client.test_connection()

    user = asyncio.run(test_connection())
    print(f"Connected as: {user.display_name}")

    config.jira = JiraConfig(url=url, email=email, api_token=token)
    store.save_config(config)
    print("Jira configuration saved.")
    return 0


def cmd_jira_search(args: argparse.Namespace) -> int:
    """Search Jira issues with JQL."""
    store, _ = get_stores()
    config = store.get_config()
    jql = args.jql or config.jql_filter

    async def search():
        async with get_client(config) as client:
            return await client.search(jql, max_results=args.max_results)

    issues = asyncio.run(search())
    if not issues:
        print("No issues found.")
        return 0

    for issue in issues:
        status_display = f"[{issue.status or '':12}]"
        print(f"{status_display} {issue.key}: {issue.summary}")
    return 0


def cmd_jira(args: argparse.Namespace) -> int:
    """Handle jira subcommand dispatch."""
    if args.jira_command == "setup":
        return cmd_jira_setup(args)
    elif args.jira_command == "search":
        return cmd_jira_search(args)
    print("Usage: jiratrack jira {setup|search}", file=sys.stderr)
    return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Read and write settings."""
    store, _ = get_stores()

    if args.config_command == "get":
        value = store.get_setting(args.key)
        if value is None:
            print(f"{args.key} is not set.", file=sys.stderr)
            return 1
        print(value)
    elif args.config_command == "set":
        store.set_setting(args.key, args.value)
        print(f"{args.key} = {args.value}")
    elif args.config_command == "list":
        for key, value in sorted(store.get_settings().items()):
            print(f"{key} = {value}")
    else:
        print("Usage: jiratrack config {get|set|list}", file=sys.stderr)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jiratrack",
        description="Local-first Jira time tracker",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Initialize the data directory")

    start_parser = subparsers.add_parser("start", help="Start a timer on an issue")
    start_parser.add_argument("issue_key", help="Issue key (e.g., PROJ-1)")

    subparsers.add_parser("pause", help="Pause the running timer")
    subparsers.add_parser("resume", help="Resume the paused timer")
    subparsers.add_parser("stop", help="Stop the timer and record a worklog")
    subparsers.add_parser("status", help="Show the current timer")
    subparsers.add_parser("watch", help="Show a live timer until Ctrl-C")

    describe_parser = subparsers.add_parser("describe", help="Set the timer description")
    describe_parser.add_argument("text", help="Description text")

    # log
    log_parser = subparsers.add_parser("log", help="Record a worklog by hand")
    log_parser.add_argument("issue_key", help="Issue key (e.g., PROJ-1)")
    log_parser.add_argument("duration", help="Duration (e.g., 90, 45m, 1h30m)")
    log_parser.add_argument("--started", "-s", help="Start time (ISO format)")
    log_parser.add_argument("--description", "-d", help="Worklog description")

    # worklogs
    list_parser = subparsers.add_parser("worklogs", help="List worklogs")
    list_parser.add_argument("--issue", "-i", help="Filter by issue key")
    list_parser.add_argument(
        "--status",
        "-s",
        choices=[s.value for s in SyncStatus],
        help="Filter by sync status",
    )
    list_parser.add_argument("--from", dest="date_from", help="First day (YYYY-MM-DD)")
    list_parser.add_argument("--to", dest="date_to", help="Last day (YYYY-MM-DD)")

    # edit
    edit_parser = subparsers.add_parser("edit", help="Edit a worklog")
    edit_parser.add_argument("worklog_id", type=int, help="Worklog id")
    edit_parser.add_argument("--duration", help="New duration (e.g., 1h30m)")
    edit_parser.add_argument("--description", "-d", help="New description")
    edit_parser.add_argument("--started", "-s", help="New start time (ISO format)")
    edit_parser.add_argument(
        "--sync", action="store_true", help="Apply the edit in Jira first"
    )

    # delete
    delete_parser = subparsers.add_parser("delete", help="Delete a worklog")
    delete_parser.add_argument("worklog_id", type=int, help="Worklog id")
    delete_parser.add_argument(
        "--remote", "-r", action="store_true", help="Delete from Jira too"
    )

    # push
    push_parser = subparsers.add_parser("push", help="Push worklogs to Jira")
    push_parser.add_argument("worklog_ids", type=int, nargs="*", help="Worklog ids")
    push_parser.add_argument(
        "--all", "-a", action="store_true", help="Push all pending worklogs"
    )
    push_parser.add_argument("--date", help="With --all, only this day (YYYY-MM-DD)")

    # import
    import_parser = subparsers.add_parser("import", help="Import worklogs from Jira")
    import_parser.add_argument("date", nargs="?", help="Day to import (default: today)")

    # jira
    jira_parser = subparsers.add_parser("jira", help="Jira integration commands")
    jira_subparsers = jira_parser.add_subparsers(dest="jira_command")

    jira_setup_parser = jira_subparsers.add_parser("setup", help="Configure Jira")
    jira_setup_parser.add_argument("--url", help="Jira instance URL")
    jira_setup_parser.add_argument("--email", help="Your Jira email")
    jira_setup_parser.add_argument("--token", help="API token")

    jira_search_parser = jira_subparsers.add_parser("search", help="Search issues")
    jira_search_parser.add_argument("jql", nargs="?", help="JQL (default: saved filter)")
    jira_search_parser.add_argument(
        "--max-results", "-n", type=int, default=50, help="Maximum issues"
    )

    # config
    config_parser = subparsers.add_parser("config", help="Read and write settings")
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    config_get_parser = config_subparsers.add_parser("get", help="Read a setting")
    config_get_parser.add_argument("key")
    config_set_parser = config_subparsers.add_parser("set", help="Write a setting")
    config_set_parser.add_argument("key")
    config_set_parser.add_argument("value")
    config_subparsers.add_parser("list", help="List all settings")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)

    if args.command is None:
        parser.print_help()
        return 0

    handlers = {
        "init": cmd_init,
        "start": cmd_start,
        "pause": cmd_pause,
        "resume": cmd_resume,
        "stop": cmd_stop,
        "status": cmd_status,
        "watch": cmd_watch,
        "describe": cmd_describe,
        "log": cmd_log,
        "worklogs": cmd_worklogs,
        "edit": cmd_edit,
        "delete": cmd_delete,
        "push": cmd_push,
        "import": cmd_import,
        "jira": cmd_jira,
        "config": cmd_config,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        return handler(args)
    except (TrackerError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
