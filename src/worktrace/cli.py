"""worktrace command line interface."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys

from . import __version__
from .config import TrackerSettings
from .hooks import HOOKS, run_hook
from .report import ReportGenerator
from .session import ManualNote, SessionManager
from .watcher import ActivityWatcher, load_rules

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the tracker."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def load_manager(settings: TrackerSettings) -> SessionManager:
    return SessionManager.from_settings(settings)


async def run_tracker(settings: TrackerSettings, stop_event: asyncio.Event) -> None:
    """Watch ``settings.watch_path`` until ``stop_event`` is set."""

    manager = load_manager(settings)
    watcher = ActivityWatcher(
        settings.watch_path,
        manager,
        rules=load_rules(settings.rules_path),
        debounce_seconds=settings.debounce_seconds,
        heartbeat_seconds=settings.heartbeat_seconds,
    )

    await watcher.start()
    manager.record_activity(ManualNote("tracker started"))
    logger.info("Tracking started for %s", settings.watch_path)
    try:
        await stop_event.wait()
    finally:
        watcher.stop()
        manager.end_current_session()
        logger.info("Tracker stopped")


def cmd_start(args: argparse.Namespace, settings: TrackerSettings) -> int:
    async def _main() -> None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no signal handlers; Ctrl+C raises instead
                pass
        await run_tracker(settings, stop_event)

    print(f"Tracking {settings.watch_path} (base {settings.base_path}). Press Ctrl+C to stop.")
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass
    return 0


def cmd_stop(args: argparse.Namespace, settings: TrackerSettings) -> int:
    load_manager(settings).end_current_session()
    print("Tracker stopped.")
    return 0


def cmd_stats(args: argparse.Namespace, settings: TrackerSettings) -> int:
    stats = load_manager(settings).get_stats()
    print(json.dumps(stats.model_dump(mode="json", by_alias=True), indent=2))
    return 0


def cmd_report(args: argparse.Namespace, settings: TrackerSettings) -> int:
    report = ReportGenerator.from_settings(settings).generate()
    print(json.dumps(report["summary"], indent=2))
    print(f"Report saved: {settings.report_path}")
    return 0


def cmd_record(args: argparse.Namespace, settings: TrackerSettings) -> int:
    load_manager(settings).record_activity(ManualNote(args.label))
    print(f"Activity recorded: {args.label}")
    return 0


def cmd_commit(args: argparse.Namespace, settings: TrackerSettings) -> int:
    load_manager(settings).record_commit(args.hash, args.message)
    print(f"Commit recorded: {args.hash[:7]}")
    return 0


def cmd_submit(args: argparse.Namespace, settings: TrackerSettings) -> int:
    manager = load_manager(settings)
    manager.mark_submitted()
    ReportGenerator.from_settings(settings, session_manager=manager).generate()
    print(f"Submission recorded. Report saved: {settings.report_path}")
    return 0


def cmd_hook(args: argparse.Namespace, settings: TrackerSettings) -> int:
    return run_hook(args.name, settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="worktrace",
        description="Track time spent on a take-home exercise",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd")

    p_start = sub.add_parser("start", help="Watch the solution directory until interrupted")
    p_start.set_defaults(func=cmd_start)

    p_stop = sub.add_parser("stop", help="Close the open session")
    p_stop.set_defaults(func=cmd_stop)

    p_stats = sub.add_parser("stats", help="Show session statistics as JSON")
    p_stats.set_defaults(func=cmd_stats)

    p_report = sub.add_parser("report", help="Write tracker-report.json")
    p_report.set_defaults(func=cmd_report)

    p_record = sub.add_parser("record", help="Record manual activity")
    p_record.add_argument("label", nargs="?", default="manual")
    p_record.set_defaults(func=cmd_record)

    p_commit = sub.add_parser("commit", help="Record a git commit")
    p_commit.add_argument("hash", nargs="?", default="unknown")
    p_commit.add_argument("message", nargs="?", default="no message")
    p_commit.set_defaults(func=cmd_commit)

    p_submit = sub.add_parser("submit", help="Mark as submitted and write the report")
    p_submit.set_defaults(func=cmd_submit)

    p_hook = sub.add_parser("hook", help="Run a git hook (always exits 0)")
    p_hook.add_argument("name", choices=sorted(HOOKS))
    p_hook.set_defaults(func=cmd_hook)

    sub.add_parser("help", help="Show this help")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        settings = TrackerSettings()
    except ValueError as exc:
        print(f"Tracker configuration invalid: {exc}", file=sys.stderr)
        if args.cmd == "hook":
            # Configuration errors must not block the git operation either
            return
        raise SystemExit(2)

    configure_logging(settings.log_level)
    exit_code = args.func(args, settings)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
