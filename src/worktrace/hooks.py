"""Git hook entry points.

Hooks run inside the candidate's git workflow. Whatever happens in the
tracker, they report success so the commit or push goes ahead.
"""

from __future__ import annotations

import logging
from typing import Callable

from .config import TrackerSettings, get_settings
from .report import ReportGenerator
from .session import Checkout, Committed, SessionManager

logger = logging.getLogger(__name__)


def post_checkout(settings: TrackerSettings) -> None:
    SessionManager.from_settings(settings).record_activity(Checkout())
    logger.info("post-checkout: activity recorded")


def pre_commit(settings: TrackerSettings) -> None:
    SessionManager.from_settings(settings).record_activity(Committed())
    logger.info("pre-commit: activity recorded")


def pre_push(settings: TrackerSettings) -> None:
    manager = SessionManager.from_settings(settings)
    manager.mark_submitted()
    ReportGenerator.from_settings(settings, session_manager=manager).generate()
    logger.info("pre-push: submission report generated at %s", settings.report_path)


HOOKS: dict[str, Callable[[TrackerSettings], None]] = {
    "post-checkout": post_checkout,
    "pre-commit": pre_commit,
    "pre-push": pre_push,
}


def run_hook(name: str, settings: TrackerSettings | None = None) -> int:
    """Run a hook by name and return the exit status for git, which is always 0."""

    hook = HOOKS.get(name)
    if hook is None:
        logger.warning("Unknown hook %r; allowing git to continue", name)
        return 0

    try:
        hook(settings or get_settings())
    except Exception:
        logger.error("Hook %s failed; allowing git to continue", name, exc_info=True)
    return 0


__all__ = ["HOOKS", "post_checkout", "pre_commit", "pre_push", "run_hook"]
