"""JSON work report combining live tracking with the commit-history estimate."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from .git import GitIntegration
from .session import SessionManager
from .timing import utc_now

if TYPE_CHECKING:
    from .config import TrackerSettings

logger = logging.getLogger(__name__)

REPORT_FILE = "tracker-report.json"
REPORT_COMMIT_LIMIT = 20


class ReportGenerator:
    """Build and write ``tracker-report.json``."""

    def __init__(
        self,
        base_path: Path,
        *,
        session_manager: SessionManager,
        git: GitIntegration,
        report_path: Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.base_path = Path(base_path)
        self.session_manager = session_manager
        self.git = git
        self.report_path = Path(report_path) if report_path else self.base_path / REPORT_FILE
        self._clock = clock or utc_now

    @classmethod
    def from_settings(
        cls,
        settings: "TrackerSettings",
        *,
        session_manager: SessionManager | None = None,
    ) -> "ReportGenerator":
        return cls(
            settings.base_path,
            session_manager=session_manager or SessionManager.from_settings(settings),
            git=GitIntegration.from_settings(settings),
            report_path=settings.report_path,
        )

    def build_report(self, now: datetime | None = None) -> dict[str, Any]:
        """Assemble the report. A single ``now`` is used for every live figure."""

        now = now or self._clock()
        stats = self.session_manager.get_stats(now)
        data = self.session_manager.get_data()
        git_summary = self.git.get_summary()
        git_commits = self.git.get_recent_commits()

        summary = stats.model_dump(mode="json", by_alias=True)
        summary["git"] = git_summary.model_dump(mode="json", by_alias=True)

        return {
            "generated": now.isoformat(),
            "summary": summary,
            "sessions": [session.model_dump(mode="json", by_alias=True) for session in data.sessions],
            "commits": [
                commit.model_dump(mode="json", by_alias=True)
                for commit in git_commits[:REPORT_COMMIT_LIMIT]
            ],
            "timeline": data.timeline.model_dump(mode="json", by_alias=True),
            "candidate": data.candidate.model_dump(mode="json", by_alias=True),
        }

    def save(self, report: dict[str, Any]) -> Path:
        try:
            self.report_path.parent.mkdir(parents=True, exist_ok=True)
            self.report_path.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            logger.error("Error saving report %s: %s", self.report_path, exc)
            raise
        logger.info("JSON report saved: %s", self.report_path)
        return self.report_path

    def generate(self, now: datetime | None = None) -> dict[str, Any]:
        """Build the report and write it next to the session file."""

        logger.info("Generating activity report")
        report = self.build_report(now)
        self.save(report)
        return report


__all__ = ["REPORT_COMMIT_LIMIT", "REPORT_FILE", "ReportGenerator"]
