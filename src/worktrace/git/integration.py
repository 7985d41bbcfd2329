"""Retrospective work-time estimate from commit history.

This view is independent of the live file watcher: it only looks at commit
timestamps, so it can corroborate (or stand in for) tracked time when the
watcher was not running.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from ..timing import minutes_between
from .models import (
    CommitGap,
    CommitGapAnalysis,
    CommitStats,
    EstimatedSession,
    GitCommit,
    GitSummary,
    WorkEstimate,
)
from .runner import GitNotFoundError, GitRunner

if TYPE_CHECKING:
    from ..config import TrackerSettings

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_LIMIT = 50
SESSION_GAP = timedelta(minutes=30)
MINUTES_PER_COMMIT = 5

LOG_FORMAT = "--format=%H|%aI|%s"

_FILES_RE = re.compile(r"(\d+) files? changed")
_INSERTIONS_RE = re.compile(r"(\d+) insertions?\(\+\)")
_DELETIONS_RE = re.compile(r"(\d+) deletions?\(-\)")


def parse_log(output: str) -> list[GitCommit]:
    """Parse ``hash|author-date|subject`` lines, skipping malformed ones."""

    commits: list[GitCommit] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("|", 2)
        if len(parts) < 2:
            continue
        full_hash, timestamp = parts[0].strip(), parts[1].strip()
        try:
            when = datetime.fromisoformat(timestamp)
        except ValueError:
            logger.debug("Skipping log line with bad timestamp: %s", line)
            continue
        commits.append(
            GitCommit(
                hash=full_hash[:7],
                full_hash=full_hash,
                timestamp=when,
                message=parts[2] if len(parts) > 2 else "",
            )
        )
    return commits


def parse_stat_summary(output: str) -> tuple[int, int, int]:
    """Return (files, insertions, deletions) from ``git show --stat`` output."""

    lines = [line for line in output.splitlines() if line.strip()]
    summary = lines[-1] if lines else ""
    counts = []
    for pattern in (_FILES_RE, _INSERTIONS_RE, _DELETIONS_RE):
        match = pattern.search(summary)
        counts.append(int(match.group(1)) if match else 0)
    return counts[0], counts[1], counts[2]


def analyze_gaps(commits: Sequence[GitCommit]) -> CommitGapAnalysis:
    """Gaps between consecutive commits, given newest first."""

    if len(commits) < 2:
        return CommitGapAnalysis()

    gaps = [
        CommitGap(
            from_hash=older.hash,
            to_hash=newer.hash,
            gap_minutes=minutes_between(older.timestamp, newer.timestamp),
        )
        for newer, older in zip(commits, commits[1:])
    ]
    average = sum(gap.gap_minutes for gap in gaps) / len(gaps)
    return CommitGapAnalysis(gaps=gaps, avg_gap_minutes=int(average + 0.5))


def estimate_sessions(
    commits: Sequence[GitCommit],
    *,
    session_gap: timedelta = SESSION_GAP,
    minutes_per_commit: int = MINUTES_PER_COMMIT,
) -> WorkEstimate:
    """Split commits (newest first) into work sessions.

    Each session counts at least ``minutes_per_commit`` per commit, on the
    assumption that every commit stands for some unobserved work.
    """

    if not commits:
        return WorkEstimate()

    ordered = list(reversed(commits))
    sessions: list[EstimatedSession] = []

    def close(start: datetime, end: datetime, count: int) -> None:
        span = minutes_between(start, end)
        sessions.append(
            EstimatedSession(
                start=start,
                end=end,
                commits=count,
                span_minutes=span,
                duration_minutes=max(span, count * minutes_per_commit),
            )
        )

    start = end = ordered[0].timestamp
    count = 1
    for commit in ordered[1:]:
        if commit.timestamp - end > session_gap:
            close(start, end, count)
            start = end = commit.timestamp
            count = 1
        else:
            end = commit.timestamp
            count += 1
    close(start, end, count)

    return WorkEstimate(
        total_minutes=sum(session.duration_minutes for session in sessions),
        sessions=sessions,
    )


class GitIntegration:
    """Read-only queries against the repository's history.

    Nothing here raises to the caller: a missing git binary, a directory that
    is not a repository, or an empty history all produce empty results.
    """

    def __init__(
        self,
        repo_path: Path,
        *,
        runner: GitRunner | None = None,
        commit_limit: int = DEFAULT_COMMIT_LIMIT,
        session_gap: timedelta = SESSION_GAP,
        minutes_per_commit: int = MINUTES_PER_COMMIT,
    ) -> None:
        self.repo_path = Path(repo_path)
        self._commit_limit = commit_limit
        self._session_gap = session_gap
        self._minutes_per_commit = minutes_per_commit

        if runner is None:
            try:
                runner = GitRunner(self.repo_path)
            except GitNotFoundError as exc:
                logger.warning("Git history unavailable: %s", exc)
        self._runner = runner

    @classmethod
    def from_settings(cls, settings: "TrackerSettings") -> "GitIntegration":
        return cls(
            settings.base_path,
            commit_limit=settings.git_commit_limit,
            session_gap=timedelta(minutes=settings.git_session_gap_minutes),
            minutes_per_commit=settings.git_minutes_per_commit,
        )

    def _run(self, *args: str) -> str | None:
        if self._runner is None:
            return None
        result = self._runner.run(*args)
        if not result.ok:
            logger.debug("git %s failed (%s): %s", " ".join(args), result.returncode, result.stderr.strip())
            return None
        return result.stdout

    # ------------------------------------------------------------------
    # Commit queries
    # ------------------------------------------------------------------

    def is_git_repo(self) -> bool:
        return self._run("rev-parse", "--git-dir") is not None

    def get_recent_commits(self, count: int | None = None) -> list[GitCommit]:
        limit = count or self._commit_limit
        output = self._run("log", f"-{limit}", LOG_FORMAT, "--no-merges")
        if not output:
            return []
        return parse_log(output)

    def get_first_commit_time(self) -> datetime | None:
        output = self._run("log", "--reverse", "--format=%aI")
        return _first_timestamp(output)

    def get_last_commit_time(self) -> datetime | None:
        output = self._run("log", "-1", "--format=%aI")
        return _first_timestamp(output)

    def get_last_commit_hash(self) -> str | None:
        output = self._run("rev-parse", "HEAD")
        if not output or not output.strip():
            return None
        return output.strip()[:7]

    def get_all_changed_files(self) -> list[str]:
        output = self._run("log", "--name-only", "--format=", "--no-merges")
        if not output:
            return []
        files: dict[str, None] = {}
        for line in output.splitlines():
            name = line.strip()
            if name:
                files.setdefault(name, None)
        return list(files)

    def get_commit_stats(self) -> list[CommitStats]:
        stats: list[CommitStats] = []
        for commit in self.get_recent_commits():
            output = self._run("show", "--stat", "--format=", commit.full_hash)
            files, insertions, deletions = parse_stat_summary(output or "")
            stats.append(
                CommitStats(
                    **commit.model_dump(),
                    files_changed=files,
                    insertions=insertions,
                    deletions=deletions,
                )
            )
        return stats

    # ------------------------------------------------------------------
    # Time analysis
    # ------------------------------------------------------------------

    def analyze_commit_gaps(self) -> CommitGapAnalysis:
        return analyze_gaps(self.get_recent_commits())

    def estimate_work_time(self) -> WorkEstimate:
        return estimate_sessions(
            self.get_recent_commits(),
            session_gap=self._session_gap,
            minutes_per_commit=self._minutes_per_commit,
        )

    def get_summary(self) -> GitSummary:
        commits = self.get_recent_commits()
        estimate = estimate_sessions(
            commits,
            session_gap=self._session_gap,
            minutes_per_commit=self._minutes_per_commit,
        )
        return GitSummary(
            is_git_repo=self.is_git_repo(),
            total_commits=len(commits),
            first_commit=commits[-1] if commits else None,
            last_commit=commits[0] if commits else None,
            files_changed=len(self.get_all_changed_files()),
            estimated_work_minutes=estimate.total_minutes,
            estimated_sessions=len(estimate.sessions),
        )


def _first_timestamp(output: str | None) -> datetime | None:
    if not output:
        return None
    for line in output.splitlines():
        if line.strip():
            try:
                return datetime.fromisoformat(line.strip())
            except ValueError:
                return None
    return None


__all__ = [
    "GitIntegration",
    "analyze_gaps",
    "estimate_sessions",
    "parse_log",
    "parse_stat_summary",
]
