"""Views derived from the commit history."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from ..storage.models import TrackerModel


class GitCommit(TrackerModel):
    hash: str
    full_hash: str
    timestamp: datetime
    message: str


class CommitStats(GitCommit):
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0


class CommitGap(TrackerModel):
    from_hash: str = Field(alias="from")
    to_hash: str = Field(alias="to")
    gap_minutes: int


class CommitGapAnalysis(TrackerModel):
    gaps: list[CommitGap] = Field(default_factory=list)
    avg_gap_minutes: int = 0


class EstimatedSession(TrackerModel):
    """A run of commits with no gap above the split threshold."""

    start: datetime
    end: datetime
    commits: int
    span_minutes: int
    duration_minutes: int


class WorkEstimate(TrackerModel):
    total_minutes: int = 0
    sessions: list[EstimatedSession] = Field(default_factory=list)


class GitSummary(TrackerModel):
    is_git_repo: bool = False
    total_commits: int = 0
    first_commit: GitCommit | None = None
    last_commit: GitCommit | None = None
    files_changed: int = 0
    estimated_work_minutes: int = 0
    estimated_sessions: int = 0


__all__ = [
    "CommitGap",
    "CommitGapAnalysis",
    "CommitStats",
    "EstimatedSession",
    "GitCommit",
    "GitSummary",
    "WorkEstimate",
]
