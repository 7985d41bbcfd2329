"""Git history access and the commit-based work estimate."""

from .integration import GitIntegration, analyze_gaps, estimate_sessions, parse_log, parse_stat_summary
from .models import (
    CommitGap,
    CommitGapAnalysis,
    CommitStats,
    EstimatedSession,
    GitCommit,
    GitSummary,
    WorkEstimate,
)
from .runner import FakeGitRunner, GitExecutionResult, GitNotFoundError, GitRunner, GitRunnerError

__all__ = [
    "CommitGap",
    "CommitGapAnalysis",
    "CommitStats",
    "EstimatedSession",
    "FakeGitRunner",
    "GitCommit",
    "GitExecutionResult",
    "GitIntegration",
    "GitNotFoundError",
    "GitRunner",
    "GitRunnerError",
    "GitSummary",
    "WorkEstimate",
    "analyze_gaps",
    "estimate_sessions",
    "parse_log",
    "parse_stat_summary",
]
