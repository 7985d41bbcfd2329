"""Configuration management for worktrace."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .git.runner import GitNotFoundError, GitRunner

logger = logging.getLogger(__name__)


class TrackerSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    base_path: Path | None = Field(default=None, validation_alias="TRACKER_BASE_PATH")
    watch_path: Path | None = Field(default=None, validation_alias="TRACKER_WATCH_PATH")
    session_file: str = Field(
        default=".tracker-session.json", validation_alias="TRACKER_SESSION_FILE"
    )
    report_file: str = Field(default="tracker-report.json", validation_alias="TRACKER_REPORT_FILE")
    rules_path: Path | None = Field(default=None, validation_alias="TRACKER_RULES_PATH")
    log_level: str = Field(default="INFO", validation_alias="TRACKER_LOG_LEVEL")
    inactivity_threshold_minutes: int = Field(
        default=15, validation_alias="TRACKER_INACTIVITY_MINUTES"
    )
    debounce_seconds: float = Field(default=1.0, validation_alias="TRACKER_DEBOUNCE_SECONDS")
    heartbeat_seconds: float = Field(default=60.0, validation_alias="TRACKER_HEARTBEAT_SECONDS")
    git_commit_limit: int = Field(default=50, validation_alias="TRACKER_GIT_COMMIT_LIMIT")
    git_session_gap_minutes: int = Field(
        default=30, validation_alias="TRACKER_GIT_SESSION_GAP_MINUTES"
    )
    git_minutes_per_commit: int = Field(
        default=5, validation_alias="TRACKER_GIT_MINUTES_PER_COMMIT"
    )
    checksum_salt: str = Field(
        default="ggf3-case-study-2024", validation_alias="TRACKER_CHECKSUM_SALT"
    )
    use_file_lock: bool = Field(default=True, validation_alias="TRACKER_FILE_LOCK")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "TRACKER_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("base_path", "watch_path", "rules_path", mode="before")
    @classmethod
    def _empty_path_is_none(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value

    @field_validator(
        "inactivity_threshold_minutes",
        "git_commit_limit",
        "git_session_gap_minutes",
        "git_minutes_per_commit",
    )
    @classmethod
    def _validate_positive_int(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be >= 1")
        return value

    @field_validator("debounce_seconds", "heartbeat_seconds")
    @classmethod
    def _validate_positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("interval must be > 0")
        return value

    @model_validator(mode="after")
    def _resolve_paths(self) -> "TrackerSettings":
        if self.base_path is None:
            self.base_path = discover_repo_root(Path.cwd())
        else:
            self.base_path = self.base_path.expanduser().resolve()
        if self.watch_path is None:
            self.watch_path = self.base_path / "solution"
        else:
            self.watch_path = self.watch_path.expanduser().resolve()
        if self.rules_path is not None:
            self.rules_path = self.rules_path.expanduser().resolve()
        return self

    @property
    def session_path(self) -> Path:
        return self.base_path / self.session_file

    @property
    def report_path(self) -> Path:
        return self.base_path / self.report_file


def discover_repo_root(start: Path) -> Path:
    """Return the top level of the git checkout containing ``start``.

    Hooks and commands run from any subdirectory must agree on one session
    file, so the checkout root is the anchor. Falls back to ``start`` when git
    is unavailable or ``start`` is not inside a repository.
    """

    start = Path(start).expanduser().resolve()
    try:
        runner = GitRunner(start, timeout=10)
    except GitNotFoundError as exc:
        logger.debug("Using %s as base path: %s", start, exc)
        return start

    result = runner.run("rev-parse", "--show-toplevel")
    toplevel = result.stdout.strip()
    if not result.ok or not toplevel:
        logger.debug("Using %s as base path: not inside a git checkout", start)
        return start
    return Path(toplevel).resolve()


@lru_cache(maxsize=1)
def get_settings() -> TrackerSettings:
    """Return cached settings instance."""

    return TrackerSettings()


__all__ = ["TrackerSettings", "discover_repo_root", "get_settings"]
