"""Data models for the persisted tracker document."""

from __future__ import annotations

import hashlib
import os
import platform
import sys
import uuid
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DOCUMENT_VERSION = "1.0"
COMMIT_HASH_LENGTH = 7
COMMIT_MESSAGE_LIMIT = 100
LOCALTIME_PATH = Path("/etc/localtime")


class TrackerModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CandidateIdentity(TrackerModel):
    """Identifies the candidate and machine the record was created on."""

    id: str
    machine_id: str
    timezone: str

    @classmethod
    def generate(cls) -> "CandidateIdentity":
        return cls(id=str(uuid.uuid4()), machine_id=machine_fingerprint(), timezone=local_timezone())


class Timeline(TrackerModel):
    repo_cloned: datetime
    first_activity: datetime | None = None
    last_activity: datetime | None = None
    submitted: datetime | None = None


class Session(TrackerModel):
    """A contiguous span of activity bounded by inactivity on both sides."""

    id: int
    started_at: datetime
    last_activity: datetime
    ended_at: datetime | None = None
    duration_minutes: int = 0
    event_count: int = 1

    @property
    def is_open(self) -> bool:
        return self.ended_at is None


class CommitRecord(TrackerModel):
    hash: str
    message: str
    timestamp: datetime

    @classmethod
    def create(cls, commit_hash: str, message: str, timestamp: datetime) -> "CommitRecord":
        return cls(
            hash=commit_hash[:COMMIT_HASH_LENGTH],
            message=message[:COMMIT_MESSAGE_LIMIT],
            timestamp=timestamp,
        )


class TrackerDocument(TrackerModel):
    """Everything the tracker knows, minus the integrity checksum."""

    version: str = Field(default=DOCUMENT_VERSION, alias="_version")
    created_at: datetime = Field(alias="_createdAt")
    candidate: CandidateIdentity
    timeline: Timeline
    sessions: list[Session] = Field(default_factory=list)
    commits: list[CommitRecord] = Field(default_factory=list)
    files_modified: list[str] = Field(default_factory=list)

    @classmethod
    def fresh(cls, now: datetime) -> "TrackerDocument":
        return cls(
            created_at=now,
            candidate=CandidateIdentity.generate(),
            timeline=Timeline(repo_cloned=now),
        )

    def open_session(self) -> Session | None:
        """Return the session that has not been closed yet, if any."""

        for session in reversed(self.sessions):
            if session.is_open:
                return session
        return None

    def next_session_id(self) -> int:
        return (self.sessions[-1].id if self.sessions else 0) + 1

    def add_file(self, path: str) -> None:
        if path not in self.files_modified:
            self.files_modified.append(path)


def machine_fingerprint() -> str:
    """Return a short hash identifying the host without exposing its name."""

    raw = f"{platform.node()}-{sys.platform}-{platform.machine()}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def local_timezone(localtime: Path = LOCALTIME_PATH) -> str:
    """Return the IANA zone name (e.g. ``Europe/Istanbul``) when it can be found.

    Checks ``TZ`` and then the ``/etc/localtime`` symlink, and falls back to
    the abbreviation reported by the C library.
    """

    configured = os.environ.get("TZ", "").lstrip(":").strip()
    if configured and _is_zone_key(configured):
        return configured

    try:
        target = os.path.realpath(localtime) if Path(localtime).is_symlink() else ""
    except OSError:
        target = ""
    marker = "/zoneinfo/"
    if marker in target:
        key = target.split(marker, 1)[1]
        if _is_zone_key(key):
            return key

    return datetime.now().astimezone().tzname() or "UTC"


def _is_zone_key(key: str) -> bool:
    try:
        ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


__all__ = [
    "CandidateIdentity",
    "CommitRecord",
    "DOCUMENT_VERSION",
    "Session",
    "Timeline",
    "TrackerDocument",
    "TrackerModel",
]
