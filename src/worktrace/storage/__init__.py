"""Storage abstractions for worktrace."""

from .locking import FileLock, NullLock, StoreLock
from .models import CandidateIdentity, CommitRecord, Session, Timeline, TrackerDocument
from .store import DEFAULT_CHECKSUM_SALT, SessionStore, StoreCorruptionError, compute_checksum

__all__ = [
    "CandidateIdentity",
    "CommitRecord",
    "DEFAULT_CHECKSUM_SALT",
    "FileLock",
    "NullLock",
    "Session",
    "SessionStore",
    "StoreCorruptionError",
    "StoreLock",
    "Timeline",
    "TrackerDocument",
    "compute_checksum",
]
