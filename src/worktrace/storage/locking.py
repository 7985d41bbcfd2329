"""Lock strategies guarding the store's read-modify-write cycle.

Tracker invocations are separate processes (watcher, git hooks, manual
commands) that share nothing but the session file. ``FileLock`` serializes
their load/mutate/save cycles with an advisory lock on a sibling file;
``NullLock`` keeps the unguarded last-writer-wins behaviour.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import IO, Any, Protocol

logger = logging.getLogger(__name__)


class StoreLock(Protocol):
    """Context manager held for the duration of one store transaction."""

    def __enter__(self) -> Any:
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        ...


class NullLock:
    """No-op lock."""

    def __enter__(self) -> "NullLock":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        return None


class FileLock:
    """Exclusive advisory lock on ``path``.

    Uses fcntl.flock() on POSIX systems and msvcrt.locking() on Windows. If the
    lock file cannot be opened the transaction proceeds unlocked.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._handle: IO[Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> "FileLock":
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self._path, "a+")
        except OSError as exc:
            logger.warning("Cannot open lock file %s, continuing unlocked: %s", self._path, exc)
            return self

        try:
            _acquire(handle)
        except OSError as exc:
            logger.warning("Cannot acquire lock on %s, continuing unlocked: %s", self._path, exc)
            handle.close()
            return self

        self._handle = handle
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            _release(handle)
        except OSError as exc:  # pragma: no cover - platform specific
            logger.debug("Failed to release lock on %s: %s", self._path, exc)
        finally:
            handle.close()


def _acquire(handle: IO[Any]) -> None:
    if sys.platform == "win32":
        import msvcrt

        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)  # type: ignore[attr-defined]
    else:
        import fcntl

        fcntl.flock(handle, fcntl.LOCK_EX)


def _release(handle: IO[Any]) -> None:
    if sys.platform == "win32":
        import msvcrt

        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
    else:
        import fcntl

        fcntl.flock(handle, fcntl.LOCK_UN)


__all__ = ["FileLock", "NullLock", "StoreLock"]
