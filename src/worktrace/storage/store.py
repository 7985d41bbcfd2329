"""JSON file persistence for the tracker document."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

from pydantic import ValidationError

from .locking import FileLock, StoreLock
from .models import TrackerDocument

logger = logging.getLogger(__name__)

DEFAULT_CHECKSUM_SALT = "ggf3-case-study-2024"
CHECKSUM_FIELD = "_checksum"
CHECKSUM_LENGTH = 16


class StoreCorruptionError(ValueError):
    """Raised when the persisted document cannot be trusted."""


def compute_checksum(payload: dict[str, Any], salt: str = DEFAULT_CHECKSUM_SALT) -> str:
    """Return the salted checksum over every field except the checksum itself."""

    content = {key: value for key, value in payload.items() if key != CHECKSUM_FIELD}
    canonical = json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    digest = hashlib.sha256((salt + canonical).encode("utf-8")).hexdigest()
    return digest[:CHECKSUM_LENGTH]


class SessionStore:
    """Load, verify and rewrite the tracker document on disk.

    Every call reads the file again; nothing is cached between calls because
    the tracker runs as many short-lived processes.
    """

    def __init__(
        self,
        path: Path,
        *,
        salt: str = DEFAULT_CHECKSUM_SALT,
        lock: StoreLock | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = Path(path)
        self._salt = salt
        self._lock = lock if lock is not None else FileLock(self._path.with_name(self._path.name + ".lock"))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> TrackerDocument:
        """Return the stored document, replacing it when absent or tampered with."""

        if not self._path.exists():
            logger.info("No session file at %s, initializing", self._path)
            return self._initialize()

        try:
            return self._read()
        except StoreCorruptionError as exc:
            logger.warning("Session file %s rejected (%s), creating new", self._path, exc)
            return self._initialize()

    def peek(self) -> TrackerDocument | None:
        """Return the stored document, or None when absent or rejected.

        Unlike ``load`` this never writes, so read-only callers such as stats
        queries cannot replace the file outside a transaction.
        """

        if not self._path.exists():
            return None
        try:
            return self._read()
        except StoreCorruptionError as exc:
            logger.debug("Session file %s not readable for stats (%s)", self._path, exc)
            return None

    def save(self, document: TrackerDocument) -> bool:
        """Rewrite the whole document. Returns False when the write failed."""

        payload = document.model_dump(mode="json", by_alias=True)
        payload[CHECKSUM_FIELD] = compute_checksum(payload, self._salt)
        text = json.dumps(payload, indent=2, ensure_ascii=False)

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=self._path.name + ".", suffix=".tmp", dir=str(self._path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, self._path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.error("Error saving session file %s: %s", self._path, exc)
            return False
        return True

    @contextmanager
    def transaction(self) -> Iterator[TrackerDocument]:
        """Hold the lock across a fresh load, the caller's mutation and the save."""

        with self._lock:
            document = self.load()
            snapshot = document.model_copy(deep=True)
            yield document
            if document != snapshot:
                self.save(document)

    def _initialize(self) -> TrackerDocument:
        document = TrackerDocument.fresh(self._clock())
        self.save(document)
        return document

    def _read(self) -> TrackerDocument:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreCorruptionError(f"unreadable: {exc}") from exc

        if not isinstance(raw, dict):
            raise StoreCorruptionError("document is not an object")

        checksum = raw.get(CHECKSUM_FIELD)
        if not checksum:
            raise StoreCorruptionError("checksum missing")
        if checksum != compute_checksum(raw, self._salt):
            raise StoreCorruptionError("checksum mismatch")

        payload = {key: value for key, value in raw.items() if key != CHECKSUM_FIELD}
        try:
            return TrackerDocument.model_validate(payload)
        except ValidationError as exc:
            raise StoreCorruptionError(f"invalid document: {exc.error_count()} errors") from exc


__all__ = ["SessionStore", "StoreCorruptionError", "compute_checksum", "DEFAULT_CHECKSUM_SALT"]
