"""Work session bookkeeping on top of the persisted tracker document."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable

from ..storage import (
    CommitRecord,
    NullLock,
    Session,
    SessionStore,
    Timeline,
    TrackerDocument,
)
from ..storage.models import TrackerModel
from ..timing import format_duration, minutes_between, utc_now
from .activity import Activity, Checkout, Committed, FileChanged, ManualNote, describe

if TYPE_CHECKING:
    from ..config import TrackerSettings

logger = logging.getLogger(__name__)

INACTIVITY_THRESHOLD = timedelta(minutes=15)


class SessionStats(TrackerModel):
    """Aggregate figures for status output and reports."""

    sessions: int
    commits: int
    files_modified: int
    active_time: str
    active_minutes: int
    elapsed_time: str
    elapsed_minutes: int
    timeline: Timeline


class SessionManager:
    """Record activity and derive work sessions from it.

    A session stays open while activity keeps arriving; a gap longer than the
    inactivity threshold closes it at its last activity and opens a new one.
    Each mutation runs inside a store transaction so the document on disk is
    reloaded before and rewritten after every change.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        inactivity_threshold: timedelta = INACTIVITY_THRESHOLD,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._inactivity_threshold = inactivity_threshold
        self._clock = clock or utc_now
        self._document: TrackerDocument | None = None
        self.load()

    @classmethod
    def from_settings(cls, settings: "TrackerSettings") -> "SessionManager":
        store = SessionStore(
            settings.session_path,
            salt=settings.checksum_salt,
            lock=None if settings.use_file_lock else NullLock(),
        )
        return cls(store, inactivity_threshold=timedelta(minutes=settings.inactivity_threshold_minutes))

    @property
    def document(self) -> TrackerDocument:
        if self._document is None:
            return self.load()
        return self._document

    @property
    def current_session(self) -> Session | None:
        return self.document.open_session()

    def load(self) -> TrackerDocument:
        self._document = self._store.load()
        return self._document

    def refresh(self) -> TrackerDocument:
        """Re-read the stored document without creating or repairing it.

        Keeps the last known document when the file is missing or rejected.
        """

        stored = self._store.peek()
        if stored is not None:
            self._document = stored
        return self.document

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def record_activity(self, activity: Activity | None = None) -> None:
        """Record one unit of activity and update the session boundaries."""

        now = self._clock()
        with self._store.transaction() as document:
            self._apply(document, activity, now)
            self._document = document
        logger.debug("Recorded %s", describe(activity))

    def record_commit(self, commit_hash: str, message: str) -> None:
        self.record_activity(Committed(hash=commit_hash, message=message))

    def end_current_session(self, end_time: datetime | None = None) -> None:
        """Close the open session, if any, at ``end_time`` or now."""

        end = end_time or self._clock()
        with self._store.transaction() as document:
            current = document.open_session()
            if current is not None:
                self._close(current, end)
            self._document = document

    def mark_submitted(self) -> None:
        now = self._clock()
        with self._store.transaction() as document:
            document.timeline.submitted = now
            current = document.open_session()
            if current is not None:
                self._close(current, now)
            self._document = document
        logger.info("Submission recorded")

    def _apply(self, document: TrackerDocument, activity: Activity | None, now: datetime) -> None:
        timeline = document.timeline
        if timeline.first_activity is None:
            timeline.first_activity = now
        timeline.last_activity = now

        if isinstance(activity, FileChanged):
            document.add_file(activity.path)
        elif isinstance(activity, Committed):
            if activity.hash:
                document.commits.append(CommitRecord.create(activity.hash, activity.message, now))
        elif isinstance(activity, ManualNote):
            logger.info("Manual activity: %s", activity.text)
        elif isinstance(activity, Checkout) or activity is None:
            pass
        else:
            raise TypeError(f"Unsupported activity: {activity!r}")

        current = document.open_session()
        if current is None:
            self._open(document, now)
            return

        if now - current.last_activity > self._inactivity_threshold:
            # The session ended when activity stopped, not when the gap was noticed.
            self._close(current, current.last_activity)
            self._open(document, now)
        else:
            current.last_activity = now
            current.event_count += 1

    def _open(self, document: TrackerDocument, now: datetime) -> Session:
        session = Session(id=document.next_session_id(), started_at=now, last_activity=now)
        document.sessions.append(session)
        logger.info("Session %d started", session.id)
        return session

    def _close(self, session: Session, end: datetime) -> None:
        session.ended_at = end
        session.duration_minutes = minutes_between(session.started_at, end)
        logger.info("Session %d ended (%d min)", session.id, session.duration_minutes)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_total_active_minutes(self, now: datetime | None = None) -> int:
        now = now or self._clock()
        total = 0
        for session in self.document.sessions:
            if session.ended_at is not None:
                total += session.duration_minutes
            else:
                total += minutes_between(session.started_at, now)
        return total

    def get_total_elapsed_minutes(self) -> int:
        timeline = self.document.timeline
        if timeline.first_activity is None or timeline.last_activity is None:
            return 0
        return minutes_between(timeline.first_activity, timeline.last_activity)

    def get_stats(self, now: datetime | None = None) -> SessionStats:
        """Summarize the stored timeline. Pass ``now`` to pin live session time."""

        document = self.refresh()
        active = self.get_total_active_minutes(now)
        elapsed = self.get_total_elapsed_minutes()
        return SessionStats(
            sessions=len(document.sessions),
            commits=len(document.commits),
            files_modified=len(document.files_modified),
            active_time=format_duration(active),
            active_minutes=active,
            elapsed_time=format_duration(elapsed),
            elapsed_minutes=elapsed,
            timeline=document.timeline.model_copy(),
        )

    def get_data(self) -> TrackerDocument:
        """Return a detached copy of the stored document."""

        return self.refresh().model_copy(deep=True)


__all__ = ["INACTIVITY_THRESHOLD", "SessionManager", "SessionStats", "format_duration", "minutes_between"]
