"""File watcher feeding debounced edit activity into the session manager.

Raw filesystem events arrive on the watchdog observer thread and are handed
to the asyncio loop, where per-path debounce timers and the heartbeat run.
Recording takes the store lock, so it runs on a single worker thread and a
slow lock holder never stalls the loop.
"""

from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..session import FileChanged
from ..session.activity import Activity
from .rules import WatchRules

logger = logging.getLogger(__name__)

# Quiet period before a burst of saves on one path is recorded
DEBOUNCE_SECONDS = 1.0

HEARTBEAT_SECONDS = 60.0

TRACKED_EVENT_TYPES = frozenset({"created", "modified", "deleted", "moved"})


class ActivitySink(Protocol):
    """The part of the session manager the watcher talks to."""

    def record_activity(self, activity: Activity | None = None) -> None:
        ...

    def get_stats(self, now: datetime | None = None) -> Any:
        ...


@dataclass(frozen=True, slots=True)
class WatcherNotification:
    """Emitted to listeners when the watcher starts, records a change, or stops."""

    kind: str
    path: Path | None = None
    relative_path: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class _ForwardingHandler(FileSystemEventHandler):
    """Hands observer-thread events over to the watcher's event loop."""

    def __init__(self, watcher: "ActivityWatcher", loop: asyncio.AbstractEventLoop) -> None:
        self._watcher = watcher
        self._loop = loop

    def on_any_event(self, event: FileSystemEvent) -> None:
        src = Path(os.fsdecode(event.src_path))
        dest = Path(os.fsdecode(event.dest_path)) if getattr(event, "dest_path", "") else None

        if event.is_directory:
            if event.event_type == "created":
                self._forward(self._watcher._on_directory_created, src)
            elif event.event_type == "deleted":
                self._forward(self._watcher._on_directory_deleted, src)
            elif event.event_type == "moved" and dest is not None:
                self._forward(self._watcher._on_directory_deleted, src)
                self._forward(self._watcher._on_directory_created, dest)
            return

        if event.event_type not in TRACKED_EVENT_TYPES:
            return
        target = dest if event.event_type == "moved" and dest is not None else src
        self._forward(self._watcher.handle_event, event.event_type, target)

    def _forward(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            logger.debug("Event loop closed, dropping filesystem event for %s", args[-1])


class ActivityWatcher:
    """Watch a directory tree and record debounced file edits.

    Every non-ignored directory gets its own non-recursive watch so ignored
    trees such as ``node_modules`` are never observed. Directories created
    later are picked up when their creation event arrives.
    """

    def __init__(
        self,
        watch_path: Path,
        session_manager: ActivitySink,
        *,
        rules: WatchRules | None = None,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        heartbeat_seconds: float = HEARTBEAT_SECONDS,
        observer_factory: Callable[[], Any] | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            watch_path: Root directory to watch; created on start if missing.
            session_manager: Receives one ``record_activity`` call per debounced change.
            rules: Extension allow-list and ignore patterns.
            debounce_seconds: Quiet period per path before a change is recorded.
            heartbeat_seconds: Interval between heartbeat log lines.
            observer_factory: Builds the watchdog observer; replaced in tests.
        """
        self.watch_path = Path(watch_path).expanduser().resolve()
        self.session_manager = session_manager
        self.rules = rules or WatchRules()
        self._debounce_seconds = debounce_seconds
        self._heartbeat_seconds = heartbeat_seconds
        self._observer_factory = observer_factory or Observer

        self._observer: Any = None
        self._handler: _ForwardingHandler | None = None
        self._watches: dict[Path, Any] = {}
        self._debounce_timers: dict[Path, asyncio.TimerHandle] = {}
        self._heartbeat_task: asyncio.Task[None] | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._listeners: list[Callable[[WatcherNotification], None]] = []
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Attach watches and start the heartbeat on the running loop."""
        if self._running:
            logger.info("Watcher already running")
            return

        loop = asyncio.get_running_loop()
        logger.info("Starting to watch %s", self.watch_path)

        if not self.watch_path.exists():
            logger.info("Creating directory %s", self.watch_path)
            self.watch_path.mkdir(parents=True, exist_ok=True)

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="worktrace-record")
        self._observer = self._observer_factory()
        self._handler = _ForwardingHandler(self, loop)
        self._watch_tree(self.watch_path)
        self._observer.start()

        self._heartbeat_task = loop.create_task(self._heartbeat())
        self._running = True
        self._emit(WatcherNotification(kind="started", path=self.watch_path))
        logger.info("Watching %d directories for file changes", len(self._watches))

    def stop(self) -> None:
        """Close watches, cancel pending timers and the heartbeat."""
        if not self._running:
            return

        observer, self._observer = self._observer, None
        if observer is not None:
            try:
                observer.stop()
                observer.join(timeout=5.0)
            except (OSError, RuntimeError) as exc:
                logger.debug("Observer shutdown error: %s", exc)
        self._watches.clear()

        for timer in self._debounce_timers.values():
            timer.cancel()
        self._debounce_timers.clear()

        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            self._heartbeat_task = None

        executor, self._executor = self._executor, None
        if executor is not None:
            # Lets an in-flight recording finish before the session is closed
            executor.shutdown(wait=True)

        self._running = False
        self._emit(WatcherNotification(kind="stopped", path=self.watch_path))
        logger.info("Watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def watched_directories(self) -> list[Path]:
        return sorted(self._watches)

    def get_pending_count(self) -> int:
        return len(self._debounce_timers)

    def add_listener(self, callback: Callable[[WatcherNotification], None]) -> None:
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # Directory scanning
    # ------------------------------------------------------------------

    def _relative(self, path: Path) -> Path | None:
        try:
            return path.relative_to(self.watch_path)
        except ValueError:
            return None

    def _watch_tree(self, directory: Path) -> None:
        relative = self._relative(directory)
        if relative is None or self.rules.is_ignored(relative):
            return

        if directory not in self._watches:
            try:
                self._watches[directory] = self._observer.schedule(
                    self._handler, str(directory), recursive=False
                )
            except OSError as exc:
                logger.error("Cannot watch %s: %s", directory, exc)
                return

        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError as exc:
            logger.error("Cannot list %s: %s", directory, exc)
            return

        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                continue
            if is_dir:
                self._watch_tree(Path(entry.path))

    def _on_directory_created(self, directory: Path) -> None:
        if not self._running:
            return
        logger.debug("Directory created: %s", directory)
        self._watch_tree(directory)

    def _on_directory_deleted(self, directory: Path) -> None:
        stale = [path for path in self._watches if path == directory or directory in path.parents]
        for path in stale:
            watch = self._watches.pop(path)
            if self._observer is None:
                continue
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError) as exc:
                logger.debug("Watch for %s already gone: %s", path, exc)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def handle_event(self, kind: str, path: Path) -> None:
        """Filter one raw change event and (re)start its debounce timer.

        Must be called on the event loop thread. Events still queued on the
        loop when the watcher stops are dropped.
        """
        if not self._running:
            return
        relative = self._relative(path)
        if relative is None or not self.rules.tracks(relative):
            return

        pending = self._debounce_timers.pop(path, None)
        if pending is not None:
            pending.cancel()

        loop = asyncio.get_running_loop()
        self._debounce_timers[path] = loop.call_later(self._debounce_seconds, self._flush, path)
        logger.debug("File %s: %s", kind, relative)

    def _flush(self, path: Path) -> None:
        self._debounce_timers.pop(path, None)
        if not self._running or self._executor is None:
            return
        relative = self._relative(path)
        if relative is None:
            return
        relative_path = relative.as_posix()
        logger.info("File changed: %s", relative_path)

        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, self._record, relative_path)
        future.add_done_callback(
            lambda _: self._emit(
                WatcherNotification(kind="change", path=path, relative_path=relative_path)
            )
        )

    def _record(self, relative_path: str) -> None:
        try:
            self.session_manager.record_activity(FileChanged(relative_path))
        except Exception:
            logger.error("Failed to record activity for %s", relative_path, exc_info=True)

    # ------------------------------------------------------------------
    # Heartbeat and notifications
    # ------------------------------------------------------------------

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_seconds)
            try:
                stats = self.session_manager.get_stats()
            except Exception:
                logger.warning("Heartbeat could not read session stats", exc_info=True)
                continue
            logger.info("Heartbeat - active: %s, sessions: %d", stats.active_time, stats.sessions)

    def _emit(self, notification: WatcherNotification) -> None:
        for callback in self._listeners:
            try:
                callback(notification)
            except Exception:
                logger.warning("Watcher listener failed on %s", notification.kind, exc_info=True)


__all__ = [
    "ActivitySink",
    "ActivityWatcher",
    "DEBOUNCE_SECONDS",
    "HEARTBEAT_SECONDS",
    "WatcherNotification",
]
