from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from worktrace.session import SessionManager
from worktrace.storage import NullLock, SessionStore

START = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> datetime:
        self.now = self.now + timedelta(minutes=minutes)
        return self.now

    def at(self, minutes: float) -> datetime:
        self.now = START + timedelta(minutes=minutes)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_path(tmp_path: Path) -> Path:
    return tmp_path / ".tracker-session.json"


@pytest.fixture
def make_manager(session_path: Path, clock: FakeClock):
    def factory(**kwargs) -> SessionManager:
        store = SessionStore(session_path, lock=NullLock(), clock=clock)
        return SessionManager(store, clock=clock, **kwargs)

    return factory


@pytest.fixture
def tracker_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the tracker settings at a scratch repository root."""

    for name in list(os.environ):
        if name.startswith("TRACKER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TRACKER_BASE_PATH", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    return tmp_path
