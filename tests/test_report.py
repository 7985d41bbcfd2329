from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from conftest import START
from worktrace.config import TrackerSettings
from worktrace.git import GitIntegration
from worktrace.git.integration import LOG_FORMAT
from worktrace.git.runner import FakeGitRunner
from worktrace.report import REPORT_COMMIT_LIMIT, ReportGenerator
from worktrace.session import FileChanged


def _history(count: int) -> str:
    lines = []
    for index in range(count, 0, -1):
        when = START + timedelta(minutes=10 * index)
        lines.append(f"{index:040x}|{when.isoformat()}|Commit {index}")
    return "\n".join(lines) + "\n"


def _git(count: int = 25) -> GitIntegration:
    runner = FakeGitRunner(
        {
            ("rev-parse", "--git-dir"): ".git\n",
            ("log", "-50", LOG_FORMAT, "--no-merges"): _history(count),
            ("log", "--name-only", "--format=", "--no-merges"): "src/app.js\n",
        }
    )
    return GitIntegration(Path("."), runner=runner)


def test_report_combines_tracking_and_git(tmp_path: Path, make_manager, clock) -> None:
    manager = make_manager()
    manager.record_activity(FileChanged("src/app.js"))
    clock.at(20)
    manager.record_activity(FileChanged("src/app.js"))
    generator = ReportGenerator(tmp_path, session_manager=manager, git=_git(), clock=clock)

    report = generator.build_report(START + timedelta(minutes=30))

    assert set(report) == {"generated", "summary", "sessions", "commits", "timeline", "candidate"}
    assert report["generated"] == (START + timedelta(minutes=30)).isoformat()
    summary = report["summary"]
    assert summary["sessions"] == 2
    assert summary["activeMinutes"] == 10
    assert summary["elapsedMinutes"] == 20
    assert summary["git"]["isGitRepo"] is True
    assert summary["git"]["totalCommits"] == 25
    assert summary["git"]["filesChanged"] == 1
    assert report["sessions"][0]["endedAt"] is not None
    assert report["sessions"][1]["endedAt"] is None
    assert len(report["commits"]) == REPORT_COMMIT_LIMIT
    assert report["commits"][0]["message"] == "Commit 25"
    assert set(report["candidate"]) == {"id", "machineId", "timezone"}


def test_generate_writes_report_file(tmp_path: Path, make_manager, clock) -> None:
    report_path = tmp_path / "out" / "report.json"
    generator = ReportGenerator(
        tmp_path, session_manager=make_manager(), git=_git(3), report_path=report_path, clock=clock
    )

    report = generator.generate()

    written = json.loads(report_path.read_text(encoding="utf-8"))
    assert written == report
    assert written["generated"] == START.isoformat()
    assert len(written["commits"]) == 3


def test_report_defaults_next_to_base_path(tmp_path: Path, make_manager) -> None:
    generator = ReportGenerator(tmp_path, session_manager=make_manager(), git=_git(0))

    assert generator.report_path == tmp_path / "tracker-report.json"


def test_from_settings_uses_configured_paths(tracker_env: Path, monkeypatch) -> None:
    monkeypatch.setenv("TRACKER_REPORT_FILE", "reports/work.json")
    settings = TrackerSettings()

    generator = ReportGenerator.from_settings(settings)
    generator.generate()

    report = json.loads((tracker_env / "reports" / "work.json").read_text(encoding="utf-8"))
    assert report["summary"]["sessions"] == 0
    assert (tracker_env / ".tracker-session.json").exists()


def test_write_failure_is_raised(tmp_path: Path, make_manager) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    generator = ReportGenerator(
        tmp_path, session_manager=make_manager(), git=_git(0), report_path=blocker / "report.json"
    )

    with pytest.raises(OSError):
        generator.generate()
