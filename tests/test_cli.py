from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from worktrace import __version__
from worktrace.cli import build_parser, main, run_tracker
from worktrace.config import TrackerSettings
from worktrace.session import SessionManager


def _document(tracker_env: Path):
    return SessionManager.from_settings(TrackerSettings()).get_data()


def test_no_arguments_prints_help(tracker_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main([])

    assert "usage: worktrace" in capsys.readouterr().out
    assert not (tracker_env / ".tracker-session.json").exists()


def test_help_command_prints_help(tracker_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["help"])

    out = capsys.readouterr().out
    for command in ("start", "stop", "stats", "report", "record", "commit", "submit", "hook"):
        assert command in out


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args(["--version"])

    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_record_and_stats(tracker_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["record", "reading brief"])
    main(["stats"])

    out = capsys.readouterr().out
    assert "Activity recorded: reading brief" in out
    stats = json.loads(out[out.index("{"):])
    assert stats["sessions"] == 1
    assert stats["activeTime"] == "0m"
    assert stats["timeline"]["firstActivity"] is not None


def test_commit_records_truncated_hash(tracker_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["commit", "0123456789abcdef", "Add parser"])

    assert "Commit recorded: 0123456" in capsys.readouterr().out
    commits = _document(tracker_env).commits
    assert [(commit.hash, commit.message) for commit in commits] == [("0123456", "Add parser")]


def test_commit_defaults(tracker_env: Path) -> None:
    main(["commit"])

    commit = _document(tracker_env).commits[0]
    assert (commit.hash, commit.message) == ("unknown", "no message")


def test_stop_closes_open_session(tracker_env: Path) -> None:
    main(["record"])
    main(["stop"])

    session = _document(tracker_env).sessions[0]
    assert session.ended_at is not None


def test_submit_writes_report(tracker_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["record"])
    main(["submit"])

    assert "Submission recorded" in capsys.readouterr().out
    report = json.loads((tracker_env / "tracker-report.json").read_text(encoding="utf-8"))
    assert report["timeline"]["submitted"] is not None
    assert report["summary"]["sessions"] == 1


def test_report_prints_summary(tracker_env: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["report"])

    out = capsys.readouterr().out
    assert "Report saved" in out
    assert (tracker_env / "tracker-report.json").exists()


def test_hook_command(tracker_env: Path) -> None:
    main(["hook", "pre-commit"])

    assert _document(tracker_env).sessions[0].event_count == 1


def test_bad_configuration_blocks_commands_but_not_hooks(
    tracker_env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("TRACKER_LOG_LEVEL", "chatty")

    main(["hook", "pre-push"])
    with pytest.raises(SystemExit) as excinfo:
        main(["stats"])

    assert excinfo.value.code == 2
    assert "configuration invalid" in capsys.readouterr().err


def test_run_tracker_records_file_edits(tracker_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRACKER_DEBOUNCE_SECONDS", "0.05")
    settings = TrackerSettings()
    source = settings.watch_path / "src" / "app.js"

    def recorded() -> list[str]:
        return SessionManager.from_settings(settings).get_data().files_modified

    async def scenario() -> None:
        stop_event = asyncio.Event()
        task = asyncio.create_task(run_tracker(settings, stop_event))
        await asyncio.sleep(0.3)
        source.parent.mkdir(parents=True)
        await asyncio.sleep(0.3)
        source.write_text("console.log('hi')\n", encoding="utf-8")
        for _ in range(50):
            await asyncio.sleep(0.1)
            if recorded():
                break
        stop_event.set()
        await task

    asyncio.run(scenario())

    document = SessionManager.from_settings(settings).get_data()
    assert document.files_modified == ["src/app.js"]
    assert document.sessions[-1].ended_at is not None
