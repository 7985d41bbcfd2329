from __future__ import annotations

import sys
from pathlib import Path

import pytest

from worktrace.git.runner import (
    FakeGitRunner,
    GitExecutionResult,
    GitNotFoundError,
    GitRunner,
)
from worktrace.git.utils import sanitize_environment

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="shell script stands in for git")


def _script(tmp_path: Path, body: str) -> Path:
    script = tmp_path / "git"
    script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    script.chmod(0o755)
    return script


@posix_only
def test_git_runner_passes_arguments(tmp_path: Path) -> None:
    runner = GitRunner(tmp_path, _script(tmp_path, 'echo "$@"'))

    result = runner.run("log", "-5", "--no-merges")

    assert result.ok
    assert result.stdout.strip() == "log -5 --no-merges"
    assert result.args[1:] == ("log", "-5", "--no-merges")


@posix_only
def test_git_runner_runs_in_repo_directory(tmp_path: Path) -> None:
    repo = tmp_path / "repo"
    repo.mkdir()
    runner = GitRunner(repo, _script(tmp_path, "pwd"))

    result = runner.run("status")

    assert Path(result.stdout.strip()).resolve() == repo.resolve()


@posix_only
def test_git_runner_reports_failures(tmp_path: Path) -> None:
    runner = GitRunner(tmp_path, _script(tmp_path, 'echo "fatal: bad" >&2\nexit 128'))

    result = runner.run("rev-parse", "HEAD")

    assert not result.ok
    assert result.returncode == 128
    assert "fatal: bad" in result.stderr


@posix_only
def test_git_runner_hides_hook_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_DIR", "/somewhere/else/.git")
    runner = GitRunner(tmp_path, _script(tmp_path, 'echo "dir=${GIT_DIR:-unset} lc=$LC_ALL"'))

    result = runner.run("status")

    assert result.stdout.strip() == "dir=unset lc=C"


@posix_only
def test_git_runner_timeout_is_a_failed_result(tmp_path: Path) -> None:
    runner = GitRunner(tmp_path, _script(tmp_path, "exec sleep 5"), timeout=0.2)

    result = runner.run("log")

    assert result.returncode == -1
    assert result.stderr == "timeout"


def test_git_not_found(tmp_path: Path) -> None:
    with pytest.raises(GitNotFoundError):
        GitRunner(tmp_path, tmp_path / "missing")


def test_git_not_on_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("worktrace.git.runner.shutil.which", lambda name: None)

    with pytest.raises(GitNotFoundError):
        GitRunner(tmp_path)


def test_fake_git_runner_records_invocations() -> None:
    fake = FakeGitRunner(
        {
            ("rev-parse", "--git-dir"): ".git\n",
            ("rev-parse", "HEAD"): GitExecutionResult(
                args=("rev-parse", "HEAD"), returncode=1, stdout="", stderr="no HEAD"
            ),
        }
    )

    assert fake.run("rev-parse", "--git-dir").stdout == ".git\n"
    assert not fake.run("rev-parse", "HEAD").ok
    assert fake.run("log").returncode == 128
    assert fake.invocations == [("rev-parse", "--git-dir"), ("rev-parse", "HEAD"), ("log",)]


def test_sanitize_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_INDEX_FILE", "/tmp/index")
    monkeypatch.setenv("PAGER", "less")

    env = sanitize_environment({"EXTRA": "1"})

    assert "GIT_INDEX_FILE" not in env
    assert "PAGER" not in env
    assert env["GIT_TERMINAL_PROMPT"] == "0"
    assert env["EXTRA"] == "1"
