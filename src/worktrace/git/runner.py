"""Blocking runner for the git CLI."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .utils import sanitize_environment

logger = logging.getLogger(__name__)


class GitRunnerError(RuntimeError):
    """Base class for git runner errors."""


class GitNotFoundError(GitRunnerError):
    """Raised when the git executable cannot be located."""


@dataclass(slots=True)
class GitExecutionResult:
    """Holds the outcome of a git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitRunner:
    """Execute git commands inside one repository.

    Calls block until git exits. ``timeout`` bounds each call; a call that
    times out or cannot be spawned is reported as a failed result.
    """

    def __init__(
        self,
        repo_path: Path,
        executable: Path | None = None,
        *,
        timeout: float | None = None,
    ) -> None:
        self._repo_path = Path(repo_path)
        self._executable_path = self._resolve_executable(executable)
        self._timeout = timeout

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise GitNotFoundError(f"git executable not found at {candidate}")

        binary = shutil.which("git")
        if binary is None:
            raise GitNotFoundError("git executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    @property
    def repo_path(self) -> Path:
        return self._repo_path

    def run(self, *args: str) -> GitExecutionResult:
        cmd = [str(self._executable_path), *args]
        try:
            process = subprocess.run(
                cmd,
                cwd=str(self._repo_path),
                capture_output=True,
                env=sanitize_environment(),
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.warning("git %s timed out after %ss", " ".join(args), self._timeout)
            return GitExecutionResult(args=tuple(cmd), returncode=-1, stdout="", stderr="timeout")
        except OSError as exc:
            logger.warning("Failed to run git %s: %s", " ".join(args), exc)
            return GitExecutionResult(args=tuple(cmd), returncode=-1, stdout="", stderr=str(exc))

        stdout = process.stdout.decode("utf-8", errors="replace")
        stderr = process.stderr.decode("utf-8", errors="replace")
        return GitExecutionResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


class FakeGitRunner(GitRunner):
    """Test double that answers git commands from a lookup table.

    Unknown commands fail the way git does outside a repository.
    """

    def __init__(  # type: ignore[override]
        self,
        responses: Mapping[tuple[str, ...], GitExecutionResult | str] | None = None,
    ) -> None:
        self._responses = dict(responses or {})
        self._invocations: list[tuple[str, ...]] = []
        self._repo_path = Path("/tmp/fake-repo")
        self._executable_path = Path("/tmp/fake-git")
        self._timeout = None

    def run(self, *args: str) -> GitExecutionResult:  # type: ignore[override]
        self._invocations.append(tuple(args))
        response = self._responses.get(tuple(args))
        if response is None:
            return GitExecutionResult(
                args=tuple(args),
                returncode=128,
                stdout="",
                stderr="fatal: not a git repository",
            )
        if isinstance(response, str):
            return GitExecutionResult(args=tuple(args), returncode=0, stdout=response, stderr="")
        return response

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations


__all__ = [
    "FakeGitRunner",
    "GitExecutionResult",
    "GitNotFoundError",
    "GitRunner",
    "GitRunnerError",
]
