"""Kinds of activity that can be recorded against the session timeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class FileChanged:
    """A tracked file under the watch root was edited."""

    path: str


@dataclass(frozen=True, slots=True)
class Committed:
    """A commit was made. ``hash`` is unknown while the pre-commit hook runs."""

    hash: str | None = None
    message: str = ""


@dataclass(frozen=True, slots=True)
class ManualNote:
    text: str = "manual"


@dataclass(frozen=True, slots=True)
class Checkout:
    pass


Activity = Union[FileChanged, Committed, ManualNote, Checkout]


def describe(activity: Activity | None) -> str:
    """Return a short label for log messages."""

    if activity is None:
        return "activity"
    if isinstance(activity, FileChanged):
        return f"file {activity.path}"
    if isinstance(activity, Committed):
        return f"commit {activity.hash}" if activity.hash else "commit"
    if isinstance(activity, ManualNote):
        return f"note {activity.text!r}"
    if isinstance(activity, Checkout):
        return "checkout"
    raise TypeError(f"Unsupported activity: {activity!r}")


__all__ = ["Activity", "Checkout", "Committed", "FileChanged", "ManualNote", "describe"]
