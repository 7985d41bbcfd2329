"""Declarative filter rules for the activity watcher."""

from __future__ import annotations

from fnmatch import fnmatchcase
from pathlib import Path, PurePath, PurePosixPath
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_EXTENSIONS = (".ts", ".js", ".tsx", ".jsx", ".json", ".css", ".html")
DEFAULT_IGNORE = (
    "node_modules",
    ".git",
    "dist",
    "build",
    "coverage",
    ".tracker-session.json*",
)


class RulesLoadError(RuntimeError):
    """Raised when a watch rules file cannot be parsed."""


class WatchRules(BaseModel):
    """Which files count as activity and which directories are skipped."""

    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="File suffixes whose changes count as activity.",
    )
    ignore: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE),
        description=(
            "Glob patterns matched against every path segment, or path prefixes "
            "relative to the watch root when the pattern contains '/'."
        ),
    )

    @field_validator("extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any):
        if value is None:
            return list(DEFAULT_EXTENSIONS)
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            raise ValueError("extensions must be a sequence of suffixes")
        normalized = []
        for item in value:
            suffix = str(item).strip().lower()
            if not suffix:
                continue
            normalized.append(suffix if suffix.startswith(".") else f".{suffix}")
        return normalized

    @field_validator("ignore", mode="before")
    @classmethod
    def _normalize_ignore(cls, value: Any):
        if value is None:
            return list(DEFAULT_IGNORE)
        if not isinstance(value, (list, tuple)):
            raise ValueError("ignore must be a sequence of patterns")
        return [str(item).strip().strip("/") for item in value if str(item).strip().strip("/")]

    def is_ignored(self, relative: PurePath) -> bool:
        """Return True when any segment or prefix of ``relative`` matches a rule."""

        posix = PurePosixPath(*relative.parts)
        text = posix.as_posix()
        for pattern in self.ignore:
            if "/" in pattern:
                if text == pattern or text.startswith(pattern + "/"):
                    return True
            elif any(fnmatchcase(part, pattern) for part in posix.parts):
                return True
        return False

    def tracks(self, relative: PurePath) -> bool:
        """Return True when a change to this file should be recorded."""

        if relative.suffix.lower() not in self.extensions:
            return False
        return not self.is_ignored(relative)


def load_rules(path: Path | None) -> WatchRules:
    """Load watch rules from a YAML file, or the defaults when no path is given."""

    if path is None:
        return WatchRules()

    try:
        document = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise RulesLoadError(f"Cannot read watch rules {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise RulesLoadError(f"Failed to parse YAML in {path}: {exc}") from exc

    if document is None:
        return WatchRules()

    try:
        return WatchRules.model_validate(document)
    except ValidationError as exc:
        raise RulesLoadError(f"Watch rules validation error in {path}: {exc}") from exc


__all__ = ["DEFAULT_EXTENSIONS", "DEFAULT_IGNORE", "RulesLoadError", "WatchRules", "load_rules"]
