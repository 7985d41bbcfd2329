"""Utility helpers for git subprocesses."""

from __future__ import annotations

import os
from typing import Mapping

_SANITIZED_VARS = {
    "GIT_DIR",
    "GIT_WORK_TREE",
    "GIT_INDEX_FILE",
    "GIT_PAGER",
    "PAGER",
}

# Force plain, locale-independent output
_FIXED_VARS = {
    "LC_ALL": "C",
    "GIT_TERMINAL_PROMPT": "0",
}


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return an environment that points git at the working directory only.

    Hooks run with GIT_DIR and GIT_INDEX_FILE set for the repository being
    committed to; they are dropped so ``cwd`` decides which repository is read.
    """

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    env.update(_FIXED_VARS)
    if additional:
        env.update(additional)
    return env
