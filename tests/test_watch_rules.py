from __future__ import annotations

from pathlib import Path, PurePosixPath

import pytest

from worktrace.watcher import RulesLoadError, WatchRules, load_rules


def test_default_rules_track_web_sources() -> None:
    rules = WatchRules()

    assert rules.tracks(PurePosixPath("src/App.tsx"))
    assert rules.tracks(PurePosixPath("styles/site.CSS"))
    assert not rules.tracks(PurePosixPath("README.md"))
    assert not rules.tracks(PurePosixPath("node_modules/react/index.js"))
    assert not rules.tracks(PurePosixPath("packages/ui/dist/bundle.js"))


def test_segment_patterns_match_any_depth() -> None:
    rules = WatchRules(ignore=["*.generated"])

    assert rules.is_ignored(PurePosixPath("src/api.generated/client.ts"))
    assert not rules.is_ignored(PurePosixPath("src/api/client.ts"))


def test_patterns_with_slash_are_root_prefixes() -> None:
    rules = WatchRules(ignore=["/src/vendor/"])

    assert rules.ignore == ["src/vendor"]
    assert rules.is_ignored(PurePosixPath("src/vendor"))
    assert rules.is_ignored(PurePosixPath("src/vendor/lib.js"))
    assert not rules.is_ignored(PurePosixPath("src/vendored.js"))
    assert not rules.is_ignored(PurePosixPath("lib/src/vendor/lib.js"))


def test_extensions_are_normalized() -> None:
    rules = WatchRules(extensions="py, .PYI,,")

    assert rules.extensions == [".py", ".pyi"]
    assert rules.tracks(PurePosixPath("pkg/mod.py"))


def test_load_rules_without_path_uses_defaults() -> None:
    assert load_rules(None) == WatchRules()


def test_load_rules_from_yaml(tmp_path: Path) -> None:
    rules_path = tmp_path / "watch.yaml"
    rules_path.write_text(
        "extensions: [py, md]\nignore:\n  - .venv\n  - docs/build\n",
        encoding="utf-8",
    )

    rules = load_rules(rules_path)

    assert rules.extensions == [".py", ".md"]
    assert rules.ignore == [".venv", "docs/build"]
    assert rules.is_ignored(PurePosixPath(".venv/lib/site.py"))


def test_empty_yaml_means_defaults(tmp_path: Path) -> None:
    rules_path = tmp_path / "watch.yaml"
    rules_path.write_text("", encoding="utf-8")

    assert load_rules(rules_path) == WatchRules()


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    rules_path = tmp_path / "watch.yaml"
    rules_path.write_text("extensions: [py\n", encoding="utf-8")

    with pytest.raises(RulesLoadError):
        load_rules(rules_path)


def test_invalid_schema_raises(tmp_path: Path) -> None:
    rules_path = tmp_path / "watch.yaml"
    rules_path.write_text("ignore: 12\n", encoding="utf-8")

    with pytest.raises(RulesLoadError):
        load_rules(rules_path)


def test_missing_rules_file_raises(tmp_path: Path) -> None:
    with pytest.raises(RulesLoadError):
        load_rules(tmp_path / "absent.yaml")
