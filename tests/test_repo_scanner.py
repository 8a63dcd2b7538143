"""Tests for repodoc.repo_scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from repodoc.repo_scanner import RepoScanner, build_ignore_rule, detect_language


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_scan_lists_source_files_in_stable_order(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write(repo_root / "src" / "b.py", "print('b')\n")
    _write(repo_root / "src" / "a.ts", "export const a = 1;\n")
    _write(repo_root / "lib" / "Main.java", "class Main {}\n")
    _write(repo_root / "app.dart", "void main() {}\n")
    _write(repo_root / "README.md", "# Readme\n")
    _write(repo_root / ".venv" / "site.py", "print('nope')\n")
    _write(repo_root / "node_modules" / "dep" / "index.js", "module.exports = 1;\n")

    manifest = RepoScanner().scan(str(repo_root))

    assert manifest.root == str(repo_root.resolve())
    assert [file.path for file in manifest.files] == [
        "app.dart",
        "lib/Main.java",
        "src/a.ts",
        "src/b.py",
    ]
    languages = {file.path: file.language for file in manifest.files}
    assert languages["src/a.ts"] == "TypeScript"
    assert languages["app.dart"] == "Dart"
    assert manifest.files[-1].size == len("print('b')\n")


def test_scan_rejects_missing_directory(tmp_path: Path) -> None:
    missing = tmp_path / "missing"

    with pytest.raises(FileNotFoundError) as excinfo:
        RepoScanner().scan(str(missing))

    assert str(missing) in str(excinfo.value)


def test_scan_rejects_file_path(tmp_path: Path) -> None:
    target = tmp_path / "file.py"
    _write(target, "x = 1\n")

    with pytest.raises(NotADirectoryError):
        RepoScanner().scan(target)


def test_scan_respects_gitignore(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write(repo_root / ".gitignore", "generated/\n*.min.js\n!keep.min.js\n")
    _write(repo_root / "src" / "main.py", "print('ok')\n")
    _write(repo_root / "generated" / "client.py", "x = 1\n")
    _write(repo_root / "static" / "app.min.js", "x\n")
    _write(repo_root / "static" / "keep.min.js", "x\n")

    paths = {file.path for file in RepoScanner().scan(str(repo_root)).files}

    assert paths == {"src/main.py", "static/keep.min.js"}


def test_scan_respects_exclude_paths(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write(repo_root / "src" / "main.py", "print('ok')\n")
    _write(repo_root / "data" / "loader.py", "x = 1\n")
    _write(repo_root / "lib" / "model.g.dart", "class A {}\n")

    manifest = RepoScanner(exclude_paths=["data/", "*.g.dart"]).scan(str(repo_root))

    assert [file.path for file in manifest.files] == ["src/main.py"]


def test_scan_skips_generated_dart_sources(tmp_path: Path) -> None:
    _write(tmp_path / "lib" / "user.dart", "class User {}\n")
    _write(tmp_path / "lib" / "user.g.dart", "// generated\n")
    _write(tmp_path / "lib" / "user.freezed.dart", "// generated\n")

    manifest = RepoScanner().scan(tmp_path)

    assert [file.path for file in manifest.files] == ["lib/user.dart"]


def test_anchored_rule_only_matches_from_root() -> None:
    rule = build_ignore_rule("/docs")
    assert rule is not None
    assert rule.matches("docs", is_dir=True)
    assert not rule.matches("src/docs", is_dir=True)
    assert build_ignore_rule("   ") is None


def test_detect_language_is_case_insensitive() -> None:
    assert detect_language(Path("Main.JAVA")) == "Java"
    assert detect_language(Path("notes.txt")) is None
