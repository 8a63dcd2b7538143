"""Scripted stand-in for the git executable used by HistoryProvider tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from repodoc.errors import GitCommandError


@dataclass
class FakeCommit:
    hash: str
    subject: str
    date: str
    author: str = "Ada Lovelace"
    body: str = ""


@dataclass
class FakeRepo:
    """A linear history (oldest first) with tags pointing at commit hashes.

    Calling the instance behaves like ``HistoryProvider``'s git runner,
    answering the handful of invocations the provider issues.
    """

    root: Path
    commits: List[FakeCommit] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    branches: List[str] = field(default_factory=lambda: ["main"])
    calls: List[List[str]] = field(default_factory=list)
    failing: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        (self.root / ".git").mkdir(parents=True, exist_ok=True)

    def commit(self, subject: str, date: str, **kwargs: str) -> FakeCommit:
        index = len(self.commits) + 1
        entry = FakeCommit(hash=f"{index:07d}" + "a" * 33, subject=subject, date=date, **kwargs)
        self.commits.append(entry)
        return entry

    def tag(self, name: str, commit: FakeCommit | None = None) -> None:
        target = commit or self.commits[-1]
        self.tags[name] = target.hash

    async def __call__(self, args: Sequence[str], *, cwd: Path) -> str:
        args = list(args)
        self.calls.append(args)
        command = args[0]
        if command in self.failing:
            raise GitCommandError(args, 128, self.failing[command])
        if command == "log":
            revision = args[1] if len(args) > 1 and not args[1].startswith("--") else None
            return self._log(revision)
        if command == "tag":
            return "".join(f"{name}\n" for name in sorted(self.tags))
        if command == "rev-list":
            return f"{self._resolve(args[-1])}\n"
        if command == "show":
            return f"{self._by_hash(args[-1]).date}\n"
        if command == "branch":
            lines = [f"* {self.branches[0]}"] + [f"  {name}" for name in self.branches[1:]]
            return "\n".join(lines) + "\n"
        raise GitCommandError(args, 1, f"unsupported fake git command: {command}")

    def _log(self, revision: Optional[str]) -> str:
        if revision is None:
            selected = self.commits
        elif ".." in revision:
            start, end = revision.split("..", 1)
            selected = self.commits[self._index(start) + 1 : self._index(end) + 1]
        else:
            selected = self.commits[: self._index(revision) + 1]
        records = [
            "\x1f".join([c.hash, c.author, c.date, c.subject, c.body]) + "\x1e"
            for c in reversed(selected)
        ]
        return "\n".join(records)

    def _resolve(self, ref: str) -> str:
        if ref == "HEAD":
            return self.commits[-1].hash
        if ref in self.tags:
            return self.tags[ref]
        raise GitCommandError(["rev-parse", ref], 128, f"fatal: ambiguous argument '{ref}'")

    def _index(self, ref: str) -> int:
        target = self._resolve(ref)
        for index, commit in enumerate(self.commits):
            if commit.hash == target:
                return index
        raise GitCommandError(["log", ref], 128, f"fatal: bad revision '{ref}'")

    def _by_hash(self, commit_hash: str) -> FakeCommit:
        for commit in self.commits:
            if commit.hash == commit_hash:
                return commit
        raise GitCommandError(["show", commit_hash], 128, "fatal: bad object")


__all__ = ["FakeCommit", "FakeRepo"]
