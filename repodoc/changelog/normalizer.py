"""Commit message cleaning and change classification."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List

from ..models import ChangeKind, ClassifiedCommit, Commit

_TICKET_PREFIX = re.compile(r"^\s*\[?[A-Z]+-\d+\]?:?\s*")
_MERGE_PREFIX = re.compile(r"^Merge (branch|pull request) .*: ")
_WHITESPACE = re.compile(r"\s+")

FEATURE_KEYWORDS = ("add", "feature", "implement", "support", "create")
BUGFIX_KEYWORDS = ("fix", "bug", "issue", "error", "crash", "resolve")


def clean(raw: str) -> str:
    """Normalize a commit message for changelog output.

    Leading ticket references (``ABC-123:``, ``[ABC-123]``) and merge phrases
    are stripped, whitespace is collapsed, and a lowercase first letter is
    capitalised. Stripping repeats until nothing changes, so the result is a
    fixed point: ``clean(clean(m)) == clean(m)``.
    """
    message = raw
    while True:
        stripped = _TICKET_PREFIX.sub("", message, count=1)
        stripped = _MERGE_PREFIX.sub("", stripped, count=1)
        stripped = _WHITESPACE.sub(" ", stripped).strip()
        if stripped and stripped[0].islower():
            stripped = stripped[0].upper() + stripped[1:]
        if stripped == message:
            return stripped
        message = stripped


def classify(raw: str) -> ChangeKind:
    """Classify a message; feature keywords win over bugfix keywords."""
    lowered = raw.lower()
    if any(keyword in lowered for keyword in FEATURE_KEYWORDS):
        return ChangeKind.FEATURE
    if any(keyword in lowered for keyword in BUGFIX_KEYWORDS):
        return ChangeKind.BUGFIX
    return ChangeKind.IMPROVEMENT


def classify_commit(commit: Commit) -> ClassifiedCommit:
    return ClassifiedCommit(
        commit=commit,
        kind=classify(commit.short_message),
        summary=clean(commit.short_message),
    )


def group_commits(commits: Iterable[Commit]) -> Dict[ChangeKind, List[ClassifiedCommit]]:
    """Group commits by kind, preserving input order within each group."""
    grouped: Dict[ChangeKind, List[ClassifiedCommit]] = {kind: [] for kind in ChangeKind}
    for commit in commits:
        classified = classify_commit(commit)
        grouped[classified.kind].append(classified)
    return grouped


def format_entry(commit: Commit) -> str:
    """Render ``- <cleaned subject> (#<short hash>)``."""
    return f"- {clean(commit.short_message)} (#{commit.short_hash})"


__all__ = [
    "BUGFIX_KEYWORDS",
    "FEATURE_KEYWORDS",
    "classify",
    "classify_commit",
    "clean",
    "format_entry",
    "group_commits",
]
