"""Changelog synthesis from version-control history."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ..batching import make_batches
from ..errors import HistoryError
from ..logging import get_logger
from ..models import ChangeKind, Commit, History, Tag
from ..prompting.builder import MonthGroup, PromptBuilder
from .normalizer import format_entry, group_commits
from .ordering import sort_tags

if TYPE_CHECKING:
    from ..git.history import HistoryProvider
    from ..llm.orchestrator import RequestOrchestrator

CHANGELOG_HEADER = (
    "# Changelog\n\n"
    "All notable changes to this project are documented in this file.\n"
)
UNRELEASED_HEADING = "## [Unreleased]"
NO_CHANGES_PLACEHOLDER = "- No changes"
NO_COMMITS_PLACEHOLDER = "No commits found."


class ChangelogSynthesizer:
    """Turns a :class:`History` into a Markdown changelog.

    Tagged repositories get one section per release, computed from git ranges
    between adjacent tags. Untagged repositories are summarised month by month
    by the generation backend, a few months per request.
    """

    def __init__(
        self,
        history_provider: "HistoryProvider",
        orchestrator: "RequestOrchestrator | None" = None,
        prompt_builder: PromptBuilder | None = None,
        *,
        max_tags: Optional[int] = None,
        months_per_request: int = 2,
        logger: logging.Logger | None = None,
    ) -> None:
        if months_per_request < 1:
            raise ValueError("months_per_request must be at least 1")
        self.history_provider = history_provider
        self.orchestrator = orchestrator
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.max_tags = max_tags
        self.months_per_request = months_per_request
        self.logger = logger or get_logger("changelog")

    async def synthesize(self, history: History) -> str:
        if history.tags:
            self.logger.info("Generating changelog from %d tags", len(history.tags))
            return await self._from_tags(history.tags)
        self.logger.info("No tags found; generating changelog by month")
        return await self._by_month(history.commits)

    # ------------------------------------------------------------------
    # Tag-present mode

    async def _from_tags(self, tags: Sequence[Tag]) -> str:
        by_name = {tag.name: tag for tag in tags}
        ordered = [by_name[name] for name in sort_tags(by_name)]
        selected = ordered[: self.max_tags] if self.max_tags else ordered

        sections: List[str] = [CHANGELOG_HEADER]

        unreleased = await self.history_provider.commits_since_newest_tag()
        if unreleased:
            sections.append(render_section(UNRELEASED_HEADING, unreleased))

        for index, tag in enumerate(selected):
            previous = _predecessor(ordered, selected, index)
            try:
                commits = await self.history_provider.commits_between(previous, tag)
                heading = f"## [{tag.name}] - {tag.date}"
            except (HistoryError, ValueError) as exc:
                self.logger.warning("Skipping tag %s: %s", tag.name, exc)
                continue
            sections.append(render_section(heading, commits))

        return "\n".join(sections).rstrip() + "\n"

    # ------------------------------------------------------------------
    # Tag-absent mode

    async def _by_month(self, commits: Sequence[Commit]) -> str:
        if not commits:
            return f"{CHANGELOG_HEADER}\n{NO_COMMITS_PLACEHOLDER}\n"

        months = group_by_month(commits)
        groups = [
            MonthGroup(month=month, entries=[format_entry(commit) for commit in month_commits])
            for month, month_commits in months.items()
        ]
        chunks = make_batches(groups, self.months_per_request)
        self.logger.info(
            "Summarising %d months in %d requests", len(groups), len(chunks)
        )

        sections: List[str] = [CHANGELOG_HEADER]
        for chunk in chunks:
            labels = ", ".join(group.month for group in chunk.items)
            if self.orchestrator is None:
                sections.append(self._render_months(chunk.items, months))
                continue
            result = await self.orchestrator.submit(self.prompt_builder.changelog_months(chunk.items))
            if result.ok:
                sections.append(result.text.strip() + "\n")
            else:
                self.logger.warning("Changelog request for %s failed: %s", labels, result.detail)
                fallback = self._render_months(chunk.items, months)
                sections.append(f"{fallback}\n_{result.text}_\n")

        return "\n".join(sections).rstrip() + "\n"

    @staticmethod
    def _render_months(groups: Sequence[MonthGroup], months: Dict[str, List[Commit]]) -> str:
        return "\n".join(render_section(f"## {group.month}", months[group.month]) for group in groups)


def render_section(heading: str, commits: Sequence[Commit]) -> str:
    """Render a heading followed by Features / Bug Fixes / Improvements groups."""
    lines = [heading, ""]
    if not commits:
        lines.extend([NO_CHANGES_PLACEHOLDER, ""])
        return "\n".join(lines)

    grouped = group_commits(commits)
    for kind in ChangeKind:
        entries = grouped[kind]
        if not entries:
            continue
        lines.extend([f"### {kind.heading}", ""])
        lines.extend(f"- {entry.summary} (#{entry.commit.short_hash})" for entry in entries)
        lines.append("")
    return "\n".join(lines)


def group_by_month(commits: Sequence[Commit]) -> "OrderedDict[str, List[Commit]]":
    """Group commits by ``YYYY-MM``, months newest first, commit order preserved."""
    buckets: Dict[str, List[Commit]] = {}
    for commit in commits:
        buckets.setdefault(commit.timestamp.strftime("%Y-%m"), []).append(commit)
    return OrderedDict((month, buckets[month]) for month in sorted(buckets, reverse=True))


def _predecessor(ordered: Sequence[Tag], selected: Sequence[Tag], index: int) -> Optional[Tag]:
    if index + 1 < len(selected):
        return selected[index + 1]
    # The oldest selected tag still starts at the next-older tag, so capping
    # leaves commits owned by excluded tags out of the document.
    position = len(selected)
    if position < len(ordered):
        return ordered[position]
    return None


__all__ = [
    "CHANGELOG_HEADER",
    "ChangelogSynthesizer",
    "NO_CHANGES_PLACEHOLDER",
    "group_by_month",
    "render_section",
]
