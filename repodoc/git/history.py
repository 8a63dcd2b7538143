"""Version-control history collection through the git executable."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from functools import cmp_to_key
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from ..changelog.ordering import compare_tags
from ..errors import GitCommandError, TagResolutionError
from ..logging import get_logger
from ..models import Commit, History, Tag

GitRunner = Callable[..., Awaitable[str]]

# Unit/record separators keep subjects and bodies containing "|" or newlines intact.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
LOG_FORMAT = "--pretty=format:%H%x1f%an%x1f%ad%x1f%s%x1f%b%x1e"
_LOG_OPTIONS = (LOG_FORMAT, "--date=iso", "--no-merges")
_ISO_FORMAT = "%Y-%m-%d %H:%M:%S %z"


class HistoryProvider:
    """Reads commits, branches, and tags for one repository."""

    def __init__(
        self,
        repo_path: str | Path,
        *,
        runner: GitRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.repo_path = Path(repo_path).expanduser()
        self._runner = runner or self._default_runner
        self.logger = logger or get_logger("history")
        self._tags: Optional[List[Tag]] = None

    async def fetch(self) -> History:
        """Return the repository history, or an empty history when unavailable."""
        if not self.is_repository():
            self.logger.warning("No Git repository found at %s", self.repo_path)
            return History.empty()

        commits = await self._log()
        branches = await self._branches()
        tags = await self.tags()
        history = History.from_commits(commits, tags=tags, branches=branches)
        self.logger.debug(
            "Read %d commits, %d tags, %d branches from %s",
            len(history.commits),
            len(history.tags),
            len(history.branches),
            self.repo_path,
        )
        return history

    def is_repository(self) -> bool:
        return (self.repo_path / ".git").exists()

    async def tags(self) -> List[Tag]:
        """Return resolved tags, skipping any that cannot be resolved or dated."""
        if self._tags is not None:
            return list(self._tags)
        if not self.is_repository():
            self._tags = []
            return []

        output = await self._git(["tag", "-l"])
        names = [line.strip() for line in output.splitlines() if line.strip()]
        resolved: List[Tag] = []
        for name in names:
            try:
                resolved.append(await self._resolve_tag(name))
            except (TagResolutionError, ValueError) as exc:
                self.logger.warning("Skipping tag %s: %s", name, exc)
        self._tags = resolved
        return list(resolved)

    async def commits_between(
        self, from_tag: Tag | str | None, to_tag: Tag | str
    ) -> List[Commit]:
        """Return commits reachable from ``to_tag`` but not from ``from_tag``, newest first."""
        to_name = _tag_name(to_tag)
        if not isinstance(to_tag, Tag):
            await self._rev_parse(to_name)
        if from_tag is None:
            revision = to_name
        else:
            revision = f"{_tag_name(from_tag)}..{to_name}"
        return await self._log(revision)

    async def commits_since_newest_tag(self) -> List[Commit]:
        """Return commits strictly newer than the newest tag (all commits without tags)."""
        tags = await self.tags()
        if not tags:
            return await self._log()
        newest = newest_tag(tags)
        return await self._log(f"{newest.name}..HEAD")

    # ------------------------------------------------------------------
    # Internals

    async def _resolve_tag(self, name: str) -> Tag:
        commit_hash = await self._rev_parse(name)
        date_output = await self._git(["show", "-s", "--format=%ad", "--date=iso", commit_hash])
        if not date_output.strip():
            raise TagResolutionError(f"no commit date reported for {commit_hash}")
        return Tag(name=name, commit_hash=commit_hash, timestamp=parse_git_date(date_output))

    async def _rev_parse(self, name: str) -> str:
        output = await self._git(["rev-list", "-n", "1", name])
        commit_hash = output.strip()
        if not commit_hash:
            raise TagResolutionError(f"tag {name} does not resolve to a commit")
        return commit_hash

    async def _log(self, revision: str | None = None) -> List[Commit]:
        args = ["log"]
        if revision:
            args.append(revision)
        args.extend(_LOG_OPTIONS)
        return parse_log(await self._git(args), logger=self.logger)

    async def _branches(self) -> List[str]:
        output = await self._git(["branch", "--list", "--no-color"])
        branches: List[str] = []
        for line in output.splitlines():
            name = line.strip()
            if name.startswith("* "):
                name = name[2:].strip()
            # "(HEAD detached at ...)" and similar pseudo-entries are not branches.
            if name and not name.startswith("("):
                branches.append(name)
        return branches

    async def _git(self, args: Sequence[str]) -> str:
        try:
            return await self._runner(list(args), cwd=self.repo_path)
        except GitCommandError as exc:
            self.logger.warning("Git command error: %s", exc)
        except OSError as exc:
            self.logger.warning("Error running git %s: %s", " ".join(args), exc)
        return ""

    @staticmethod
    async def _default_runner(args: Sequence[str], *, cwd: Path) -> str:
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise GitCommandError(
                list(args), process.returncode, stderr.decode("utf-8", errors="replace")
            )
        return stdout.decode("utf-8", errors="replace")


def parse_git_date(value: str) -> datetime:
    """Parse ``git --date=iso`` output such as ``2024-03-05 14:22:10 +0100``."""
    return datetime.strptime(value.strip(), _ISO_FORMAT)


def parse_log(output: str, *, logger: logging.Logger | None = None) -> List[Commit]:
    """Parse records produced with :data:`LOG_FORMAT`."""
    commits: List[Commit] = []
    for record in output.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record.strip():
            continue
        parts = record.split(_FIELD_SEP)
        if len(parts) < 4:
            if logger is not None:
                logger.debug("Skipping malformed log record: %r", record[:80])
            continue
        commit_hash, author, date, subject = (part.strip() for part in parts[:4])
        body = _FIELD_SEP.join(parts[4:]).strip() if len(parts) > 4 else ""
        try:
            timestamp = parse_git_date(date)
        except ValueError:
            if logger is not None:
                logger.debug("Skipping commit %s with unparseable date %r", commit_hash, date)
            continue
        commits.append(
            Commit(
                hash=commit_hash,
                author=author,
                timestamp=timestamp,
                short_message=subject,
                message=body or subject,
            )
        )
    return commits


def newest_tag(tags: Sequence[Tag]) -> Tag:
    """Return the tag with the latest timestamp; ties go to the highest version."""
    by_version = sorted(tags, key=cmp_to_key(lambda a, b: compare_tags(a.name, b.name)))
    return max(by_version, key=lambda tag: tag.timestamp)


def _tag_name(tag: Tag | str) -> str:
    return tag.name if isinstance(tag, Tag) else tag


__all__ = ["GitRunner", "HistoryProvider", "LOG_FORMAT", "newest_tag", "parse_git_date", "parse_log"]
