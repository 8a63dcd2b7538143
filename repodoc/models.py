"""Core data models shared across repodoc components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Commit:
    """A single commit as reported by git."""

    hash: str
    author: str
    timestamp: datetime
    short_message: str
    message: str

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    def to_dict(self) -> Dict[str, str]:
        return {
            "hash": self.hash,
            "author": self.author,
            "date": self.timestamp.isoformat(),
            "shortMessage": self.short_message,
            "message": self.message,
        }


@dataclass(frozen=True)
class Tag:
    """A tag resolved to the commit it points at."""

    name: str
    commit_hash: str
    timestamp: datetime

    @property
    def date(self) -> str:
        """Return the ``YYYY-MM-DD`` portion of the tag timestamp."""
        return self.timestamp.date().isoformat()


@dataclass(frozen=True)
class History:
    """Normalized version-control history for one repository."""

    authors: Tuple[str, ...] = ()
    commits: Tuple[Commit, ...] = ()
    tags: Tuple[Tag, ...] = ()
    branches: Tuple[str, ...] = ()
    first_commit_at: Optional[datetime] = None
    last_commit_at: Optional[datetime] = None

    @classmethod
    def empty(cls) -> "History":
        return cls()

    @classmethod
    def from_commits(
        cls,
        commits: List[Commit],
        *,
        tags: List[Tag] | None = None,
        branches: List[str] | None = None,
    ) -> "History":
        """Build a history from newest-first commits, deriving authors and bounds."""
        authors: List[str] = []
        for commit in commits:
            if commit.author and commit.author not in authors:
                authors.append(commit.author)
        return cls(
            authors=tuple(authors),
            commits=tuple(commits),
            tags=tuple(tags or ()),
            branches=tuple(branches or ()),
            first_commit_at=commits[-1].timestamp if commits else None,
            last_commit_at=commits[0].timestamp if commits else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authors": list(self.authors),
            "totalCommits": len(self.commits),
            "firstCommitDate": self.first_commit_at.isoformat() if self.first_commit_at else None,
            "lastCommitDate": self.last_commit_at.isoformat() if self.last_commit_at else None,
            "branches": list(self.branches),
            "tags": [tag.name for tag in self.tags],
        }


class ChangeKind(str, Enum):
    """Changelog classification for a commit."""

    FEATURE = "feature"
    BUGFIX = "bugfix"
    IMPROVEMENT = "improvement"

    @property
    def heading(self) -> str:
        return _CHANGE_HEADINGS[self]


_CHANGE_HEADINGS = {
    ChangeKind.FEATURE: "Features",
    ChangeKind.BUGFIX: "Bug Fixes",
    ChangeKind.IMPROVEMENT: "Improvements",
}


class ClassCategory(str, Enum):
    """Architectural role guessed for a class from its name, methods and base types."""

    WIDGET = "widget"
    SERVICE = "service"
    MODEL = "model"


@dataclass(frozen=True)
class ClassifiedCommit:
    """Commit paired with its derived classification and cleaned summary."""

    commit: Commit
    kind: ChangeKind
    summary: str


@dataclass
class ClassInfo:
    """A class (or class-like declaration) discovered in a source file."""

    name: str
    methods: List[str] = field(default_factory=list)
    superclass: Optional[str] = None
    interfaces: List[str] = field(default_factory=list)
    category: Optional[ClassCategory] = None


@dataclass
class FileAnalysis:
    """Structure extracted from one source file."""

    path: str
    relative_path: str
    language: Optional[str]
    classes: List[ClassInfo] = field(default_factory=list)
    functions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("path", None)
        return payload


@dataclass
class ProjectMetadata:
    """Project-level facts used in overview and summary prompts."""

    name: str
    description: str = ""
    version: str = "unknown"
    dependencies: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProjectStructure:
    """Output of the structure provider: metadata plus ordered file analyses."""

    root: str
    metadata: ProjectMetadata
    files: Dict[str, FileAnalysis] = field(default_factory=dict)

    def files_with_classes(self) -> List[FileAnalysis]:
        return [analysis for analysis in self.files.values() if analysis.classes]

    def language_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for analysis in self.files.values():
            if analysis.language:
                counts[analysis.language] = counts.get(analysis.language, 0) + 1
        return counts

    def class_count(self) -> int:
        return sum(len(analysis.classes) for analysis in self.files.values())

    def components(self, category: ClassCategory) -> List[str]:
        """Return ``relative_path:ClassName`` for every class in ``category``, in file order."""
        return [
            f"{analysis.relative_path}:{info.name}"
            for analysis in self.files.values()
            for info in analysis.classes
            if info.category is category
        ]


@dataclass
class RunMetadata:
    """Timing and counts recorded for a pipeline run."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    model: str = ""
    overview_only: bool = False
    files_analyzed: int = 0
    files_documented: int = 0
    files_failed: int = 0
    commits: int = 0
    tags: int = 0

    def finish(self, finished_at: datetime) -> None:
        self.finished_at = finished_at
        self.duration_seconds = round((finished_at - self.started_at).total_seconds(), 3)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["started_at"] = self.started_at.isoformat()
        payload["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return payload


@dataclass
class DocumentationBundle:
    """Everything the pipeline hands to the writer."""

    metadata: RunMetadata
    overview: Optional[str] = None
    files: Dict[str, str] = field(default_factory=dict)
    changelog: Optional[str] = None
    summary: Optional[str] = None
    partial: bool = False
