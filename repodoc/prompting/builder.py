"""Builds prompts for the generation backend from Jinja2 templates."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..models import ClassCategory, FileAnalysis, History, ProjectStructure

DEFAULT_TEMPLATES_DIR = Path(__file__).with_name("templates")
MAX_FILE_CHARS = 10000
MAX_LISTED_COMPONENTS = 20
FILE_TRUNCATION_NOTE = "\n... (content truncated for length)"

_FENCE_LANGUAGES = {
    "Python": "python",
    "Java": "java",
    "TypeScript": "typescript",
    "JavaScript": "javascript",
    "Go": "go",
    "Rust": "rust",
    "Dart": "dart",
    "Kotlin": "kotlin",
    "C#": "csharp",
}


@dataclass(frozen=True)
class MonthGroup:
    """Commit entries for one calendar month (``YYYY-MM``)."""

    month: str
    entries: Sequence[str]


class PromptBuilder:
    """Renders the overview, per-file, summary, and changelog prompts."""

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        max_file_chars: int = MAX_FILE_CHARS,
    ) -> None:
        self.templates_dir = templates_dir
        self.max_file_chars = max_file_chars
        self._env = self._create_env(templates_dir)

    def overview(self, structure: ProjectStructure) -> str:
        return self._render(
            "overview.md.j2",
            metadata=structure.metadata,
            file_count=len(structure.files),
            class_count=structure.class_count(),
            languages=structure.language_counts(),
            widgets=structure.components(ClassCategory.WIDGET),
            services=structure.components(ClassCategory.SERVICE),
            models=structure.components(ClassCategory.MODEL),
            max_components=MAX_LISTED_COMPONENTS,
        )

    def file_documentation(
        self, analysis: FileAnalysis, content: str, project_name: str
    ) -> str:
        if len(content) > self.max_file_chars:
            content = content[: self.max_file_chars] + FILE_TRUNCATION_NOTE
        return self._render(
            "file.md.j2",
            analysis=analysis,
            analysis_json=json.dumps(analysis.to_dict(), indent=2),
            content=content,
            language=analysis.language,
            fence_language=_FENCE_LANGUAGES.get(analysis.language or "", ""),
            project_name=project_name,
        )

    def summary(self, structure: ProjectStructure, history: History) -> str:
        return self._render(
            "summary.md.j2",
            metadata=structure.metadata,
            metadata_json=json.dumps(structure.metadata.to_dict(), indent=2),
            history_json=json.dumps(
                {
                    "authors": list(history.authors),
                    "firstCommitDate": _iso(history.first_commit_at),
                    "lastCommitDate": _iso(history.last_commit_at),
                    "totalCommits": len(history.commits),
                },
                indent=2,
            ),
        )

    def changelog_months(self, months: Sequence[MonthGroup]) -> str:
        return self._render("changelog_months.md.j2", months=list(months))

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context).strip() + "\n"

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(DEFAULT_TEMPLATES_DIR))
        loader = FileSystemLoader(list(dict.fromkeys(directories)))
        return Environment(
            loader=loader,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )


def _iso(value) -> str | None:  # type: ignore[no-untyped-def]
    return value.isoformat() if value is not None else None


__all__ = ["MonthGroup", "PromptBuilder"]
