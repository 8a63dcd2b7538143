"""Writes generated documentation to disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from .logging import get_logger
from .models import DocumentationBundle


class DocumentationWriter:
    """Lays out a :class:`DocumentationBundle` under an output directory.

    ``overview.md``, ``CHANGELOG.md``, ``README.md`` (project summary) and
    ``metadata.json`` sit at the top level; per-file documents live under
    ``code/`` mirroring the source tree.
    """

    def __init__(self, output_path: str | Path, *, logger: logging.Logger | None = None) -> None:
        self.output_path = Path(output_path).expanduser()
        self.logger = logger or get_logger("writer")

    def prepare(self) -> None:
        """Create the output directory; failures propagate to the caller."""
        self.output_path.mkdir(parents=True, exist_ok=True)

    def write(self, bundle: DocumentationBundle) -> List[Path]:
        self.prepare()
        written: List[Path] = []

        if bundle.overview is not None:
            written.append(self._write_text("overview.md", bundle.overview))

        for relative_path, content in bundle.files.items():
            written.append(self._write_text(f"code/{relative_path}.md", content))

        if bundle.changelog is not None:
            written.append(self._write_text("CHANGELOG.md", bundle.changelog))

        if bundle.summary is not None:
            written.append(self._write_text("README.md", bundle.summary))

        metadata = bundle.metadata.to_dict()
        metadata["partial"] = bundle.partial
        metadata_path = self.output_path / "metadata.json"
        metadata_path.write_text(json.dumps(metadata, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        written.append(metadata_path)

        self.logger.info("Wrote %d documents to %s", len(written), self.output_path)
        return written

    def _write_text(self, relative: str, content: str) -> Path:
        target = self.output_path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(normalize_markdown(content), encoding="utf-8")
        return target


def normalize_markdown(markdown: str) -> str:
    """Normalize line endings, blank lines around headings, and trailing whitespace."""
    normalized = markdown.replace("\r\n", "\n").replace("\r", "\n")
    cleaned: List[str] = []
    in_code = False
    previous_blank = False

    for line in normalized.split("\n"):
        stripped = line.rstrip()
        if stripped.startswith("```"):
            in_code = not in_code
            cleaned.append(stripped)
            previous_blank = False
            continue

        if not in_code:
            if stripped.startswith("#") and cleaned and cleaned[-1] != "":
                cleaned.append("")
            if not stripped:
                if previous_blank:
                    continue
                previous_blank = True
                cleaned.append("")
                continue

        cleaned.append(stripped)
        previous_blank = False

    while cleaned and cleaned[-1] == "":
        cleaned.pop()

    return "\n".join(cleaned) + "\n"


__all__ = ["DocumentationWriter", "normalize_markdown"]
