"""Tests for repodoc.writer."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from repodoc.models import DocumentationBundle, RunMetadata
from repodoc.writer import DocumentationWriter, normalize_markdown


def _bundle(**kwargs) -> DocumentationBundle:
    metadata = RunMetadata(started_at=datetime(2024, 4, 1, 12, 0, tzinfo=timezone.utc), model="llama3")
    metadata.finish(datetime(2024, 4, 1, 12, 0, 30, tzinfo=timezone.utc))
    return DocumentationBundle(metadata=metadata, **kwargs)


def test_write_lays_out_documents(tmp_path: Path) -> None:
    writer = DocumentationWriter(tmp_path / "docs")
    bundle = _bundle(
        overview="# Overview\nText",
        files={"src/app.py": "# app.py\n\nDocs", "lib/util.ts": "# util"},
        changelog="# Changelog\n",
        summary="# Demo\n",
    )

    written = writer.write(bundle)

    docs = tmp_path / "docs"
    assert (docs / "overview.md").read_text(encoding="utf-8") == "# Overview\nText\n"
    assert (docs / "code" / "src" / "app.py.md").read_text(encoding="utf-8") == "# app.py\n\nDocs\n"
    assert (docs / "code" / "lib" / "util.ts.md").exists()
    assert (docs / "CHANGELOG.md").exists()
    assert (docs / "README.md").read_text(encoding="utf-8") == "# Demo\n"
    assert docs / "metadata.json" in written
    assert len(written) == 6

    metadata = json.loads((docs / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["model"] == "llama3"
    assert metadata["duration_seconds"] == pytest.approx(30.0)
    assert metadata["started_at"] == "2024-04-01T12:00:00+00:00"
    assert metadata["partial"] is False


def test_write_skips_missing_sections(tmp_path: Path) -> None:
    writer = DocumentationWriter(tmp_path / "docs")

    written = writer.write(_bundle(files={"a.py": "doc"}, partial=True))

    assert [path.name for path in written] == ["a.py.md", "metadata.json"]
    metadata = json.loads((tmp_path / "docs" / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["partial"] is True


def test_prepare_propagates_filesystem_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "taken"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(OSError):
        DocumentationWriter(blocker / "docs").prepare()


def test_normalize_markdown_collapses_blank_lines_outside_code() -> None:
    markdown = "# Title\r\nIntro   \n\n\n\n## Section\n```python\nx = 1\n\n\ny = 2\n```\n\n\n"

    assert normalize_markdown(markdown) == (
        "# Title\nIntro\n\n## Section\n```python\nx = 1\n\n\ny = 2\n```\n"
    )
