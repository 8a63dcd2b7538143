from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.fake_git import FakeRepo


@pytest.fixture
def fake_repo(tmp_path: Path) -> FakeRepo:
    """Provide an empty scripted git repository rooted at the pytest tmp_path."""
    return FakeRepo(root=tmp_path / "repo")
