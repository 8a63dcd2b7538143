"""Tests for repodoc.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from repodoc.config import (
    BatchConfig,
    ChangelogConfig,
    LLMConfig,
    RepoDocConfig,
    load_config,
    parse_config,
)
from repodoc.errors import ConfigError


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, RepoDocConfig)
    assert config.project_path == tmp_path.resolve()
    assert config.output_path is None
    assert config.resolved_output_path == tmp_path.resolve() / "docs"
    assert config.llm == LLMConfig()
    assert config.batch == BatchConfig(size=10, delay=2.0)
    assert config.changelog == ChangelogConfig(max_tags=None, months_per_request=2)
    assert config.exclude_paths == []
    assert config.overview_only is False


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".repodoc.yml"
    config_file.write_text(
        """
project_path: src
output_path: build/docs
max_files: 200
overview_only: true
exclude_paths: ["build/", "*.g.dart"]
llm:
  model: "codellama:13b"
  base_url: "http://localhost:11434"
  temperature: 0.2
  context_length: 8192
  request_timeout: 60
  probe_timeout: 2
  max_retries: 4
  retry_delay: 1
batch:
  size: 5
  delay: 0.5
changelog:
  max_tags: 10
  months_per_request: 3
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.project_path == (tmp_path / "src").resolve()
    assert config.output_path == (tmp_path / "build" / "docs").resolve()
    assert config.max_files == 200
    assert config.overview_only is True
    assert config.exclude_paths == ["build/", "*.g.dart"]
    assert config.llm.model == "codellama:13b"
    assert config.llm.base_url == "http://localhost:11434"
    assert config.llm.temperature == pytest.approx(0.2)
    assert config.llm.context_length == 8192
    assert config.llm.request_timeout == pytest.approx(60.0)
    assert config.llm.probe_timeout == pytest.approx(2.0)
    assert config.llm.max_retries == 4
    assert config.llm.retry_delay == pytest.approx(1.0)
    assert config.batch == BatchConfig(size=5, delay=0.5)
    assert config.changelog == ChangelogConfig(max_tags=10, months_per_request=3)


def test_load_config_accepts_empty_file(tmp_path: Path) -> None:
    (tmp_path / ".repodoc.yml").write_text("", encoding="utf-8")

    assert load_config(tmp_path).llm.model == "deepseek-coder"


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({"unknown": 1}, "Unknown configuration keys: unknown"),
        ({"llm": {"modle": "x"}}, "llm.modle"),
        ({"llm": "deepseek"}, "'llm' must be a mapping"),
        ({"llm": {"temperature": "hot"}}, "llm.temperature"),
        ({"batch": {"size": 0}}, "batch.size"),
        ({"changelog": {"max_tags": 0}}, "changelog.max_tags"),
        ({"overview_only": "maybe"}, "overview_only"),
        ({"exclude_paths": [1, 2]}, "exclude_paths"),
        ({"llm": {"max_retries": True}}, "llm.max_retries"),
    ],
)
def test_parse_config_rejects_invalid_values(tmp_path: Path, data, message: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        parse_config(data, root=tmp_path)

    assert message in str(excinfo.value)


def test_load_config_reports_yaml_errors(tmp_path: Path) -> None:
    config_file = tmp_path / ".repodoc.yml"
    config_file.write_text("llm: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to parse .repodoc.yml"):
        load_config(config_file)


def test_with_overrides_applies_only_given_values(tmp_path: Path) -> None:
    config = RepoDocConfig(project_path=tmp_path)

    updated = config.with_overrides(
        llm__model="llama3",
        llm__temperature=None,
        batch__size=3,
        max_files=None,
        output_path=str(tmp_path / "out"),
    )

    assert updated.llm.model == "llama3"
    assert updated.llm.temperature == pytest.approx(0.1)
    assert updated.batch.size == 3
    assert updated.batch.delay == pytest.approx(2.0)
    assert updated.max_files is None
    assert updated.output_path == tmp_path / "out"
    assert config.llm.model == "deepseek-coder"


def test_with_overrides_validates_result(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="batch.size"):
        RepoDocConfig(project_path=tmp_path).with_overrides(batch__size=0)
