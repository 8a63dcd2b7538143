"""Configuration loading for repodoc (.repodoc.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".repodoc.yml"


@dataclass(frozen=True)
class LLMConfig:
    """Generation backend settings."""

    model: str = "deepseek-coder"
    base_url: Optional[str] = None
    temperature: float = 0.1
    context_length: int = 4096
    request_timeout: float = 120.0
    probe_timeout: float = 5.0
    max_retries: int = 3
    retry_delay: float = 5.0


@dataclass(frozen=True)
class BatchConfig:
    """Per-file generation batching."""

    size: int = 10
    delay: float = 2.0


@dataclass(frozen=True)
class ChangelogConfig:
    """Changelog synthesis limits."""

    max_tags: Optional[int] = None
    months_per_request: int = 2


@dataclass(frozen=True)
class RepoDocConfig:
    """Represents the settings defined in .repodoc.yml merged with CLI flags."""

    project_path: Path = Path(".")
    output_path: Optional[Path] = None
    max_files: Optional[int] = None
    overview_only: bool = False
    exclude_paths: List[str] = field(default_factory=list)
    llm: LLMConfig = field(default_factory=LLMConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    changelog: ChangelogConfig = field(default_factory=ChangelogConfig)

    @property
    def resolved_output_path(self) -> Path:
        if self.output_path is not None:
            return self.output_path
        return self.project_path / "docs"

    def with_overrides(self, **overrides: Any) -> "RepoDocConfig":
        """Return a copy with non-``None`` overrides applied.

        Keys are top-level field names or ``section__field`` for nested values,
        for example ``llm__model`` or ``batch__size``.
        """
        top: Dict[str, Any] = {}
        nested: Dict[str, Dict[str, Any]] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if "__" in key:
                section, name = key.split("__", 1)
                nested.setdefault(section, {})[name] = value
            else:
                top[key] = value
        for section, values in nested.items():
            current = getattr(self, section)
            merged = {**_section_values(current), **values}
            top[section] = _build_section(type(current), merged, section)
        if "project_path" in top:
            top["project_path"] = Path(top["project_path"]).expanduser()
        if "output_path" in top:
            top["output_path"] = Path(top["output_path"]).expanduser()
        updated = replace(self, **top)
        _validate(updated)
        return updated


_SECTIONS: Dict[str, type] = {
    "llm": LLMConfig,
    "batch": BatchConfig,
    "changelog": ChangelogConfig,
}

_TOP_LEVEL_KEYS = {
    "project_path",
    "output_path",
    "max_files",
    "overview_only",
    "exclude_paths",
    *_SECTIONS,
}


def load_config(config_path: Path) -> RepoDocConfig:
    """Load configuration from disk, returning defaults when the file is absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent

    if not config_file.exists():
        return RepoDocConfig(project_path=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")
    return parse_config(data, root=root)


def parse_config(data: Mapping[str, Any], *, root: Path) -> RepoDocConfig:
    """Validate a raw mapping and build the typed configuration."""
    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    sections: Dict[str, Any] = {}
    for name, section_type in _SECTIONS.items():
        raw = data.get(name)
        if raw is None:
            sections[name] = section_type()
            continue
        if not isinstance(raw, dict):
            raise ConfigError(f"'{name}' must be a mapping")
        sections[name] = _build_section(section_type, raw, name)

    project_value = _as_str(data.get("project_path"), "project_path")
    output_value = _as_str(data.get("output_path"), "output_path")
    config = RepoDocConfig(
        project_path=_resolve_path(root, project_value) if project_value else root,
        output_path=_resolve_path(root, output_value) if output_value else None,
        max_files=_as_int(data.get("max_files"), "max_files"),
        overview_only=_as_bool(data.get("overview_only"), "overview_only") or False,
        exclude_paths=_as_str_list(data.get("exclude_paths"), "exclude_paths"),
        **sections,
    )
    _validate(config)
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _resolve_path(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if path.is_absolute():
        return path
    return (root / path).resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _section_values(section: Any) -> Dict[str, Any]:
    return {item.name: getattr(section, item.name) for item in fields(section)}


def _build_section(section_type: type, raw: Mapping[str, Any], prefix: str) -> Any:
    known = {item.name: item for item in fields(section_type)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        qualified = ", ".join(f"{prefix}.{key}" for key in unknown)
        raise ConfigError(f"Unknown configuration keys: {qualified}")

    values: Dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        expected = known[key].type
        label = f"{prefix}.{key}"
        if "float" in str(expected):
            values[key] = _as_float(value, label)
        elif "int" in str(expected):
            values[key] = _as_int(value, label)
        else:
            values[key] = _as_str(value, label)
    return section_type(**values)


def _validate(config: RepoDocConfig) -> None:
    llm = config.llm
    if not llm.model:
        raise ConfigError("llm.model must not be empty")
    if not 0.0 <= llm.temperature <= 2.0:
        raise ConfigError("llm.temperature must be between 0.0 and 2.0")
    # The truncation heuristic keeps context_length * 4 - 100 characters.
    if llm.context_length < 32:
        raise ConfigError("llm.context_length must be at least 32")
    if llm.request_timeout <= 0 or llm.probe_timeout <= 0:
        raise ConfigError("llm timeouts must be positive")
    if llm.max_retries < 1:
        raise ConfigError("llm.max_retries must be at least 1")
    if llm.retry_delay < 0:
        raise ConfigError("llm.retry_delay must not be negative")
    if config.batch.size < 1:
        raise ConfigError("batch.size must be at least 1")
    if config.batch.delay < 0:
        raise ConfigError("batch.delay must not be negative")
    if config.changelog.max_tags is not None and config.changelog.max_tags < 1:
        raise ConfigError("changelog.max_tags must be at least 1")
    if config.changelog.months_per_request < 1:
        raise ConfigError("changelog.months_per_request must be at least 1")
    if config.max_files is not None and config.max_files < 1:
        raise ConfigError("max_files must be at least 1")


def _as_str(value: Any, key: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ConfigError(f"'{key}' must be a string")
    return str(value)


def _as_float(value: Any, key: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    raise ConfigError(f"'{key}' must be a number")


def _as_int(value: Any, key: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise ConfigError(f"'{key}' must be an integer")


def _as_bool(value: Any, key: str) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    raise ConfigError(f"'{key}' must be a boolean")


def _as_str_list(value: Any, key: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        result: List[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigError(f"'{key}' must contain only strings")
            result.append(item)
        return result
    raise ConfigError(f"'{key}' must be a list of strings")


__all__ = [
    "BatchConfig",
    "CONFIG_FILENAME",
    "ChangelogConfig",
    "ConfigError",
    "LLMConfig",
    "RepoDocConfig",
    "load_config",
    "parse_config",
]
