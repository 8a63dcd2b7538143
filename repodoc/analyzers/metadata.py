"""Project metadata discovery from package manifests."""

from __future__ import annotations

import json
import re
import tomllib
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..models import ProjectMetadata


def load_project_metadata(root: Path) -> ProjectMetadata:
    """Read name, description, version, and dependencies from the first manifest found."""
    for loader in (_from_pyproject, _from_package_json, _from_pubspec):
        metadata = loader(root)
        if metadata is not None:
            return metadata
    return ProjectMetadata(name=root.name or "unknown", description="No package manifest found")


def _from_pyproject(root: Path) -> ProjectMetadata | None:
    path = root / "pyproject.toml"
    if not path.exists():
        return None
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return None

    project = data.get("project")
    if not isinstance(project, dict):
        poetry = data.get("tool", {}).get("poetry") if isinstance(data.get("tool"), dict) else None
        project = poetry if isinstance(poetry, dict) else {}

    raw_deps = project.get("dependencies") or []
    names: List[str] = []
    if isinstance(raw_deps, dict):
        names = [name for name in raw_deps if name.lower() != "python"]
    elif isinstance(raw_deps, list):
        for dep in raw_deps:
            if isinstance(dep, str):
                name = re.split(r"[<>=!~;\[ ]", dep, maxsplit=1)[0].strip()
                if name:
                    names.append(name)
    return _metadata(root, project, sorted(set(names)))


def _from_package_json(root: Path) -> ProjectMetadata | None:
    path = root / "package.json"
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    deps = data.get("dependencies")
    return _metadata(root, data, sorted(deps) if isinstance(deps, dict) else [])


def _from_pubspec(root: Path) -> ProjectMetadata | None:
    path = root / "pubspec.yaml"
    if not path.exists():
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return None
    if not isinstance(data, dict):
        return None
    deps = data.get("dependencies")
    return _metadata(root, data, sorted(str(key) for key in deps) if isinstance(deps, dict) else [])


def _metadata(root: Path, data: Dict[str, Any], dependencies: List[str]) -> ProjectMetadata:
    return ProjectMetadata(
        name=str(data.get("name") or root.name or "unknown"),
        description=str(data.get("description") or ""),
        version=str(data.get("version") or "unknown"),
        dependencies=dependencies,
    )


__all__ = ["load_project_metadata"]
