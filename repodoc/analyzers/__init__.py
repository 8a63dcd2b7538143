"""Code structure analysis."""

from .metadata import load_project_metadata
from .symbols import StructureAnalyzer

__all__ = ["StructureAnalyzer", "load_project_metadata"]
