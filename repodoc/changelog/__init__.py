"""Changelog synthesis: message normalization, tag ordering, rendering."""

from .normalizer import classify, clean, group_commits
from .ordering import compare_tags, parse_semver, sort_tags
from .synthesizer import ChangelogSynthesizer

__all__ = [
    "ChangelogSynthesizer",
    "classify",
    "clean",
    "compare_tags",
    "group_commits",
    "parse_semver",
    "sort_tags",
]
