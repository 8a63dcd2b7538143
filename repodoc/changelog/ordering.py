"""Release tag ordering."""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Iterable, List, Optional, Tuple

_SEMVER = re.compile(r"v?(\d+)\.(\d+)\.(\d+)")


def parse_semver(name: str) -> Optional[Tuple[int, int, int]]:
    """Return ``(major, minor, patch)`` for names like ``v1.2.3`` or ``1.2.3``."""
    match = _SEMVER.fullmatch(name)
    if match is None:
        return None
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def compare_tags(a: str, b: str) -> int:
    """Comparator placing newer tags first.

    Two semver names compare component by component, stopping at the first
    difference. Any pair involving a non-semver name compares the full strings
    in reverse lexical order. The comparator is applied pairwise, so a mixed set
    is ordered only as far as these pairwise answers allow.
    """
    version_a = parse_semver(a)
    version_b = parse_semver(b)
    if version_a is not None and version_b is not None:
        for left, right in zip(version_a, version_b):
            if left != right:
                return -1 if left > right else 1
        return 0
    if a == b:
        return 0
    return -1 if a > b else 1


def sort_tags(names: Iterable[str]) -> List[str]:
    """Return tag names newest first according to :func:`compare_tags`."""
    return sorted(names, key=cmp_to_key(compare_tags))


__all__ = ["compare_tags", "parse_semver", "sort_tags"]
