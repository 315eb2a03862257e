"""Maven-style version ordering.

Versions that ``packaging`` can parse are ordered by ``packaging.version``.
Anything else (``1.0-SNAPSHOT``, ``2.5.RELEASE``) is split on ``.`` and
``-``: numeric segments compare as integers, qualifiers compare
case-insensitively and a numeric segment outranks a qualifier, so
``1.0-SNAPSHOT`` sorts below ``1.0``.
"""

from __future__ import annotations

import re
from functools import cmp_to_key
from typing import Iterable, List, Optional, Union

from packaging import version

from depfetch.constants import Constants

_SEPARATORS = re.compile(r"[.\-]")

Segment = Union[int, str]


def _parse(text: str) -> Optional[version.Version]:
    try:
        return version.Version(text)
    except version.InvalidVersion:
        return None


def _segments(text: str) -> List[Segment]:
    parts: List[Segment] = []
    for token in _SEPARATORS.split(text.strip()):
        if token.isdigit():
            parts.append(int(token))
        else:
            parts.append(token.lower())
    return parts


def _compare_segment(left: Optional[Segment], right: Optional[Segment]) -> int:
    # A missing segment pads as 0 against numbers, and outranks a qualifier.
    if left is None:
        if isinstance(right, int):
            left = 0
        else:
            return 1
    if right is None:
        if isinstance(left, int):
            right = 0
        else:
            return -1
    if isinstance(left, int) and isinstance(right, int):
        return (left > right) - (left < right)
    if isinstance(left, int):
        return 1
    if isinstance(right, int):
        return -1
    return (left > right) - (left < right)


def _compare_segments(left: str, right: str) -> int:
    lhs, rhs = _segments(left), _segments(right)
    for index in range(max(len(lhs), len(rhs))):
        a = lhs[index] if index < len(lhs) else None
        b = rhs[index] if index < len(rhs) else None
        result = _compare_segment(a, b)
        if result:
            return result
    return 0


def compare_versions(left: str, right: str) -> int:
    """Three-way comparison of two version strings.

    Returns:
        Negative, zero or positive like ``cmp``. Versions that compare equal
        (``1.0`` and ``1.0.0``) fall back to the raw strings so the order is
        total.
    """
    lhs, rhs = _parse(left), _parse(right)
    if lhs is not None and rhs is not None:
        result = (lhs > rhs) - (lhs < rhs)
    else:
        result = _compare_segments(left, right)
    if result:
        return result
    return (left > right) - (left < right)


version_key = cmp_to_key(compare_versions)


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Return unique versions sorted ascending."""
    return sorted(set(versions), key=version_key)


def is_snapshot(text: str) -> bool:
    """Return True for ``-SNAPSHOT`` versions."""
    return text.upper().endswith(Constants.SNAPSHOT_SUFFIX)


def pick_highest(versions: Iterable[str]) -> Optional[str]:
    """Pick the highest stable version, or the highest snapshot if none is stable."""
    candidates = list(versions)
    if not candidates:
        return None
    stable = [v for v in candidates if not is_snapshot(v)]
    pool = stable or candidates
    return max(pool, key=version_key)
