"""Token parsing for package specifications.

A specification string is a ``;`` separated list of
``group:artifact[:version][:classifier][@packaging]`` tokens.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from depfetch.constants import Constants
from depfetch.errors import MalformedSpecError
from depfetch.versioning.models import (
    LATEST,
    ROOT,
    Coordinate,
    Exact,
    Request,
    Snapshot,
    VersionConstraint,
    VersionRange,
    WildcardPrefix,
)

logger = logging.getLogger(__name__)


def parse_version_constraint(token: str) -> VersionConstraint:
    """Parse a version token into a constraint.

    Args:
        token: Version text, e.g. ``1.0.0``, ``23.0.+``, ``[1.0,2.0]`` or
            ``1.0-SNAPSHOT``. Empty means latest.

    Returns:
        The matching constraint variant.

    Raises:
        ValueError: If the token is not a recognizable version shape.
    """
    if token is None or token == "":
        return LATEST
    if any(ch.isspace() for ch in token):
        raise ValueError("whitespace in version")

    if token[0] in "[(" or token[-1] in "])":
        return _parse_range(token)
    if any(ch in token for ch in "[]()"):
        raise ValueError("unbalanced brackets")

    if "+" in token:
        if token.index("+") != len(token) - 1:
            raise ValueError("'+' must be the last character")
        return WildcardPrefix(token[:-1])

    if token.upper().endswith(Constants.SNAPSHOT_SUFFIX):
        base = token[: -len(Constants.SNAPSHOT_SUFFIX)]
        if not base:
            raise ValueError("snapshot without base version")
        return Snapshot(base, token[len(base):])

    return Exact(token)


def _parse_range(token: str) -> VersionRange:
    if len(token) < 2 or token[0] not in "[(" or token[-1] not in "])":
        raise ValueError("unbalanced brackets")
    inner = token[1:-1]
    if any(ch in inner for ch in "[]()"):
        raise ValueError("nested brackets")
    if not inner:
        raise ValueError("empty range")
    low_inclusive = token[0] == "["
    high_inclusive = token[-1] == "]"
    bounds = inner.split(",")
    if len(bounds) > 2:
        raise ValueError("more than two range bounds")
    if len(bounds) == 1:
        if not (low_inclusive and high_inclusive):
            raise ValueError("single version range must use [ ]")
        return VersionRange(inner, inner)
    low, high = bounds
    if not low and not high:
        raise ValueError("range without bounds")
    return VersionRange(low, high, low_inclusive, high_inclusive)


def parse_package_spec(token: str) -> Request:
    """Parse one ``group:artifact[:version][:classifier][@packaging]`` token.

    Raises:
        MalformedSpecError: If the token cannot be parsed.
    """
    raw = token.strip()
    if not raw:
        raise MalformedSpecError(token, "empty specification")
    if any(ch.isspace() for ch in raw):
        raise MalformedSpecError(raw, "whitespace inside specification")

    body, packaging = raw, None
    if "@" in raw:
        body, packaging = raw.rsplit("@", 1)
        if not packaging:
            raise MalformedSpecError(raw, "empty packaging after '@'")

    parts = body.split(":")
    if len(parts) < 2:
        raise MalformedSpecError(raw, "expected group:artifact")
    if len(parts) > 4:
        raise MalformedSpecError(raw, "too many ':' separated fields")
    group, artifact = parts[0], parts[1]
    if not group or not artifact:
        raise MalformedSpecError(raw, "group and artifact must not be empty")
    version = parts[2] if len(parts) > 2 else ""
    classifier = parts[3] if len(parts) > 3 and parts[3] else None

    try:
        constraint = parse_version_constraint(version)
    except ValueError as exc:
        raise MalformedSpecError(raw, str(exc)) from exc

    return Request(
        coordinate=Coordinate(group, artifact, classifier, packaging),
        constraint=constraint,
        requested_by=frozenset({ROOT}),
        raw=raw,
    )


def parse_package_specs(text: str) -> Tuple[List[Request], List[MalformedSpecError]]:
    """Parse a ``;`` separated specification list.

    Malformed tokens are collected instead of aborting so the remaining
    specifications still resolve.

    Returns:
        Tuple of (requests, errors) in input order.
    """
    requests: List[Request] = []
    errors: List[MalformedSpecError] = []
    for segment in (text or "").split(";"):
        if not segment.strip():
            continue
        try:
            requests.append(parse_package_spec(segment))
        except MalformedSpecError as exc:
            logger.error(str(exc))
            errors.append(exc)
    return requests, errors
