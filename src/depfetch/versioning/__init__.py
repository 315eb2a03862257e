"""Coordinate and version-constraint model, parsing and ordering."""

from .models import (
    LATEST,
    ROOT,
    ConstraintKind,
    Coordinate,
    Exact,
    MissingArtifact,
    Modification,
    Request,
    ResolutionResult,
    ResolvedArtifact,
    Snapshot,
    VersionConstraint,
    VersionRange,
    WildcardPrefix,
)
from .parser import parse_package_spec, parse_package_specs, parse_version_constraint
from .version import compare_versions, pick_highest, sort_versions

__all__ = [
    "LATEST",
    "ROOT",
    "ConstraintKind",
    "Coordinate",
    "Exact",
    "MissingArtifact",
    "Modification",
    "Request",
    "ResolutionResult",
    "ResolvedArtifact",
    "Snapshot",
    "VersionConstraint",
    "VersionRange",
    "WildcardPrefix",
    "parse_package_spec",
    "parse_package_specs",
    "parse_version_constraint",
    "compare_versions",
    "pick_highest",
    "sort_versions",
]
