"""Data models for coordinates, version constraints and resolution results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, FrozenSet, Optional, Tuple, Union

from depfetch.constants import Constants
from depfetch.versioning.version import compare_versions

ROOT = "root"

# Type alias for the conflict identity (group, artifact).
Identity = Tuple[str, str]


class ConstraintKind(Enum):
    """Closed set of version constraint shapes."""
    EXACT = "exact"
    WILDCARD = "wildcard"
    RANGE = "range"
    SNAPSHOT = "snapshot"


def _wildcard_parent(version: str) -> str:
    """Return the wildcard prefix one level above ``version`` ("2.0.2" -> "2.0.")."""
    trimmed = version.rstrip(".")
    if "." not in trimmed:
        return ""
    return trimmed.rsplit(".", 1)[0] + "."


@dataclass(frozen=True)
class Exact:
    """Satisfied only by the identical version string."""
    version: str
    kind: ClassVar[ConstraintKind] = ConstraintKind.EXACT

    def satisfies(self, version: str) -> bool:
        return version == self.version

    def render(self) -> str:
        return self.version

    def specificity(self) -> Tuple[int, int]:
        return (3, 0)

    def relax(self) -> Optional["WildcardPrefix"]:
        return WildcardPrefix(_wildcard_parent(self.version))


@dataclass(frozen=True)
class WildcardPrefix:
    """Gradle dynamic version: ``23.0.+`` is stored as prefix ``23.0.``."""
    prefix: str
    kind: ClassVar[ConstraintKind] = ConstraintKind.WILDCARD

    def satisfies(self, version: str) -> bool:
        return version.startswith(self.prefix)

    def render(self) -> str:
        return self.prefix + "+"

    def specificity(self) -> Tuple[int, int]:
        return (1, self.prefix.count("."))

    def relax(self) -> Optional["WildcardPrefix"]:
        if not self.prefix:
            return None
        return WildcardPrefix(_wildcard_parent(self.prefix))


@dataclass(frozen=True)
class VersionRange:
    """Maven range; an empty bound is open."""
    low: str
    high: str
    low_inclusive: bool = True
    high_inclusive: bool = True
    kind: ClassVar[ConstraintKind] = ConstraintKind.RANGE

    @property
    def pinned(self) -> bool:
        """True for single-version ranges such as ``[1.2.3]``."""
        return bool(self.low) and self.low == self.high and self.low_inclusive and self.high_inclusive

    def satisfies(self, version: str) -> bool:
        if self.pinned:
            return version == self.low
        if self.low:
            cmp = compare_versions(version, self.low)
            if cmp < 0 or (cmp == 0 and not self.low_inclusive):
                return False
        if self.high:
            cmp = compare_versions(version, self.high)
            if cmp > 0 or (cmp == 0 and not self.high_inclusive):
                return False
        return True

    def render(self) -> str:
        if self.pinned:
            return f"[{self.low}]"
        opening = "[" if self.low_inclusive else "("
        closing = "]" if self.high_inclusive else ")"
        return f"{opening}{self.low},{self.high}{closing}"

    def specificity(self) -> Tuple[int, int]:
        return (3, 0) if self.pinned else (2, 0)

    def relax(self) -> Optional["WildcardPrefix"]:
        return LATEST


@dataclass(frozen=True)
class Snapshot:
    """Satisfied only by ``<base>-SNAPSHOT``, spelled as requested."""
    base: str
    suffix: str = Constants.SNAPSHOT_SUFFIX
    kind: ClassVar[ConstraintKind] = ConstraintKind.SNAPSHOT

    def satisfies(self, version: str) -> bool:
        return version == self.render()

    def render(self) -> str:
        return self.base + self.suffix

    def specificity(self) -> Tuple[int, int]:
        return (3, 0)

    def relax(self) -> None:
        return None


VersionConstraint = Union[Exact, WildcardPrefix, VersionRange, Snapshot]

LATEST = WildcardPrefix("")


def floor_of(constraint: VersionConstraint) -> Optional[str]:
    """Lowest version a forced upgrade may pick for ``constraint``, if bounded."""
    if isinstance(constraint, Exact):
        return constraint.version
    if isinstance(constraint, VersionRange) and constraint.low:
        return constraint.low
    return None


@dataclass(frozen=True)
class Coordinate:
    """Maven coordinate; conflicts are keyed on (group, artifact) only."""
    group: str
    artifact: str
    classifier: Optional[str] = None
    packaging: Optional[str] = None

    @property
    def identity(self) -> Identity:
        return (self.group, self.artifact)

    @property
    def key(self) -> str:
        return f"{self.group}:{self.artifact}"

    def with_packaging(self, packaging: Optional[str]) -> "Coordinate":
        return replace(self, packaging=packaging)

    def render(self, version: str, include_packaging: bool = True) -> str:
        """Render ``group:artifact:version[:classifier][@packaging]``."""
        text = f"{self.key}:{version}"
        if self.classifier:
            text += f":{self.classifier}"
        if include_packaging and self.packaging:
            text += f"@{self.packaging}"
        return text


@dataclass(frozen=True)
class Request:
    """A constraint on a coordinate, tagged with who asked for it."""
    coordinate: Coordinate
    constraint: VersionConstraint
    requested_by: FrozenSet[str] = field(default_factory=lambda: frozenset({ROOT}))
    raw: Optional[str] = None

    @property
    def identity(self) -> Identity:
        return self.coordinate.identity

    @property
    def is_root(self) -> bool:
        return ROOT in self.requested_by


@dataclass(frozen=True)
class ResolvedArtifact:
    """One concrete artifact chosen for an identity."""
    coordinate: Coordinate
    version: str
    repository: str
    requests: Tuple[Request, ...] = ()
    content: Optional[bytes] = field(default=None, repr=False, compare=False)
    jetified: bool = False

    @property
    def identity(self) -> Identity:
        return self.coordinate.identity

    @property
    def packaging(self) -> str:
        return self.coordinate.packaging or Constants.DEFAULT_PACKAGING

    @property
    def extension(self) -> str:
        return Constants.PACKAGING_EXTENSION_OVERRIDES.get(self.packaging, self.packaging)

    @property
    def filename(self) -> str:
        """``group.artifact-version[-classifier].ext``"""
        name = f"{self.coordinate.group}.{self.coordinate.artifact}-{self.version}"
        if self.coordinate.classifier:
            name += f"-{self.coordinate.classifier}"
        return f"{name}.{self.extension}"


@dataclass(frozen=True)
class MissingArtifact:
    """An identity for which no repository offered any version."""
    coordinate: Coordinate
    constraint: VersionConstraint

    def render(self) -> str:
        if isinstance(self.constraint, Snapshot):
            return f"{self.coordinate.key}:{self.constraint.render()}"
        return f"{self.coordinate.key}:+"


@dataclass(frozen=True)
class Modification:
    """A root request whose outcome differs from what was asked for."""
    identity: Identity
    original: str
    resolved: str

    def render(self) -> str:
        return f"{self.original}{Constants.MODIFIED_SEPARATOR}{self.resolved}"


@dataclass(frozen=True)
class ResolutionResult:
    """Immutable outcome of one resolution pass."""
    artifacts: Tuple[ResolvedArtifact, ...] = ()
    missing: Tuple[MissingArtifact, ...] = ()
    modified: Tuple[Modification, ...] = ()
    requests: Tuple[Request, ...] = ()

    def artifact_for(self, identity: Identity) -> Optional[ResolvedArtifact]:
        for artifact in self.artifacts:
            if artifact.identity == identity:
                return artifact
        return None
