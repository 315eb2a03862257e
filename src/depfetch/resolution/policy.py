"""Version-lock (lock-step) families.

Some library families are only compatible when every member shares a single
version, e.g. the legacy Android support libraries. Predicates decide family
membership so exemptions such as ``firebase-*-unity`` stay declarative.
"""
from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Protocol, Sequence, Tuple

from depfetch.registry.repository_set import RepositorySet
from depfetch.versioning.models import Coordinate, Identity
from depfetch.versioning.version import is_snapshot, version_key

logger = logging.getLogger(__name__)


class CoordinatePredicate(Protocol):  # pylint: disable=too-few-public-methods
    """Anything that can tell whether an identity belongs to a set."""

    def matches(self, identity: Identity) -> bool:
        ...


@dataclass(frozen=True)
class GroupArtifactPredicate:
    """Glob match on group and artifact."""
    group: str
    artifact: str = "*"

    def matches(self, identity: Identity) -> bool:
        group, artifact = identity
        return fnmatch.fnmatchcase(group, self.group) and fnmatch.fnmatchcase(artifact, self.artifact)


@dataclass(frozen=True)
class LockFamily:
    """Identities that must resolve to the same version."""
    name: str
    members: Tuple[CoordinatePredicate, ...]
    exemptions: Tuple[CoordinatePredicate, ...] = ()

    def contains(self, identity: Identity) -> bool:
        if any(p.matches(identity) for p in self.exemptions):
            return False
        return any(p.matches(identity) for p in self.members)


DEFAULT_LOCK_FAMILIES: Tuple[LockFamily, ...] = (
    LockFamily(
        name="android-support",
        members=(GroupArtifactPredicate("com.android.support"),),
        exemptions=(GroupArtifactPredicate("com.android.support", "multidex*"),),
    ),
    LockFamily(
        name="google-play-services",
        members=(
            GroupArtifactPredicate("com.google.android.gms", "play-services*"),
            GroupArtifactPredicate("com.google.firebase", "firebase-*"),
        ),
        exemptions=(GroupArtifactPredicate("com.google.firebase", "firebase-*-unity"),),
    ),
)


class VersionLockPolicy:
    """Aligns lock family members on the highest version chosen in the family."""

    def __init__(self, families: Optional[Sequence[LockFamily]] = None):
        self.families = tuple(DEFAULT_LOCK_FAMILIES if families is None else families)

    def family_of(self, identity: Identity) -> Optional[LockFamily]:
        for family in self.families:
            if family.contains(identity):
                return family
        return None

    def align(self, choices: Mapping[Identity, str], repositories: RepositorySet) -> Dict[Identity, str]:
        """Return the pins needed to bring every family onto one version.

        A release version is only pinned where the repository set has it. A
        snapshot target is pinned on every member; members without that
        snapshot end up missing.

        Args:
            choices: Currently chosen version per identity.
            repositories: Used to check that the aligned version exists.

        Returns:
            Mapping of identity to the version it must be pinned to.
        """
        pins: Dict[Identity, str] = {}
        for family in self.families:
            members = sorted(i for i in choices if family.contains(i))
            if len(members) < 2:
                continue
            target = max((choices[i] for i in members), key=version_key)
            for identity in members:
                if choices[identity] == target:
                    continue
                if is_snapshot(target) or repositories.has_version(Coordinate(*identity), target):
                    pins[identity] = target
                else:
                    logger.info(
                        "%s:%s has no version %s; leaving it out of the %s lock",
                        identity[0], identity[1], target, family.name,
                    )
        return pins
