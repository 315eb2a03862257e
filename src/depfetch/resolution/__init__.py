"""Dependency graph expansion, conflict resolution and version locking."""

from .conflict import ConflictResolver, Decision, DecisionReason, ForcedUpgradeSearch
from .graph import DependencyGraph, DependencyNode, GraphResolver
from .policy import GroupArtifactPredicate, LockFamily, VersionLockPolicy
from .service import ResolutionService

__all__ = [
    "ConflictResolver",
    "Decision",
    "DecisionReason",
    "ForcedUpgradeSearch",
    "DependencyGraph",
    "DependencyNode",
    "GraphResolver",
    "GroupArtifactPredicate",
    "LockFamily",
    "VersionLockPolicy",
    "ResolutionService",
]
