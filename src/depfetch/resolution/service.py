"""Resolution pipeline driver.

Runs graph expansion and conflict decisions to a fixpoint, applies
lock-step alignment, resolves remaining conflicts by forced upgrade (or
fallback) and assembles the immutable ``ResolutionResult``.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from depfetch.constants import Constants
from depfetch.errors import UnresolvableConflict
from depfetch.common.logging_utils import extra_context, is_debug_enabled, Timer
from depfetch.registry.repository_set import RepositorySet
from depfetch.resolution.conflict import (
    ConflictResolver,
    Decision,
    DecisionReason,
    ForcedUpgradeSearch,
    exact_version,
)
from depfetch.resolution.graph import DependencyGraph, GraphResolver, RequestMapper
from depfetch.resolution.policy import VersionLockPolicy
from depfetch.versioning.models import (
    LATEST,
    Coordinate,
    Exact,
    Identity,
    MissingArtifact,
    Modification,
    Request,
    ResolutionResult,
    ResolvedArtifact,
    Snapshot,
    VersionConstraint,
)
from depfetch.versioning.version import is_snapshot

logger = logging.getLogger(__name__)

_FALLBACK_TO_ANY = (DecisionReason.ANY_FALLBACK, DecisionReason.FALLBACK_ANY)


def _normalized_packaging(packaging: Optional[str]) -> Optional[str]:
    if packaging is None:
        return None
    return Constants.PACKAGING_EXTENSION_OVERRIDES.get(packaging, packaging)


def _pinned_constraint(version: str) -> VersionConstraint:
    if is_snapshot(version):
        base = version[: -len(Constants.SNAPSHOT_SUFFIX)]
        return Snapshot(base, version[len(base):])
    return Exact(version)


def most_specific(requests: Sequence[Request]) -> Request:
    """Most specific request; ties go to the lexically smallest raw string."""
    return sorted(
        requests,
        key=lambda r: (
            -r.constraint.specificity()[0],
            -r.constraint.specificity()[1],
            r.raw or r.constraint.render(),
        ),
    )[0]


class ResolutionService:
    """Turns root requests into a single conflict-free set of artifacts."""

    def __init__(
        self,
        repositories: RepositorySet,
        policy: Optional[VersionLockPolicy] = None,
        request_mapper: Optional[RequestMapper] = None,
    ):
        self.repositories = repositories
        self.policy = policy if policy is not None else VersionLockPolicy()
        self.graph_resolver = GraphResolver(repositories, request_mapper)
        self.conflicts = ConflictResolver(repositories)
        self.upgrades = ForcedUpgradeSearch(repositories, self._settle)

    def _settle(
        self, roots: Sequence[Request], forced: Mapping[Identity, str]
    ) -> Tuple[DependencyGraph, Dict[Identity, Decision]]:
        """Expand and decide until every node is expanded at its decided version."""
        hints: Dict[Identity, str] = {}
        seen = set()
        graph = self.graph_resolver.expand(roots, forced, hints)
        decisions = self.conflicts.decide(graph, forced)
        for _ in range(Constants.MAX_SETTLE_PASSES):
            if all(graph.nodes[i].version == d.version for i, d in decisions.items()):
                break
            hints = {i: d.version for i, d in decisions.items()}
            state = frozenset(hints.items())
            if state in seen:
                break
            seen.add(state)
            graph = self.graph_resolver.expand(roots, forced, hints)
            decisions = self.conflicts.decide(graph, forced)
        return graph, decisions

    def resolve(self, roots: Sequence[Request]) -> ResolutionResult:
        """Resolve root requests into a ResolutionResult.

        Args:
            roots: Parsed root requests in input order.

        Returns:
            The resolved artifacts with Missing and Modified entries.
        """
        original_roots = tuple(roots)
        current_roots: Tuple[Request, ...] = original_roots
        forced: Dict[Identity, str] = {}
        relaxed: Dict[Identity, VersionConstraint] = {}
        fallbacks: Dict[Identity, DecisionReason] = {}
        seen_states = set()

        with Timer() as t:
            graph, decisions = self._settle(current_roots, forced)
            for _ in range(Constants.MAX_RESOLUTION_PASSES):
                state = (current_roots, frozenset(forced.items()))
                if state in seen_states:
                    logger.warning("Resolution stopped repeating the same state; using last result")
                    break
                seen_states.add(state)

                pins = self.policy.align(
                    {i: d.version for i, d in decisions.items()}, self.repositories
                )
                pins = {i: v for i, v in pins.items() if forced.get(i) != v}
                if pins:
                    for (group, artifact), version in sorted(pins.items()):
                        logger.info("Aligning %s:%s to %s", group, artifact, version)
                    forced.update(pins)
                    graph, decisions = self._settle(current_roots, forced)
                    continue

                conflicts = sorted(i for i, d in decisions.items() if d.reason is DecisionReason.CONFLICT)
                if not conflicts:
                    break
                identity = conflicts[0]
                try:
                    outcome = self.upgrades.search(graph, identity, current_roots, forced)
                except UnresolvableConflict as exc:
                    logger.warning("%s; falling back", exc)
                    decision = self.conflicts.fallback(graph, identity)
                    if decision is None:
                        break
                    forced[identity] = decision.version
                    fallbacks[identity] = decision.reason
                else:
                    current_roots = outcome.roots
                    forced = dict(outcome.forced)
                    relaxed.update(outcome.relaxed)
                graph, decisions = self._settle(current_roots, forced)

        if is_debug_enabled(logger):
            logger.debug(
                "Resolution finished",
                extra=extra_context(
                    event="function_exit",
                    component="resolution_service",
                    action="resolve",
                    outcome="success",
                    count=len(graph.nodes),
                    duration_ms=t.duration_ms(),
                ),
            )
        return self._assemble(graph, decisions, original_roots, forced, relaxed, fallbacks)

    def _assemble(
        self,
        graph: DependencyGraph,
        decisions: Mapping[Identity, Decision],
        roots: Tuple[Request, ...],
        forced: Mapping[Identity, str],
        relaxed: Mapping[Identity, VersionConstraint],
        fallbacks: Mapping[Identity, DecisionReason],
    ) -> ResolutionResult:
        by_identity: "OrderedDict[Identity, List[Request]]" = OrderedDict()
        for request in roots:
            by_identity.setdefault(request.identity, []).append(request)

        artifacts = []
        for identity, node in graph.nodes.items():
            if node.packaging in Constants.EXCLUDED_PACKAGING:
                continue
            artifacts.append(
                ResolvedArtifact(
                    coordinate=node.coordinate,
                    version=node.version,
                    repository=node.repository or "",
                    requests=tuple(by_identity.get(identity, ())),
                )
            )

        missing = []
        for identity, request in graph.unresolved.items():
            originals = by_identity.get(identity)
            if identity in forced:
                constraint = _pinned_constraint(forced[identity])
            elif originals:
                constraint = most_specific(originals).constraint
            else:
                constraint = request.constraint
            missing.append(MissingArtifact(Coordinate(*identity), constraint))

        modified = []
        for identity, originals in by_identity.items():
            entry = self._modification(identity, originals, graph, decisions, forced, relaxed, fallbacks)
            if entry is not None:
                modified.append(entry)

        return ResolutionResult(
            artifacts=tuple(sorted(artifacts, key=lambda a: a.filename)),
            missing=tuple(sorted(set(missing), key=lambda m: m.render())),
            modified=tuple(sorted(modified, key=lambda m: m.render())),
            requests=roots,
        )

    @staticmethod
    def _modification(
        identity: Identity,
        originals: List[Request],
        graph: DependencyGraph,
        decisions: Mapping[Identity, Decision],
        forced: Mapping[Identity, str],
        relaxed: Mapping[Identity, VersionConstraint],
        fallbacks: Mapping[Identity, DecisionReason],
    ) -> Optional[Modification]:
        key = f"{identity[0]}:{identity[1]}"
        node = graph.nodes.get(identity)

        if node is None:
            pinned = forced.get(identity)
            original = most_specific(originals)
            if pinned is not None and not original.constraint.satisfies(pinned):
                return Modification(identity, original.raw, f"{key}:{pinned}")
            concrete = [
                r for r in originals
                if r.constraint != LATEST and not isinstance(r.constraint, Snapshot)
            ]
            if not concrete:
                return None
            return Modification(identity, most_specific(concrete).raw, f"{key}:+")

        original = most_specific(originals)
        if identity in relaxed and relaxed[identity] != original.constraint:
            return Modification(identity, original.raw, f"{key}:{relaxed[identity].render()}")

        decision = decisions.get(identity)
        reason = fallbacks.get(identity) or (decision.reason if decision else None)
        if reason in _FALLBACK_TO_ANY:
            return Modification(identity, original.raw, f"{key}:+")

        version = node.version
        packaging = _normalized_packaging(node.packaging)

        def packaging_differs(request: Request) -> bool:
            wanted = _normalized_packaging(request.coordinate.packaging)
            return wanted is not None and wanted != packaging

        offending = [
            r for r in originals
            if (exact_version(r.constraint) is not None and not r.constraint.satisfies(version))
            or packaging_differs(r)
        ]
        if not offending:
            return None

        satisfied = [
            r for r in originals
            if r.constraint.satisfies(version) and not packaging_differs(r)
        ]
        if satisfied:
            resolved = most_specific(satisfied).raw
        else:
            shown = packaging if packaging != Constants.DEFAULT_PACKAGING else None
            resolved = Coordinate(
                identity[0], identity[1], node.coordinate.classifier, shown
            ).render(version)
        return Modification(identity, most_specific(offending).raw, resolved)
