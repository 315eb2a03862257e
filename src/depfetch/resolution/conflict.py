"""Conflict resolution and forced-upgrade search.

``ConflictResolver.decide`` merges every request recorded for an identity
into a single version. When no version satisfies all of them,
``ForcedUpgradeSearch`` relaxes the root requests that (transitively) pull
the identity in, or raises the identity itself, and looks for the smallest
upgrade that removes the conflict.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from depfetch.constants import Constants
from depfetch.errors import UnresolvableConflict
from depfetch.common.logging_utils import extra_context, is_debug_enabled, Timer
from depfetch.registry.repository_set import RepositorySet
from depfetch.resolution.graph import DependencyGraph
from depfetch.versioning.models import (
    Exact,
    Identity,
    Request,
    Snapshot,
    VersionConstraint,
    VersionRange,
    floor_of,
)
from depfetch.versioning.version import compare_versions, version_key

logger = logging.getLogger(__name__)


class DecisionReason(Enum):
    """Why a version was chosen for an identity."""
    FORCED = "forced"
    AGREED = "agreed"
    SATISFY_ALL = "satisfy_all"
    ANY_FALLBACK = "any_fallback"
    CONFLICT = "conflict"
    FALLBACK_ANY = "fallback_any"


@dataclass(frozen=True)
class Decision:
    """Version chosen for one identity."""
    version: str
    reason: DecisionReason
    repository: Optional[str] = None


class AllOf:
    """Conjunction of constraints, used to look for a version satisfying every request."""

    def __init__(self, constraints: Sequence[VersionConstraint]):
        self.constraints = tuple(constraints)

    def satisfies(self, version: str) -> bool:
        return all(c.satisfies(version) for c in self.constraints)

    def render(self) -> str:
        return "&".join(c.render() for c in self.constraints)


def exact_version(constraint: VersionConstraint) -> Optional[str]:
    """The single version a concrete constraint names, else None."""
    if isinstance(constraint, Exact):
        return constraint.version
    if isinstance(constraint, Snapshot):
        return constraint.render()
    if isinstance(constraint, VersionRange) and constraint.pinned:
        return constraint.low
    return None


class ConflictResolver:
    """Applies the merge policy to every expanded identity of a graph."""

    def __init__(self, repositories: RepositorySet):
        self.repositories = repositories

    def _decide_one(self, graph: DependencyGraph, identity: Identity) -> Decision:
        node = graph.nodes[identity]
        requests = graph.requests[identity]
        satisfiable = [
            r for r in requests
            if self.repositories.satisfying_versions(r.coordinate, r.constraint)
        ]
        if not satisfiable:
            selection = self.repositories.select_any(node.coordinate)
            if selection is None:
                return Decision(node.version, DecisionReason.ANY_FALLBACK, node.repository)
            return Decision(selection.version, DecisionReason.ANY_FALLBACK, selection.repository)

        exact = {exact_version(r.constraint) for r in satisfiable}
        if len(exact) == 1 and None not in exact:
            return Decision(exact.pop(), DecisionReason.AGREED, node.repository)

        selection = self.repositories.select(
            node.coordinate, AllOf([r.constraint for r in satisfiable])
        )
        if selection is not None:
            return Decision(selection.version, DecisionReason.SATISFY_ALL, selection.repository)
        return Decision(node.version, DecisionReason.CONFLICT, node.repository)

    def decide(self, graph: DependencyGraph, forced: Mapping[Identity, str]) -> Dict[Identity, Decision]:
        """Decide a version for every expanded identity.

        Args:
            graph: Graph from the current expansion pass.
            forced: Versions pinned by upgrades, lock alignment or fallback.

        Returns:
            Mapping of identity to Decision; unresolved identities are absent.
        """
        decisions: Dict[Identity, Decision] = {}
        for identity in sorted(graph.nodes):
            node = graph.nodes[identity]
            if identity in forced:
                decisions[identity] = Decision(forced[identity], DecisionReason.FORCED, node.repository)
            else:
                decisions[identity] = self._decide_one(graph, identity)
        if is_debug_enabled(logger):
            conflicts = [i for i, d in decisions.items() if d.reason is DecisionReason.CONFLICT]
            logger.debug(
                "Decided versions",
                extra=extra_context(
                    event="decision",
                    component="conflict_resolver",
                    action="decide",
                    count=len(decisions),
                    conflicts=len(conflicts),
                ),
            )
        return decisions

    def fallback(self, graph: DependencyGraph, identity: Identity) -> Optional[Decision]:
        """Last resort for an identity no upgrade could reconcile.

        Picks the highest version any repository offers; None means the
        identity has nothing available and ends up missing.
        """
        requests = graph.requests.get(identity, [])
        coordinate = graph.nodes[identity].coordinate if identity in graph.nodes else (
            requests[0].coordinate if requests else None
        )
        if coordinate is None:
            return None
        selection = self.repositories.select_any(coordinate)
        if selection is None:
            return None
        return Decision(selection.version, DecisionReason.FALLBACK_ANY, selection.repository)


@dataclass(frozen=True)
class UpgradeOutcome:
    """Result of a successful forced-upgrade search."""
    roots: Tuple[Request, ...]
    forced: Dict[Identity, str]
    relaxed: Dict[Identity, VersionConstraint]


# Re-runs resolution for (roots, forced) and returns (graph, decisions).
Settle = Callable[[Sequence[Request], Mapping[Identity, str]], Tuple[DependencyGraph, Dict[Identity, Decision]]]


def _index_combinations(limits: Sequence[int]) -> Iterator[Tuple[int, ...]]:
    """Yield index tuples ordered by their sum, then lexically."""
    total_max = sum(limit - 1 for limit in limits)

    def compose(position: int, remaining: int) -> Iterator[Tuple[int, ...]]:
        if position == len(limits) - 1:
            if remaining < limits[position]:
                yield (remaining,)
            return
        for index in range(min(remaining, limits[position] - 1) + 1):
            for rest in compose(position + 1, remaining - index):
                yield (index,) + rest

    for total in range(total_max + 1):
        yield from compose(0, total)


class ForcedUpgradeSearch:
    """Finds the minimal upgrade that removes a conflict.

    The identity is first anchored on its own root requests when those
    disagree. Consumer roots are then relaxed level by level; when no
    combination of consumer versions works, the identity itself is raised to
    the lowest version its transitive requests accept.
    """

    def __init__(self, repositories: RepositorySet, settle: Settle):
        self.repositories = repositories
        self.settle = settle

    def _consumers(
        self, graph: DependencyGraph, identity: Identity, roots: Sequence[Request]
    ) -> Dict[Identity, Request]:
        ancestors = graph.ancestors(identity)
        consumers: Dict[Identity, Request] = {}
        for request in roots:
            if request.identity == identity or request.identity not in ancestors:
                continue
            current = consumers.get(request.identity)
            if current is None or request.constraint.specificity() > current.constraint.specificity():
                consumers[request.identity] = request
        return consumers

    def _anchor(self, graph: DependencyGraph, identity: Identity) -> Optional[str]:
        """Highest version asked for by a root when the roots cannot all be met."""
        roots = graph.root_requests(identity)
        if len(roots) < 2:
            return None
        coordinate = roots[0].coordinate
        if self.repositories.select(coordinate, AllOf([r.constraint for r in roots])) is not None:
            return None
        selections = [
            s for s in (self.repositories.select(r.coordinate, r.constraint) for r in roots)
            if s is not None
        ]
        if not selections:
            return None
        return max(selections, key=lambda s: version_key(s.version)).version

    def _transitive(self, graph: DependencyGraph, identity: Identity) -> List[Request]:
        """Satisfiable requests on ``identity`` made by other artifacts."""
        return [
            r for r in graph.requests.get(identity, [])
            if not r.is_root and self.repositories.satisfying_versions(r.coordinate, r.constraint)
        ]

    def _clean(
        self,
        graph: DependencyGraph,
        decisions: Mapping[Identity, Decision],
        pins: Mapping[Identity, str],
    ) -> bool:
        if any(d.reason is DecisionReason.CONFLICT for d in decisions.values()):
            return False
        return all(
            r.constraint.satisfies(version)
            for identity, version in pins.items()
            for r in self._transitive(graph, identity)
        )

    def _candidates(self, request: Request, relaxed: VersionConstraint) -> List[str]:
        floor = floor_of(request.constraint)
        versions = [
            v for v in self.repositories.satisfying_versions(request.coordinate, relaxed)
            if floor is None or compare_versions(v, floor) >= 0
        ]
        return versions[: Constants.MAX_UPGRADE_CANDIDATES]

    def _own_candidates(self, graph: DependencyGraph, identity: Identity, anchor: Optional[str]) -> List[str]:
        roots = graph.root_requests(identity)
        if not roots:
            return []
        floors = [f for f in (floor_of(r.constraint) for r in roots) if f is not None]
        if anchor is not None:
            floors.append(anchor)
        floor = max(floors, key=version_key) if floors else None
        transitive = self._transitive(graph, identity)
        versions = [
            v for v in self.repositories.list_available_versions(roots[0].coordinate)
            if (floor is None or compare_versions(v, floor) >= 0)
            and all(r.constraint.satisfies(v) for r in transitive)
        ]
        if anchor is not None and anchor in versions:
            versions.remove(anchor)
            versions.insert(0, anchor)
        return versions[: Constants.MAX_UPGRADE_CANDIDATES]

    def _upgrade_consumers(
        self,
        graph: DependencyGraph,
        identity: Identity,
        roots: Sequence[Request],
        forced: Mapping[Identity, str],
        anchored: Mapping[Identity, str],
    ) -> Optional[UpgradeOutcome]:
        consumers = self._consumers(graph, identity, roots)
        if not consumers:
            return None

        order = sorted(consumers)
        constraints: Dict[Identity, VersionConstraint] = {
            i: consumers[i].constraint for i in order
        }
        while True:
            relaxed = {}
            for i in order:
                wider = constraints[i].relax()
                relaxed[i] = wider if wider is not None else constraints[i]
            if relaxed == constraints:
                return None
            constraints = relaxed

            candidates = [self._candidates(consumers[i], relaxed[i]) for i in order]
            if any(not c for c in candidates):
                continue

            trial_roots = tuple(
                Request(r.coordinate, relaxed[r.identity], r.requested_by, r.raw)
                if r.identity in relaxed else r
                for r in roots
            )
            for trial, indices in enumerate(_index_combinations([len(c) for c in candidates])):
                if trial >= Constants.MAX_UPGRADE_TRIALS:
                    break
                pins = dict(anchored)
                pins.update({i: candidates[n][indices[n]] for n, i in enumerate(order)})
                trial_forced = dict(forced)
                trial_forced.update(pins)
                trial_graph, decisions = self.settle(trial_roots, trial_forced)
                if self._clean(trial_graph, decisions, pins):
                    return UpgradeOutcome(trial_roots, trial_forced, dict(relaxed))

    def _upgrade_self(
        self,
        graph: DependencyGraph,
        identity: Identity,
        roots: Sequence[Request],
        forced: Mapping[Identity, str],
        anchor: Optional[str],
    ) -> Optional[UpgradeOutcome]:
        for candidate in self._own_candidates(graph, identity, anchor):
            pins = {identity: candidate}
            trial_forced = dict(forced)
            trial_forced.update(pins)
            trial_graph, decisions = self.settle(roots, trial_forced)
            if self._clean(trial_graph, decisions, pins):
                return UpgradeOutcome(tuple(roots), trial_forced, {})
        return None

    def search(
        self,
        graph: DependencyGraph,
        identity: Identity,
        roots: Sequence[Request],
        forced: Mapping[Identity, str],
    ) -> UpgradeOutcome:
        """Find the smallest upgrade under which nothing conflicts.

        Raises:
            UnresolvableConflict: If neither the consumers nor the identity
                itself can be upgraded into a consistent set.
        """
        anchor = self._anchor(graph, identity)
        anchored = {identity: anchor} if anchor is not None else {}
        with Timer() as t:
            outcome = self._upgrade_consumers(graph, identity, roots, forced, anchored)
            if outcome is None:
                outcome = self._upgrade_self(graph, identity, roots, forced, anchor)
        if outcome is None:
            raise UnresolvableConflict(identity)

        pins = {i: v for i, v in outcome.forced.items() if forced.get(i) != v}
        logger.info(
            "Resolved conflict on %s:%s by upgrading %s",
            identity[0], identity[1],
            ", ".join(f"{g}:{a}:{v}" for (g, a), v in sorted(pins.items())),
        )
        if is_debug_enabled(logger):
            logger.debug(
                "Forced upgrade found",
                extra=extra_context(
                    event="decision",
                    component="forced_upgrade",
                    action="search",
                    outcome="success",
                    anchor=anchor,
                    relaxed=len(outcome.relaxed),
                    duration_ms=t.duration_ms(),
                ),
            )
        return outcome
