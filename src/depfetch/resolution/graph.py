"""Breadth-first expansion of root requests into a dependency graph.

The graph is an arena keyed by identity. Each identity is expanded at most
once per pass; every further request for it is only recorded, which also
terminates cycles.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Iterable, List, Mapping, Optional, Set

from depfetch.errors import RepositoryUnavailable
from depfetch.common.logging_utils import extra_context, is_debug_enabled, Timer
from depfetch.registry.repository_set import RepositorySet
from depfetch.versioning.models import ROOT, Coordinate, Identity, Request, Snapshot

logger = logging.getLogger(__name__)

RequestMapper = Callable[[Request], Request]


def identity_of_key(key: str) -> Identity:
    """Turn a ``group:artifact`` requester key back into an identity."""
    group, _, artifact = key.partition(":")
    return (group, artifact)


@dataclass(frozen=True)
class DependencyNode:
    """An expanded identity at the version chosen for this pass."""
    coordinate: Coordinate
    version: str
    repository: Optional[str]
    packaging: str
    children: tuple = ()


@dataclass
class DependencyGraph:
    """Arena of nodes plus every request seen per identity."""
    nodes: Dict[Identity, DependencyNode] = field(default_factory=dict)
    requests: Dict[Identity, List[Request]] = field(default_factory=dict)
    order: List[Identity] = field(default_factory=list)
    unresolved: Dict[Identity, Request] = field(default_factory=dict)
    any_fallback: Set[Identity] = field(default_factory=set)

    def root_requests(self, identity: Identity) -> List[Request]:
        return [r for r in self.requests.get(identity, []) if r.is_root]

    def ancestors(self, identity: Identity) -> Set[Identity]:
        """Identities whose transitive closure reaches ``identity``."""
        found: Set[Identity] = set()
        pending = [identity]
        while pending:
            current = pending.pop()
            for request in self.requests.get(current, []):
                for key in request.requested_by:
                    if key == ROOT:
                        continue
                    parent = identity_of_key(key)
                    if parent not in found and parent != identity:
                        found.add(parent)
                        pending.append(parent)
        return found


class GraphResolver:
    """Expands requests against a repository set."""

    def __init__(self, repositories: RepositorySet, request_mapper: Optional[RequestMapper] = None):
        self.repositories = repositories
        self.request_mapper = request_mapper

    def _choose(
        self,
        request: Request,
        forced: Mapping[Identity, str],
        hints: Mapping[Identity, str],
        graph: DependencyGraph,
    ):
        identity = request.identity
        if identity in forced:
            return forced[identity], None
        if identity in hints:
            return hints[identity], None
        selection = self.repositories.select(request.coordinate, request.constraint)
        if selection is None and not isinstance(request.constraint, Snapshot):
            selection = self.repositories.select_any(request.coordinate)
            if selection is not None:
                graph.any_fallback.add(identity)
        if selection is None:
            return None, None
        return selection.version, selection.repository

    def expand(
        self,
        roots: Iterable[Request],
        forced: Optional[Mapping[Identity, str]] = None,
        hints: Optional[Mapping[Identity, str]] = None,
    ) -> DependencyGraph:
        """Expand ``roots`` breadth-first.

        Args:
            roots: Root requests in input order.
            forced: Versions that override any selection.
            hints: Versions decided by a previous pass.

        Returns:
            A fully expanded DependencyGraph.
        """
        forced = forced or {}
        hints = hints or {}
        graph = DependencyGraph()
        worklist: Deque[Request] = deque(roots)

        with Timer() as t:
            while worklist:
                request = worklist.popleft()
                identity = request.identity
                if identity not in graph.requests:
                    graph.requests[identity] = []
                    graph.order.append(identity)
                graph.requests[identity].append(request)
                if identity in graph.nodes or identity in graph.unresolved:
                    continue

                version, repository = self._choose(request, forced, hints, graph)
                if version is None:
                    graph.unresolved[identity] = request
                    continue

                try:
                    metadata = self.repositories.fetch_metadata(request.coordinate, version, repository)
                except RepositoryUnavailable as exc:
                    logger.warning("Unable to read %s:%s: %s", request.coordinate.key, version, exc)
                    metadata = None
                if metadata is None:
                    graph.unresolved[identity] = request
                    continue

                children = []
                for child in metadata.dependencies:
                    if self.request_mapper is not None:
                        child = self.request_mapper(child)
                    children.append(child)
                    worklist.append(child)

                graph.nodes[identity] = DependencyNode(
                    coordinate=request.coordinate.with_packaging(metadata.packaging),
                    version=version,
                    repository=metadata.repository,
                    packaging=metadata.packaging,
                    children=tuple(children),
                )

        if is_debug_enabled(logger):
            logger.debug(
                "Expanded dependency graph",
                extra=extra_context(
                    event="function_exit",
                    component="graph_resolver",
                    action="expand",
                    outcome="success",
                    count=len(graph.nodes),
                    unresolved=len(graph.unresolved),
                    duration_ms=t.duration_ms(),
                ),
            )
        return graph
