"""Ordered collection of repositories answering version and artifact lookups.

Repositories are consulted in priority order. The first repository that
offers any satisfying version wins; versions are never merged across
repositories once one answers. A repository that fails is logged and skipped.
"""
from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from depfetch.constants import Constants
from depfetch.errors import RepositoryUnavailable
from depfetch.common.logging_utils import extra_context, is_debug_enabled, Timer
from depfetch.registry.base import Repository
from depfetch.registry.maven.local import LocalMavenRepository
from depfetch.registry.maven.pom import parse_pom
from depfetch.registry.maven.remote import RemoteMavenRepository
from depfetch.versioning.cache import TTLCache
from depfetch.versioning.models import LATEST, Coordinate, Request, Snapshot, VersionConstraint
from depfetch.versioning.version import pick_highest, sort_versions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """A version chosen from a named repository."""
    version: str
    repository: str


@dataclass(frozen=True)
class ArtifactMetadata:
    """Packaging and runtime dependencies of one artifact version."""
    packaging: str
    dependencies: Tuple[Request, ...]
    repository: str


def _extensions_for(packaging: str) -> List[str]:
    # aar artifacts may be published as .srcaar only
    if packaging == "aar":
        return ["aar", "srcaar"]
    return [packaging]


class RepositorySet:
    """Priority-ordered view over several repositories with a read-only cache."""

    def __init__(self, repositories: Iterable[Repository], cache: Optional[TTLCache] = None):
        self.repositories: List[Repository] = list(repositories)
        self._cache = cache if cache is not None else TTLCache(Constants.METADATA_CACHE_TTL_SEC)

    def __len__(self) -> int:
        return len(self.repositories)

    def _ordered(self, preferred: Optional[str] = None) -> List[Repository]:
        if preferred is None:
            return list(self.repositories)
        first = [r for r in self.repositories if r.name == preferred]
        return first + [r for r in self.repositories if r.name != preferred]

    def _versions(self, repo: Repository, coordinate: Coordinate) -> List[str]:
        key = ("versions", repo.name, coordinate.group, coordinate.artifact)
        found, cached = self._cache.lookup(key)
        if found:
            return cached
        versions = repo.list_versions(coordinate.group, coordinate.artifact)
        self._cache.set(key, versions)
        return versions

    def _satisfying(self, repo: Repository, coordinate: Coordinate, constraint: VersionConstraint) -> List[str]:
        matches = [v for v in self._versions(repo, coordinate) if constraint.satisfies(v)]
        if not matches and isinstance(constraint, Snapshot):
            wanted = constraint.render()
            if repo.has_version(coordinate.group, coordinate.artifact, wanted):
                matches = [wanted]
        return matches

    def _warn_unavailable(self, exc: RepositoryUnavailable, action: str) -> None:
        logger.warning("%s (during %s); trying next repository", exc, action)

    def list_available_versions(self, coordinate: Coordinate) -> Tuple[str, ...]:
        """Union of versions across every repository, ascending."""
        versions: List[str] = []
        for repo in self.repositories:
            try:
                versions.extend(self._versions(repo, coordinate))
            except RepositoryUnavailable as exc:
                self._warn_unavailable(exc, "list_versions")
        return tuple(sort_versions(versions))

    def select(self, coordinate: Coordinate, constraint: VersionConstraint) -> Optional[Selection]:
        """Highest satisfying version from the first repository offering any.

        Args:
            coordinate: Coordinate to look up.
            constraint: Constraint every candidate must satisfy.

        Returns:
            Selection or None when no repository has a satisfying version.
        """
        with Timer() as t:
            for repo in self.repositories:
                try:
                    matches = self._satisfying(repo, coordinate, constraint)
                except RepositoryUnavailable as exc:
                    self._warn_unavailable(exc, "select")
                    continue
                if matches:
                    selection = Selection(pick_highest(matches), repo.name)
                    if is_debug_enabled(logger):
                        logger.debug(
                            "Selected version",
                            extra=extra_context(
                                event="decision",
                                component="repository_set",
                                action="select",
                                outcome=selection.version,
                                target=f"{coordinate.key}:{constraint.render()}",
                                repository=repo.name,
                                duration_ms=t.duration_ms(),
                            ),
                        )
                    return selection
        return None

    def select_any(self, coordinate: Coordinate) -> Optional[Selection]:
        """Unconstrained ``+`` lookup."""
        return self.select(coordinate, LATEST)

    def satisfying_versions(self, coordinate: Coordinate, constraint: VersionConstraint) -> Tuple[str, ...]:
        """Ascending satisfying versions from the first repository offering any."""
        for repo in self.repositories:
            try:
                matches = self._satisfying(repo, coordinate, constraint)
            except RepositoryUnavailable as exc:
                self._warn_unavailable(exc, "satisfying_versions")
                continue
            if matches:
                return tuple(sort_versions(matches))
        return ()

    def has_version(self, coordinate: Coordinate, version: str) -> bool:
        """True if any repository lists ``version`` or has it on disk unlisted."""
        if version in self.list_available_versions(coordinate):
            return True
        for repo in self.repositories:
            try:
                if repo.has_version(coordinate.group, coordinate.artifact, version):
                    return True
            except RepositoryUnavailable as exc:
                self._warn_unavailable(exc, "has_version")
        return False

    def _packaging_in(
        self, repo: Repository, coordinate: Coordinate, version: str, pom_packaging: Optional[str]
    ) -> Optional[str]:
        candidates: List[str] = []
        if coordinate.packaging:
            candidates.append(coordinate.packaging)
        if pom_packaging:
            candidates.append(pom_packaging)
        candidates.extend(Constants.PACKAGING_SEARCH_ORDER)
        seen = set()
        for packaging in candidates:
            for extension in _extensions_for(packaging):
                if extension in seen:
                    continue
                seen.add(extension)
                if repo.has_artifact(coordinate, version, extension):
                    return extension
        return None

    def _load_parent(self, repo: Repository):
        def load(group: str, artifact: str, version: str) -> Optional[bytes]:
            for candidate in self._ordered(repo.name):
                try:
                    data = candidate.fetch_pom(group, artifact, version)
                except RepositoryUnavailable as exc:
                    self._warn_unavailable(exc, "fetch_parent_pom")
                    continue
                if data:
                    return data
            return None
        return load

    def fetch_metadata(
        self, coordinate: Coordinate, version: str, repository: Optional[str] = None
    ) -> Optional[ArtifactMetadata]:
        """Read packaging and dependencies of ``coordinate`` at ``version``.

        Packaging precedence: the explicitly requested packaging, then the
        POM ``<packaging>``, then the first of jar/aar/srcaar that exists.

        Returns:
            ArtifactMetadata, or None if no repository has the version.

        Raises:
            RepositoryUnavailable: If every repository that was asked failed.
        """
        key = ("metadata", coordinate, version, repository)
        found, cached = self._cache.lookup(key)
        if found:
            return cached

        failures: List[RepositoryUnavailable] = []
        result: Optional[ArtifactMetadata] = None
        fallback: Optional[ArtifactMetadata] = None
        for repo in self._ordered(repository):
            try:
                pom = repo.fetch_pom(coordinate.group, coordinate.artifact, version)
                pom_packaging: Optional[str] = None
                dependencies: Tuple[Request, ...] = ()
                if pom:
                    try:
                        info = parse_pom(pom, coordinate.key, self._load_parent(repo))
                    except ET.ParseError:
                        logger.warning("Unparseable POM for %s:%s in %s", coordinate.key, version, repo.name)
                    else:
                        pom_packaging, dependencies = info.packaging, info.dependencies

                if pom_packaging in Constants.EXCLUDED_PACKAGING and not coordinate.packaging:
                    result = ArtifactMetadata(pom_packaging, dependencies, repo.name)
                    break
                packaging = self._packaging_in(repo, coordinate, version, pom_packaging)
            except RepositoryUnavailable as exc:
                self._warn_unavailable(exc, "fetch_metadata")
                failures.append(exc)
                continue

            if packaging is not None:
                result = ArtifactMetadata(packaging, dependencies, repo.name)
                break
            if pom and fallback is None:
                fallback = ArtifactMetadata(
                    coordinate.packaging or pom_packaging or Constants.DEFAULT_PACKAGING,
                    dependencies,
                    repo.name,
                )

        result = result or fallback
        if result is None and failures and len(failures) == len(self.repositories):
            raise RepositoryUnavailable("*", f"metadata for {coordinate.key}:{version}")
        self._cache.set(key, result)
        return result

    def fetch(
        self, coordinate: Coordinate, version: str, repository: Optional[str] = None
    ) -> Tuple[Optional[bytes], Tuple[Request, ...]]:
        """Fetch binary bytes and dependencies, preferring ``repository``.

        Returns:
            Tuple of (bytes or None, dependency requests).
        """
        metadata = self.fetch_metadata(coordinate, version, repository)
        if metadata is None or metadata.packaging in Constants.EXCLUDED_PACKAGING:
            return None, metadata.dependencies if metadata else ()
        resolved = coordinate.with_packaging(metadata.packaging)
        for repo in self._ordered(metadata.repository):
            try:
                data = repo.fetch_artifact(resolved, version, metadata.packaging)
            except RepositoryUnavailable as exc:
                self._warn_unavailable(exc, "fetch_artifact")
                continue
            if data is not None:
                return data, metadata.dependencies
        return None, metadata.dependencies


def _repository_for(location: str) -> Repository:
    if location.startswith(("http://", "https://")):
        return RemoteMavenRepository(location)
    return LocalMavenRepository(location)


def build_repository_set(
    maven_repos: Sequence[str],
    use_maven_local_repo: bool = Constants.DEFAULT_USE_MAVEN_LOCAL_REPO,
    use_remote_maven_repos: bool = Constants.DEFAULT_USE_REMOTE_MAVEN_REPOS,
    maven_local_path: Optional[str] = None,
) -> RepositorySet:
    """Build the repository search order.

    Order: the local Maven cache (if enabled), ``maven_repos`` as given,
    then the remote defaults (if enabled). Duplicates are dropped.
    """
    locations: List[str] = []
    if use_maven_local_repo:
        locations.append(maven_local_path or os.path.join(os.path.expanduser("~"), ".m2", "repository"))
    locations.extend(maven_repos)
    if use_remote_maven_repos:
        locations.extend(Constants.REMOTE_MAVEN_REPOS)

    repositories: List[Repository] = []
    seen = set()
    for location in locations:
        repo = _repository_for(location)
        if repo.name in seen:
            continue
        seen.add(repo.name)
        repositories.append(repo)
    logger.info("Searching %d repositories: %s", len(repositories), ", ".join(r.name for r in repositories))
    return RepositorySet(repositories)
