"""Post-resolution pass remapping legacy support libraries to AndroidX."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from depfetch.common.logging_utils import extra_context, is_debug_enabled, Timer
from depfetch.jetifier.mapping import JetifierMapping
from depfetch.jetifier.rewriter import ArchiveReferenceRewriter, ReferenceRewriter
from depfetch.resolution.service import ResolutionService, most_specific
from depfetch.versioning.models import (
    Coordinate,
    Exact,
    Identity,
    Modification,
    Request,
    ResolutionResult,
    ResolvedArtifact,
)
from depfetch.versioning.parser import parse_version_constraint

logger = logging.getLogger(__name__)


class JetifierAdapter:
    """Re-resolves a result with legacy identities replaced and rewrites binaries."""

    def __init__(
        self,
        service: ResolutionService,
        mapping: JetifierMapping,
        rewriter: Optional[ReferenceRewriter] = None,
    ):
        self.mapping = mapping
        self.rewriter = rewriter if rewriter is not None else ArchiveReferenceRewriter()
        self.repositories = service.repositories
        self.service = ResolutionService(
            service.repositories, service.policy, request_mapper=mapping.map_request
        )

    def _roots(self, result: ResolutionResult) -> List[Request]:
        roots = []
        for artifact in result.artifacts:
            mapped = self.mapping.modern(artifact.identity)
            if mapped is None:
                roots.append(
                    Request(artifact.coordinate, Exact(artifact.version), raw=artifact.coordinate.render(artifact.version))
                )
                continue
            roots.append(
                Request(
                    Coordinate(mapped.group, mapped.artifact, artifact.coordinate.classifier),
                    parse_version_constraint(mapped.version),
                    raw=f"{mapped.group}:{mapped.artifact}:{mapped.version}",
                )
            )
        for missing in result.missing:
            mapped = self.mapping.modern(missing.coordinate.identity)
            if mapped is not None:
                roots.append(
                    Request(
                        Coordinate(mapped.group, mapped.artifact),
                        parse_version_constraint(mapped.version),
                        raw=f"{mapped.group}:{mapped.artifact}:{mapped.version}",
                    )
                )
        return roots

    def _rewrite(self, artifact: ResolvedArtifact) -> ResolvedArtifact:
        content = artifact.content
        if content is None:
            content, _ = self.repositories.fetch(artifact.coordinate, artifact.version, artifact.repository or None)
        if content is None:
            return artifact
        rewritten = self.rewriter.rewrite_internal_references(content, self.mapping)
        if rewritten != content:
            logger.info("Jetified %s", artifact.filename)
            return replace(artifact, content=rewritten, jetified=True)
        return replace(artifact, content=content)

    def apply(self, result: ResolutionResult) -> ResolutionResult:
        """Return a result in which no legacy support artifact remains.

        Args:
            result: Output of the regular resolution pass.

        Returns:
            New ResolutionResult; legacy root requests are reported as
            modified to their modern replacement.
        """
        with Timer() as t:
            remapped = self.service.resolve(self._roots(result))

            originals: Dict[Identity, List[Request]] = {}
            for request in result.requests:
                originals.setdefault(request.identity, []).append(request)

            artifacts = []
            for artifact in remapped.artifacts:
                if self.mapping.is_legacy(artifact.identity):
                    logger.warning("No AndroidX replacement resolved for %s", artifact.filename)
                    artifacts.append(artifact)
                    continue
                artifacts.append(
                    replace(self._rewrite(artifact), requests=tuple(originals.get(artifact.identity, ())))
                )

            modified = [m for m in result.modified if not self.mapping.is_legacy(m.identity)]
            for identity, requests in originals.items():
                mapped = self.mapping.modern(identity)
                if mapped is None:
                    continue
                chosen = remapped.artifact_for(mapped.identity)
                version = chosen.version if chosen is not None else "+"
                modified.append(
                    Modification(
                        identity,
                        most_specific(requests).raw,
                        f"{mapped.group}:{mapped.artifact}:{version}",
                    )
                )

            missing = {
                m for m in result.missing if not self.mapping.is_legacy(m.coordinate.identity)
            } | set(remapped.missing)

        if is_debug_enabled(logger):
            logger.debug(
                "Jetifier pass complete",
                extra=extra_context(
                    event="function_exit",
                    component="jetifier",
                    action="apply",
                    outcome="success",
                    count=sum(1 for a in artifacts if a.jetified),
                    duration_ms=t.duration_ms(),
                ),
            )
        return ResolutionResult(
            artifacts=tuple(sorted(artifacts, key=lambda a: a.filename)),
            missing=tuple(sorted(missing, key=lambda m: m.render())),
            modified=tuple(sorted(set(modified), key=lambda m: m.render())),
            requests=result.requests,
        )
