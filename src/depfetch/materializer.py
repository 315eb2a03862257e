"""Writes resolved artifacts into the target directory."""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from typing import List, Tuple

from depfetch.constants import Constants
from depfetch.errors import MaterializationFailure
from depfetch.common.logging_utils import extra_context, is_debug_enabled, Timer
from depfetch.registry.repository_set import RepositorySet
from depfetch.versioning.models import ResolutionResult, ResolvedArtifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaterializationOutcome:
    """File names written to the target directory, sorted."""
    copied: Tuple[str, ...]


def write_atomically(path: str, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temporary sibling and ``os.replace``.

    Raises:
        MaterializationFailure: If the file cannot be written.
    """
    directory = os.path.dirname(path) or "."
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".depfetch-", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as exc:
        raise MaterializationFailure(path, str(exc)) from exc
    finally:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)


class Materializer:
    """Copies artifact binaries into ``target_dir`` under their flat file names."""

    def __init__(self, repositories: RepositorySet, target_dir: str):
        self.repositories = repositories
        self.target_dir = target_dir

    def _content(self, artifact: ResolvedArtifact) -> bytes:
        if artifact.content is not None:
            return artifact.content
        data, _ = self.repositories.fetch(artifact.coordinate, artifact.version, artifact.repository or None)
        if data is None:
            raise MaterializationFailure(
                os.path.join(self.target_dir, artifact.filename),
                f"no repository provided {artifact.coordinate.render(artifact.version)}",
            )
        return data

    def materialize(self, result: ResolutionResult) -> MaterializationOutcome:
        """Write every resolved artifact, overwriting existing files.

        Raises:
            MaterializationFailure: If any artifact cannot be fetched or written.
        """
        try:
            os.makedirs(self.target_dir, exist_ok=True)
        except OSError as exc:
            raise MaterializationFailure(self.target_dir, str(exc)) from exc

        copied: List[str] = []
        with Timer() as t:
            for artifact in result.artifacts:
                if artifact.packaging in Constants.EXCLUDED_PACKAGING:
                    continue
                path = os.path.join(self.target_dir, artifact.filename)
                write_atomically(path, self._content(artifact))
                logger.debug("Copied %s", artifact.filename)
                copied.append(artifact.filename)

        if is_debug_enabled(logger):
            logger.debug(
                "Materialized artifacts",
                extra=extra_context(
                    event="function_exit",
                    component="materializer",
                    action="materialize",
                    outcome="success",
                    count=len(copied),
                    duration_ms=t.duration_ms(),
                ),
            )
        return MaterializationOutcome(copied=tuple(sorted(copied)))
