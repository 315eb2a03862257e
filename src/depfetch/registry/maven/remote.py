"""Maven repository reached over HTTP(S)."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from depfetch.constants import Constants
from depfetch.errors import RepositoryUnavailable
from depfetch.common import http_client
from depfetch.common.logging_utils import extra_context, is_debug_enabled, safe_url
from depfetch.registry.base import Repository, artifact_filename, artifact_path
from depfetch.registry.maven.pom import parse_metadata_versions
from depfetch.versioning.models import Coordinate

logger = logging.getLogger(__name__)


class RemoteMavenRepository(Repository):
    """Remote m2 layout, e.g. Google Maven or Maven Central."""

    def __init__(self, base_url: str, name: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        super().__init__(name or safe_url(self.base_url))

    def _url(self, *relative: str) -> str:
        return "/".join((self.base_url,) + relative)

    def _get(self, url: str, cache: bool = True) -> Optional[bytes]:
        """GET ``url``; None on 404-like answers, RepositoryUnavailable on failure."""
        status, _, body = http_client.robust_get(url, cache=cache)
        if status == 200:
            return body
        if status == 0 or status >= 500:
            raise RepositoryUnavailable(self.name, f"GET {safe_url(url)} failed (status {status})")
        if is_debug_enabled(logger):
            logger.debug(
                "Remote resource not found",
                extra=extra_context(
                    event="function_exit",
                    component="remote_repository",
                    action="GET",
                    outcome="not_found",
                    status_code=status,
                    target=safe_url(url),
                ),
            )
        return None

    def _exists(self, url: str) -> bool:
        status = http_client.robust_head(url)
        if status == 0 or status >= 500:
            raise RepositoryUnavailable(self.name, f"HEAD {safe_url(url)} failed (status {status})")
        return status == 200

    def list_versions(self, group: str, artifact: str) -> List[str]:
        data = self._get(self._url(artifact_path(group, artifact), Constants.MAVEN_METADATA_FILE))
        if not data:
            return []
        try:
            return parse_metadata_versions(data)
        except ET.ParseError as exc:
            raise RepositoryUnavailable(self.name, f"invalid metadata for {group}:{artifact}") from exc

    def has_version(self, group: str, artifact: str, version: str) -> bool:
        return self._exists(self._url(artifact_path(group, artifact, version), f"{artifact}-{version}.pom"))

    def fetch_pom(self, group: str, artifact: str, version: str) -> Optional[bytes]:
        return self._get(self._url(artifact_path(group, artifact, version), f"{artifact}-{version}.pom"))

    def _artifact_url(self, coordinate: Coordinate, version: str, extension: str) -> str:
        return self._url(
            artifact_path(coordinate.group, coordinate.artifact, version),
            artifact_filename(coordinate, version, extension),
        )

    def has_artifact(self, coordinate: Coordinate, version: str, extension: str) -> bool:
        return self._exists(self._artifact_url(coordinate, version, extension))

    def fetch_artifact(self, coordinate: Coordinate, version: str, extension: str) -> Optional[bytes]:
        return self._get(self._artifact_url(coordinate, version, extension), cache=False)
