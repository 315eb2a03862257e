"""Maven repository backed by a directory in the standard m2 layout."""
from __future__ import annotations

import logging
import os
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from typing import List, Optional

from depfetch.constants import Constants
from depfetch.errors import RepositoryUnavailable
from depfetch.common.logging_utils import extra_context, is_debug_enabled
from depfetch.registry.base import Repository, artifact_filename, artifact_path
from depfetch.registry.maven.pom import parse_metadata_versions
from depfetch.versioning.models import Coordinate

logger = logging.getLogger(__name__)

_METADATA_FILES = (Constants.MAVEN_METADATA_FILE, "maven-metadata-local.xml")


def path_from_uri(location: str) -> str:
    """Turn ``file://`` URIs and plain paths into a filesystem path."""
    if location.startswith("file:"):
        parsed = urllib.parse.urlsplit(location)
        return urllib.request.url2pathname(parsed.path)
    return os.path.expanduser(location)


class LocalMavenRepository(Repository):
    """Reads versions, POMs and binaries from an m2 directory tree."""

    def __init__(self, root: str, name: Optional[str] = None):
        self.root = os.path.abspath(path_from_uri(root))
        super().__init__(name or self.root)

    def _path(self, *relative: str) -> str:
        return os.path.join(self.root, *relative)

    def _read(self, path: str) -> Optional[bytes]:
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "rb") as handle:
                return handle.read()
        except OSError as exc:
            raise RepositoryUnavailable(self.name, str(exc)) from exc

    def list_versions(self, group: str, artifact: str) -> List[str]:
        artifact_dir = self._path(artifact_path(group, artifact))
        if not os.path.isdir(artifact_dir):
            return []

        for metadata_name in _METADATA_FILES:
            data = self._read(os.path.join(artifact_dir, metadata_name))
            if data is None:
                continue
            try:
                versions = parse_metadata_versions(data)
            except ET.ParseError:
                logger.warning("Ignoring unparseable %s in %s", metadata_name, artifact_dir)
                continue
            if versions:
                return versions

        try:
            entries = sorted(os.listdir(artifact_dir))
        except OSError as exc:
            raise RepositoryUnavailable(self.name, str(exc)) from exc
        versions = [e for e in entries if os.path.isdir(os.path.join(artifact_dir, e))]
        if is_debug_enabled(logger):
            logger.debug(
                "Listed version directories",
                extra=extra_context(
                    event="function_exit",
                    component="local_repository",
                    action="list_versions",
                    outcome="directory_scan",
                    count=len(versions),
                    target=f"{group}:{artifact}",
                ),
            )
        return versions

    def has_version(self, group: str, artifact: str, version: str) -> bool:
        return os.path.isdir(self._path(artifact_path(group, artifact, version)))

    def fetch_pom(self, group: str, artifact: str, version: str) -> Optional[bytes]:
        filename = f"{artifact}-{version}.pom"
        return self._read(self._path(artifact_path(group, artifact, version), filename))

    def _artifact_file(self, coordinate: Coordinate, version: str, extension: str) -> str:
        return self._path(
            artifact_path(coordinate.group, coordinate.artifact, version),
            artifact_filename(coordinate, version, extension),
        )

    def has_artifact(self, coordinate: Coordinate, version: str, extension: str) -> bool:
        return os.path.isfile(self._artifact_file(coordinate, version, extension))

    def fetch_artifact(self, coordinate: Coordinate, version: str, extension: str) -> Optional[bytes]:
        return self._read(self._artifact_file(coordinate, version, extension))
