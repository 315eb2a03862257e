"""Repository abstraction shared by local and remote Maven repositories."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from depfetch.versioning.models import Coordinate


def artifact_path(group: str, artifact: str, version: Optional[str] = None) -> str:
    """Return the m2 layout directory ``group/path/artifact[/version]``."""
    parts = [group.replace(".", "/"), artifact]
    if version:
        parts.append(version)
    return "/".join(parts)


def artifact_filename(coordinate: Coordinate, version: str, extension: str) -> str:
    """Return the m2 file name ``artifact-version[-classifier].ext``."""
    name = f"{coordinate.artifact}-{version}"
    if coordinate.classifier:
        name += f"-{coordinate.classifier}"
    return f"{name}.{extension}"


class Repository(ABC):
    """A source of versions, POMs and binaries laid out like a Maven repository.

    Lookups that find nothing return empty results or ``None``. Implementations
    raise ``RepositoryUnavailable`` only when the repository itself cannot
    be read.
    """

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @abstractmethod
    def list_versions(self, group: str, artifact: str) -> List[str]:
        """Return every version this repository publishes for group:artifact."""

    @abstractmethod
    def has_version(self, group: str, artifact: str, version: str) -> bool:
        """Return True if the version directory (or its POM) exists."""

    @abstractmethod
    def fetch_pom(self, group: str, artifact: str, version: str) -> Optional[bytes]:
        """Return the raw POM bytes or None."""

    @abstractmethod
    def has_artifact(self, coordinate: Coordinate, version: str, extension: str) -> bool:
        """Return True if the binary with ``extension`` exists."""

    @abstractmethod
    def fetch_artifact(self, coordinate: Coordinate, version: str, extension: str) -> Optional[bytes]:
        """Return the binary bytes or None."""
