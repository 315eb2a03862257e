"""Maven repository implementations and POM parsing."""

from .local import LocalMavenRepository
from .remote import RemoteMavenRepository

__all__ = ["LocalMavenRepository", "RemoteMavenRepository"]
