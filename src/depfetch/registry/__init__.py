"""Repository access: local and remote Maven layouts behind a priority-ordered set."""

from .base import Repository
from .repository_set import ArtifactMetadata, RepositorySet, Selection, build_repository_set

__all__ = ["Repository", "ArtifactMetadata", "RepositorySet", "Selection", "build_repository_set"]
