"""Error taxonomy for the resolver pipeline.

Only ``MaterializationFailure`` and ``ConfigurationError`` abort a run. The
other errors are recovered locally and surface through the report.
"""

from __future__ import annotations

from typing import Tuple


class DepfetchError(Exception):
    """Base class for all resolver errors."""


class ConfigurationError(DepfetchError):
    """Invalid or incomplete resolver configuration."""


class MalformedSpecError(DepfetchError):
    """A package specification string could not be parsed."""

    def __init__(self, spec: str, reason: str):
        super().__init__(f"Malformed package specification '{spec}': {reason}")
        self.spec = spec
        self.reason = reason


class RepositoryUnavailable(DepfetchError):
    """A single repository failed to answer a lookup or fetch."""

    def __init__(self, repository: str, reason: str):
        super().__init__(f"Repository {repository} unavailable: {reason}")
        self.repository = repository
        self.reason = reason


class UnresolvableConflict(DepfetchError):
    """No forced upgrade satisfies every consumer of an identity."""

    def __init__(self, identity: Tuple[str, str], reason: str = "no compatible upgrade found"):
        super().__init__(f"Unresolvable conflict on {identity[0]}:{identity[1]}: {reason}")
        self.identity = identity
        self.reason = reason


class MaterializationFailure(DepfetchError):
    """A resolved artifact could not be written to the target directory."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to materialize {path}: {reason}")
        self.path = path
        self.reason = reason
