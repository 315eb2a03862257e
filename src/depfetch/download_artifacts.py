"""depfetch - resolve Android/Maven dependencies and copy them into a directory.

Reads the flat property map (``PACKAGES_TO_COPY``, ``TARGET_DIR``, ...),
resolves one conflict-free set of artifacts, optionally jetifies it, writes
the binaries and prints the Copied/Missing/Modified report on stdout.
"""
from __future__ import annotations

import logging
import sys
from typing import List, Optional, Sequence, Tuple

from depfetch.args import parse_args
from depfetch.cli_config import ResolverConfig, load_resolver_config
from depfetch.common.logging_utils import configure_logging, extra_context, is_debug_enabled, Timer
from depfetch.constants import ExitCodes
from depfetch.errors import ConfigurationError, MalformedSpecError, MaterializationFailure
from depfetch.jetifier import JetifierAdapter, JetifierMapping
from depfetch.materializer import Materializer
from depfetch.registry.repository_set import RepositorySet, build_repository_set
from depfetch.report import Report, ReportBuilder
from depfetch.resolution.service import ResolutionService
from depfetch.versioning.models import ResolutionResult
from depfetch.versioning.parser import parse_package_specs

logger = logging.getLogger(__name__)


def resolve(
    config: ResolverConfig, repositories: RepositorySet
) -> Tuple[ResolutionResult, List[MalformedSpecError]]:
    """Parse ``PACKAGES_TO_COPY`` and resolve it, jetifying when enabled."""
    requests, errors = parse_package_specs(config.packages_to_copy)
    service = ResolutionService(repositories)
    result = service.resolve(requests)
    if config.use_jetifier:
        mapping = JetifierMapping(data_binding_version=config.data_binding_version)
        result = JetifierAdapter(service, mapping).apply(result)
    return result, errors


def download_artifacts(
    config: ResolverConfig, repositories: Optional[RepositorySet] = None
) -> Tuple[Report, List[MalformedSpecError]]:
    """Resolve, materialize and report.

    Args:
        config: Resolver configuration.
        repositories: Repository set to use; built from ``config`` when omitted.

    Returns:
        Tuple of (report, malformed specification errors).

    Raises:
        MaterializationFailure: If an artifact cannot be written.
    """
    if repositories is None:
        repositories = build_repository_set(
            config.maven_repos,
            use_maven_local_repo=config.use_maven_local_repo,
            use_remote_maven_repos=config.use_remote_maven_repos,
        )
    with Timer() as t:
        result, errors = resolve(config, repositories)
        outcome = Materializer(repositories, config.target_dir).materialize(result)
        report = ReportBuilder().build(result, outcome)

    logger.info(
        "Copied %d artifacts to %s (%d missing, %d modified)",
        len(report.copied), config.target_dir, len(report.missing), len(report.modified),
    )
    if is_debug_enabled(logger):
        logger.debug(
            "Download complete",
            extra=extra_context(
                event="function_exit",
                component="download_artifacts",
                action="download",
                outcome="success",
                duration_ms=t.duration_ms(),
            ),
        )
    return report, errors


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entrypoint."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, args.LOG_FILE)

    try:
        config = load_resolver_config(args)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return ExitCodes.CONFIG_ERROR.value

    try:
        report, errors = download_artifacts(config)
    except MaterializationFailure as exc:
        logger.error("%s", exc)
        return ExitCodes.FILE_ERROR.value

    if not args.QUIET:
        text = report.render()
        if text:
            sys.stdout.write(text + "\n")

    if errors:
        logger.error("%d malformed package specification(s)", len(errors))
        return ExitCodes.SPEC_ERROR.value
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
