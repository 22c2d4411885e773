"""Top level control flow of a sync run."""

from __future__ import annotations

import logging
from typing import Optional

from .backends import ImageBackend, TLSPolicy
from .backends.skopeo import SkopeoClient
from .classifier import ArchiveProbe, Classification, SyncMode, classify
from .config import SyncConfig
from .endpoints import Repository
from .errors import CopyError, ListingError
from .planner import resolve_plan
from .report import SyncReport, SyncStatus
from .scheduler import run_bounded

logger = logging.getLogger(__name__)


def run_sync(
    source: str,
    destination: str,
    config: SyncConfig,
    backend: Optional[ImageBackend] = None,
    probe: Optional[ArchiveProbe] = None,
) -> SyncReport:
    """
    Synchronizes ``source`` into ``destination``.

    Archives, OCI layouts and tagged images are copied with a single call to
    the backend. Untagged sources are treated as repositories: their tags are
    filtered, diffed against the destination and copied in parallel.

    Returns a report whose status is ``ALREADY_SYNCED`` when there was nothing
    to copy. The caller decides what that means for the process exit code.

    Raises:
        ImageSyncError: on detection, listing or copy failures.
    """
    backend = backend or SkopeoClient()
    tls = TLSPolicy(
        source_verify=config.source_strict_tls,
        destination_verify=config.destination_strict_tls,
    )

    classification = classify(source, destination, probe)
    logger.debug(
        "Detected %s sync from %s to %s",
        classification.mode.value, classification.source, classification.destination,
    )

    if classification.mode is SyncMode.REPOSITORY:
        return _sync_repository(classification, config, backend, tls)

    backend.copy(classification.source, classification.destination, tls)
    logger.info("Image(s) sync completed.")
    return SyncReport(
        mode=classification.mode,
        status=SyncStatus.SYNCED,
        source=str(classification.source),
        destination=str(classification.destination),
    )


def _sync_repository(
    classification: Classification,
    config: SyncConfig,
    backend: ImageBackend,
    tls: TLSPolicy,
) -> SyncReport:
    source = classification.source
    destination = classification.destination
    assert isinstance(source, Repository) and isinstance(destination, Repository)

    source_tags = backend.list_tags(source, tls.source_verify)

    destination_tags = None
    if not config.overwrite:
        try:
            destination_tags = backend.list_tags(destination, tls.destination_verify)
        except ListingError as e:
            logger.info("Treating destination %s as empty: %s", destination, e)

    plan = resolve_plan(source_tags, destination_tags, config.filter_rule, config.overwrite)
    report = SyncReport(
        mode=classification.mode,
        status=SyncStatus.SYNCED,
        source=str(source),
        destination=str(destination),
        plan=plan,
    )

    if plan.empty:
        logger.info("Image in repositories are already synced")
        report.status = SyncStatus.ALREADY_SYNCED
        return report

    logger.info(
        "Starting image sync with total-tags=%d tags=%s source=%s destination=%s",
        len(plan), list(plan.tags), source, destination,
    )

    def copy_tag(tag: str) -> None:
        backend.copy(source.image(tag), destination.image(tag), tls)

    result = run_bounded(plan.tags, config.max_concurrent_tags, copy_tag, config.failure_policy)
    report.outcomes = list(result.outcomes)

    if not result.succeeded:
        raise CopyError(
            str(source),
            str(destination),
            f"{len(result.failed)} of {len(plan)} tags failed, first error: {result.first_error}",
        ) from result.first_error

    if result.failed:
        logger.warning(
            "Synced %d of %d tags, failed: %s",
            len(result.copied), len(plan), ", ".join(sorted(o.item for o in result.failed)),
        )
        report.status = SyncStatus.PARTIAL
    else:
        logger.info("Image(s) sync completed.")
    return report
