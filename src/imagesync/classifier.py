"""Decides how a (source, destination) pair has to be synchronized."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from .archives import UnrecognizedArchiveError, detect_archive_format
from .endpoints import (
    ArchiveFile,
    ArchiveFormat,
    Endpoint,
    OciLayoutDir,
    Repository,
    SingleImage,
)
from .errors import DetectionError, DetectionFailure
from .reference import ImageReference, ReferenceParseError, parse_reference

logger = logging.getLogger(__name__)

ArchiveProbe = Callable[[Path], ArchiveFormat]


class SyncMode(str, Enum):
    """The four ways a source can be synchronized."""

    OCI_LAYOUT = "oci-layout"
    ARCHIVE = "archive"
    SINGLE_IMAGE = "single-image"
    REPOSITORY = "repository"


@dataclass(frozen=True)
class Classification:
    mode: SyncMode
    source: Endpoint
    destination: Union[SingleImage, Repository]


def _parse(location: str) -> ImageReference:
    try:
        return parse_reference(location)
    except ReferenceParseError as e:
        raise DetectionError(
            DetectionFailure.REFERENCE_PARSE_FAILURE, location, e
        ) from e


def _destination_endpoint(
    destination: ImageReference,
    location: str,
    source_tag: Optional[str] = None,
) -> Union[SingleImage, Repository]:
    if destination.digest is not None:
        raise DetectionError(DetectionFailure.UNEXPECTED_DESTINATION_DIGEST, location)
    if destination.has_tag:
        return SingleImage(destination)
    if source_tag is not None:
        return SingleImage(destination.with_tag(source_tag))
    return Repository(destination)


def classify(
    source: str,
    destination: str,
    probe: Optional[ArchiveProbe] = None,
) -> Classification:
    """
    Classifies ``source`` and resolves both locations into endpoints.

    Rules, first match wins:

    - ``source`` is an existing directory: an OCI layout.
    - ``source`` is an existing file: an OCI archive or a docker-archive.
    - ``source`` names an image with a tag or digest: a single image copy.
    - otherwise the whole repository is synchronized, which requires an
      untagged ``destination``.

    Only the local filesystem is consulted.

    Raises:
        DetectionError: if a location cannot be resolved.
    """
    probe = probe or detect_archive_format
    destination_ref = _parse(destination)

    if os.path.isdir(source):
        logger.debug("Source %s is a directory, assuming an OCI layout", source)
        return Classification(
            SyncMode.OCI_LAYOUT,
            OciLayoutDir(Path(source)),
            _destination_endpoint(destination_ref, destination),
        )

    if os.path.isfile(source):
        try:
            archive_format = probe(Path(source))
        except UnrecognizedArchiveError as e:
            raise DetectionError(DetectionFailure.UNRECOGNIZED_ARCHIVE, source, e) from e
        return Classification(
            SyncMode.ARCHIVE,
            ArchiveFile(Path(source), archive_format),
            _destination_endpoint(destination_ref, destination),
        )

    source_ref = _parse(source)
    if source_ref.is_pinned:
        return Classification(
            SyncMode.SINGLE_IMAGE,
            SingleImage(source_ref),
            _destination_endpoint(destination_ref, destination, source_ref.tag),
        )

    if destination_ref.is_pinned:
        kind = (
            DetectionFailure.UNEXPECTED_DESTINATION_TAG
            if destination_ref.has_tag
            else DetectionFailure.UNEXPECTED_DESTINATION_DIGEST
        )
        raise DetectionError(kind, destination)

    return Classification(
        SyncMode.REPOSITORY,
        Repository(source_ref),
        Repository(destination_ref),
    )
