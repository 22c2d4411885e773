"""Detection of the image archive format of a local tarball."""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path
from typing import Set, Union

from .endpoints import ArchiveFormat

logger = logging.getLogger(__name__)

OCI_LAYOUT_FILE = "oci-layout"
OCI_INDEX_FILE = "index.json"
DOCKER_MANIFEST_FILE = "manifest.json"


class UnrecognizedArchiveError(ValueError):
    """The file is not an OCI archive nor a docker-archive."""


def _top_level_members(path: Path) -> Set[str]:
    with tarfile.open(path, "r:*") as tf:
        names = set()
        for member in tf.getmembers():
            name = member.name
            while name.startswith("./"):
                name = name[2:]
            names.add(name)
        return names


def detect_archive_format(path: Union[str, Path]) -> ArchiveFormat:
    """
    Determines whether ``path`` holds an OCI archive or a docker-archive.

    OCI archives are tried first: a tarball carrying both ``oci-layout`` and
    ``index.json`` is an OCI archive. Otherwise a top-level ``manifest.json``
    marks a ``docker save`` style archive.

    Raises:
        UnrecognizedArchiveError: if the file is neither.
    """
    path = Path(path)
    try:
        members = _top_level_members(path)
    except (tarfile.TarError, OSError) as e:
        raise UnrecognizedArchiveError(f"{path} is not a readable tar archive: {e}") from e

    if OCI_LAYOUT_FILE in members and OCI_INDEX_FILE in members:
        logger.debug("Detected OCI archive at %s", path)
        return ArchiveFormat.OCI_ARCHIVE

    if DOCKER_MANIFEST_FILE in members:
        logger.debug("Detected docker-archive at %s", path)
        return ArchiveFormat.DOCKER_ARCHIVE

    raise UnrecognizedArchiveError(
        f"{path} contains neither an OCI layout nor a docker manifest"
    )
