"""Resolved source and destination endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from .reference import ImageReference


class ArchiveFormat(str, Enum):
    """Tarball layouts understood as image archives."""

    OCI_ARCHIVE = "oci-archive"
    DOCKER_ARCHIVE = "docker-archive"


@dataclass(frozen=True)
class ArchiveFile:
    """An image stored in a local tarball."""

    path: Path
    format: ArchiveFormat

    def __str__(self) -> str:
        return f"{self.format.value}:{self.path}"


@dataclass(frozen=True)
class OciLayoutDir:
    """An image stored in a local OCI image layout directory."""

    path: Path

    def __str__(self) -> str:
        return f"oci:{self.path}"


@dataclass(frozen=True)
class SingleImage:
    """One image in a registry, selected by tag or digest."""

    reference: ImageReference

    @property
    def repository(self) -> str:
        return self.reference.name

    @property
    def tag(self):
        return self.reference.tag

    def __str__(self) -> str:
        return str(self.reference)


@dataclass(frozen=True)
class Repository:
    """A whole registry repository, addressed without a tag."""

    reference: ImageReference

    @property
    def repository(self) -> str:
        return self.reference.name

    def image(self, tag: str) -> SingleImage:
        """The image tagged ``tag`` inside this repository."""
        return SingleImage(self.reference.with_tag(tag))

    def __str__(self) -> str:
        return self.reference.name


Endpoint = Union[ArchiveFile, OciLayoutDir, SingleImage, Repository]
