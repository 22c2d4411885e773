"""Collaborators that talk to registries and local image stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol

from ..endpoints import Endpoint, Repository


@dataclass(frozen=True)
class TLSPolicy:
    """Certificate verification for both sides of a copy."""

    source_verify: bool = False
    destination_verify: bool = False


class ImageBackend(Protocol):
    """What the sync core needs from an image transport."""

    def list_tags(self, repository: Repository, tls_verify: bool) -> List[str]:
        """Returns the tags of ``repository``, raising ListingError on failure."""
        ...

    def copy(self, source: Endpoint, destination: Endpoint, tls: TLSPolicy) -> None:
        """Copies ``source`` into ``destination``, raising CopyError on failure.

        Must be safe to call from several threads for distinct tag pairs.
        """
        ...
