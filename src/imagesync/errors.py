"""Exception hierarchy for imagesync."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ImageSyncError(Exception):
    """Base class for every error raised by imagesync."""


class ConfigurationError(ImageSyncError):
    """Invalid user configuration, detected before any network activity."""


class DetectionFailure(str, Enum):
    """Reasons a location could not be classified."""

    UNRECOGNIZED_ARCHIVE = "unrecognized-archive"
    UNEXPECTED_DESTINATION_TAG = "unexpected-destination-tag"
    UNEXPECTED_DESTINATION_DIGEST = "unexpected-destination-digest"
    REFERENCE_PARSE_FAILURE = "reference-parse-failure"


class DetectionError(ImageSyncError):
    """A source or destination location could not be resolved into an endpoint."""

    def __init__(
        self,
        kind: DetectionFailure,
        location: str,
        cause: Optional[BaseException] = None,
    ):
        self.kind = kind
        self.location = location
        self.cause = cause
        message = f"{kind.value}: {location!r}"
        if cause is not None:
            message += f" ({cause})"
        super().__init__(message)


class ListingError(ImageSyncError):
    """Tags of a repository could not be enumerated."""

    def __init__(self, repository: str, reason: str):
        self.repository = repository
        self.reason = reason
        super().__init__(f"listing tags of {repository}: {reason}")


class CopyError(ImageSyncError):
    """Copying one image failed."""

    def __init__(self, source: str, destination: str, reason: str):
        self.source = source
        self.destination = destination
        self.reason = reason
        super().__init__(f"copying {source} to {destination}: {reason}")
