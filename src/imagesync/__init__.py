"""Daemonless synchronization of container images between registries and local archives."""

from .config import FailurePolicy, FilterRule, SyncConfig
from .errors import (
    ConfigurationError,
    CopyError,
    DetectionError,
    DetectionFailure,
    ImageSyncError,
    ListingError,
)
from .report import SyncReport, SyncStatus
from .sync import run_sync

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CopyError",
    "DetectionError",
    "DetectionFailure",
    "FailurePolicy",
    "FilterRule",
    "ImageSyncError",
    "ListingError",
    "SyncConfig",
    "SyncReport",
    "SyncStatus",
    "run_sync",
]
