"""Configuration schema for imagesync using Pydantic."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError


class FailurePolicy(str, Enum):
    """How the copy scheduler reacts to a failing tag."""

    BEST_EFFORT = "best-effort"
    FAIL_FAST = "fail-fast"


class FilterRule(BaseModel):
    """Which tags of a repository are in scope."""

    model_config = ConfigDict(frozen=True)

    skip_tags: List[str] = Field(default_factory=list)
    """Tags excluded verbatim. Applied first."""

    include_pattern: Optional[str] = None
    """Only tags matching this regex are kept. Applied second."""

    exclude_pattern: Optional[str] = None
    """Tags matching this regex are dropped. Applied last."""


class SyncConfig(BaseModel):
    """Options of one sync run."""

    model_config = ConfigDict(extra="forbid")

    source_strict_tls: bool = False
    """Verify TLS certificates of the source registry."""

    destination_strict_tls: bool = False
    """Verify TLS certificates of the destination registry."""

    tags_include_pattern: Optional[str] = None
    tags_exclude_pattern: Optional[str] = None

    skip_tags: List[str] = Field(default_factory=list)
    """Tags never copied. A comma separated string is accepted too."""

    overwrite: bool = False
    """Copy every selected tag even if the destination already has it."""

    max_concurrent_tags: int = 1
    """Upper bound of tags copied in parallel, to stay below registry rate limits."""

    failure_policy: FailurePolicy = FailurePolicy.BEST_EFFORT

    @field_validator("tags_include_pattern", "tags_exclude_pattern")
    @classmethod
    def _compiles(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"{value!r} is not a valid regexp: {e}") from e
        return value

    @field_validator("skip_tags", mode="before")
    @classmethod
    def _split_skip_tags(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            return [str(tag).strip() for tag in value if str(tag).strip()]
        return value

    @field_validator("max_concurrent_tags")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"must be at least 1, got {value}")
        return value

    @property
    def filter_rule(self) -> FilterRule:
        return FilterRule(
            skip_tags=self.skip_tags,
            include_pattern=self.tags_include_pattern,
            exclude_pattern=self.tags_exclude_pattern,
        )

    @classmethod
    def build(cls, data: Dict[str, Any]) -> SyncConfig:
        """Validates ``data``, reporting problems as :class:`ConfigurationError`."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    @classmethod
    def from_yaml(cls, path: Union[str, Path], **overrides: Any) -> SyncConfig:
        """Loads a SyncConfig from a YAML file, ``overrides`` taking precedence."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"reading {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a mapping")
        data = {str(key).replace("-", "_"): value for key, value in data.items()}
        data.update(overrides)
        return cls.build(data)
