"""Structural parsing of registry image references.

A reference has the form ``[domain/]path[:tag][@digest]`` where ``domain`` is a
registry host with an optional port and ``path`` is one or more slash separated
lowercase components. Parsing is purely textual; no registry is contacted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Optional

NAME_MAX_LENGTH = 255

_PATH_COMPONENT = re.compile(r"[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*")
_DOMAIN = re.compile(
    r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
    r"(?:\.(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9]))*"
    r"(?::[0-9]+)?"
)
_TAG = re.compile(r"[\w][\w.-]{0,127}")
_DIGEST = re.compile(r"[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}")

DOCKER_TRANSPORT_PREFIX = "docker://"


class ReferenceParseError(ValueError):
    """Raised when a string is not a valid image reference."""


@dataclass(frozen=True)
class ImageReference:
    """A parsed image reference."""

    path: str
    domain: Optional[str] = None
    tag: Optional[str] = None
    digest: Optional[str] = None

    @property
    def name(self) -> str:
        """Repository name including the registry domain, without tag or digest."""
        if self.domain:
            return f"{self.domain}/{self.path}"
        return self.path

    @property
    def has_tag(self) -> bool:
        return self.tag is not None

    @property
    def is_pinned(self) -> bool:
        """True when the reference selects one image (by tag or digest)."""
        return self.tag is not None or self.digest is not None

    def with_tag(self, tag: str) -> ImageReference:
        if not _TAG.fullmatch(tag):
            raise ReferenceParseError(f"invalid tag {tag!r}")
        return replace(self, tag=tag, digest=None)

    def repository(self) -> ImageReference:
        """The same reference with tag and digest stripped."""
        return replace(self, tag=None, digest=None)

    def __str__(self) -> str:
        value = self.name
        if self.tag:
            value += f":{self.tag}"
        if self.digest:
            value += f"@{self.digest}"
        return value


def _is_domain(component: str) -> bool:
    # Same heuristic docker uses to tell "registry.example.com/app" from "library/app".
    return (
        "." in component
        or ":" in component
        or component == "localhost"
        or component.lower() != component
    )


def parse_reference(value: str) -> ImageReference:
    """Parses ``value`` into an :class:`ImageReference`.

    Raises:
        ReferenceParseError: if ``value`` is not a well-formed reference.
    """
    if not value:
        raise ReferenceParseError("reference is empty")

    remainder = value
    if remainder.startswith(DOCKER_TRANSPORT_PREFIX):
        remainder = remainder[len(DOCKER_TRANSPORT_PREFIX):]

    digest = None
    if "@" in remainder:
        remainder, digest = remainder.split("@", 1)
        if not _DIGEST.fullmatch(digest):
            raise ReferenceParseError(f"invalid digest {digest!r}")

    tag = None
    last_slash = remainder.rfind("/")
    colon = remainder.rfind(":")
    if colon > last_slash:
        remainder, tag = remainder[:colon], remainder[colon + 1:]
        if not _TAG.fullmatch(tag):
            raise ReferenceParseError(f"invalid tag {tag!r}")

    if not remainder:
        raise ReferenceParseError("repository name is empty")
    if len(remainder) > NAME_MAX_LENGTH:
        raise ReferenceParseError(
            f"repository name must not be longer than {NAME_MAX_LENGTH} characters"
        )

    components = remainder.split("/")
    domain = None
    if len(components) > 1 and _is_domain(components[0]):
        domain = components.pop(0)
        if not _DOMAIN.fullmatch(domain):
            raise ReferenceParseError(f"invalid registry domain {domain!r}")

    for component in components:
        if not _PATH_COMPONENT.fullmatch(component):
            raise ReferenceParseError(
                f"invalid repository path component {component!r} in {value!r}"
            )

    return ImageReference(path="/".join(components), domain=domain, tag=tag, digest=digest)
