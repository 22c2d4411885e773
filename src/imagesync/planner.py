"""The Planner turns the raw tag lists of two repositories into the tags to copy."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Tuple

from .config import FilterRule
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncPlan:
    """
    The ordered tags one repository sync has to copy.

    ``tags`` is always a subset of the source tags, sorted ascending.
    """

    tags: Tuple[str, ...]
    source_count: int = 0
    filtered_out: int = 0
    already_present: int = 0

    @property
    def empty(self) -> bool:
        return not self.tags

    def __len__(self) -> int:
        return len(self.tags)

    def __iter__(self):
        return iter(self.tags)


def tag_set(tags: Iterable[str]) -> List[str]:
    """Sorted, duplicate free copy of ``tags``."""
    return sorted(set(tags))


def _compile(pattern: Optional[str]) -> Optional[Pattern[str]]:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(f"{pattern!r} is not a valid regexp: {e}") from e


def filter_tags(tags: Iterable[str], rule: FilterRule) -> List[str]:
    """
    Applies ``rule`` to ``tags``.

    The order is fixed: the skip list first, then the include pattern, then
    the exclude pattern. Patterns match anywhere in the tag unless anchored.
    """
    include = _compile(rule.include_pattern)
    exclude = _compile(rule.exclude_pattern)
    skipped = set(rule.skip_tags)

    selected = [tag for tag in tag_set(tags) if tag not in skipped]
    if include is not None:
        selected = [tag for tag in selected if include.search(tag)]
    if exclude is not None:
        selected = [tag for tag in selected if not exclude.search(tag)]
    return selected


def resolve_plan(
    source_tags: Iterable[str],
    destination_tags: Optional[Iterable[str]],
    rule: FilterRule,
    overwrite: bool = False,
) -> SyncPlan:
    """
    Computes the tags to copy from the source to the destination repository.

    Args:
        source_tags: Tags listed at the source repository.
        destination_tags: Tags listed at the destination, or None when they
            could not be listed (typically the repository does not exist yet).
        rule: Tag filter.
        overwrite: Copy filtered tags even if the destination has them.
    """
    source = tag_set(source_tags)
    selected = filter_tags(source, rule)

    if overwrite or destination_tags is None:
        tags = selected
    else:
        present = set(destination_tags)
        tags = [tag for tag in selected if tag not in present]

    plan = SyncPlan(
        tags=tuple(tags),
        source_count=len(source),
        filtered_out=len(source) - len(selected),
        already_present=len(selected) - len(tags),
    )
    logger.debug(
        "Planned %d of %d source tags (%d filtered out, %d already present)",
        len(plan), plan.source_count, plan.filtered_out, plan.already_present,
    )
    return plan
