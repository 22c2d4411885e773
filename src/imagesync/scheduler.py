"""Bounded parallel execution of one operation over a queue of items."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Iterable, List, Optional, Set, TypeVar

from .config import FailurePolicy
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class OutcomeStatus(str, Enum):
    COPIED = "copied"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    item: T
    status: OutcomeStatus
    error: Optional[BaseException] = None


class AggregateResult(Generic[T]):
    """Outcomes collected by the workers of one :func:`run_bounded` call."""

    def __init__(self, policy: FailurePolicy, worker_count: int = 0):
        self.policy = policy
        self.worker_count = worker_count
        self.outcomes: List[Outcome[T]] = []
        self._lock = threading.Lock()

    def record(self, item: T, status: OutcomeStatus, error: Optional[BaseException] = None) -> None:
        with self._lock:
            self.outcomes.append(Outcome(item, status, error))

    def _items(self, status: OutcomeStatus) -> List[T]:
        return [o.item for o in self.outcomes if o.status is status]

    @property
    def copied(self) -> List[T]:
        return self._items(OutcomeStatus.COPIED)

    @property
    def failed(self) -> List[Outcome[T]]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    @property
    def cancelled(self) -> List[T]:
        return self._items(OutcomeStatus.CANCELLED)

    @property
    def first_error(self) -> Optional[BaseException]:
        failed = self.failed
        return failed[0].error if failed else None

    @property
    def succeeded(self) -> bool:
        """
        Whether the run counts as successful under its policy.

        Fail-fast runs succeed only without failures. Best-effort runs fail
        only when every attempted item failed.
        """
        failed = self.failed
        if not failed:
            return True
        if self.policy is FailurePolicy.FAIL_FAST:
            return False
        return bool(self.copied)


def run_bounded(
    items: Iterable[T],
    max_workers: int,
    operation: Callable[[T], None],
    policy: FailurePolicy = FailurePolicy.BEST_EFFORT,
) -> AggregateResult[T]:
    """
    Runs ``operation`` once for every item using at most ``max_workers`` threads.

    A producer puts every item on a shared queue followed by one close marker
    per worker; each worker takes items until it sees a marker. Workers are not
    assigned items upfront, so slow items do not hold back the others.

    With ``FailurePolicy.FAIL_FAST`` the first failure sets a cancellation
    event that workers check before taking the next item. Operations already
    running are left to finish; items never taken are reported as cancelled.
    With ``FailurePolicy.BEST_EFFORT`` every item is attempted and failures
    are logged as warnings.

    Returns only after the producer and all workers have exited.

    Raises:
        ConfigurationError: if ``max_workers`` is below 1 and there is work to do.
    """
    pending = list(items)
    if not pending:
        return AggregateResult(policy)
    if max_workers < 1:
        raise ConfigurationError(f"max concurrency must be at least 1, got {max_workers}")

    worker_count = min(max_workers, len(pending))
    result: AggregateResult[T] = AggregateResult(policy, worker_count)
    work: queue.Queue = queue.Queue(maxsize=len(pending) + worker_count)
    cancel = threading.Event()
    taken: Set[int] = set()
    taken_lock = threading.Lock()

    def produce() -> None:
        try:
            for index, item in enumerate(pending):
                if cancel.is_set():
                    break
                work.put((index, item))
        finally:
            for _ in range(worker_count):
                work.put(_CLOSED)

    def consume() -> None:
        while not cancel.is_set():
            entry = work.get()
            if entry is _CLOSED:
                return
            index, item = entry
            with taken_lock:
                taken.add(index)
            try:
                operation(item)
            except Exception as e:
                result.record(item, OutcomeStatus.FAILED, e)
                if policy is FailurePolicy.FAIL_FAST:
                    logger.error("Failed %s, cancelling remaining work: %s", item, e)
                    cancel.set()
                else:
                    logger.warning("Failed %s: %s", item, e)
            else:
                result.record(item, OutcomeStatus.COPIED)

    logger.debug("Running %d items on %d workers (%s)", len(pending), worker_count, policy.value)
    with ThreadPoolExecutor(
        max_workers=worker_count + 1, thread_name_prefix="imagesync"
    ) as executor:
        futures = [executor.submit(produce)]
        futures += [executor.submit(consume) for _ in range(worker_count)]
        for future in futures:
            future.result()

    for index, item in enumerate(pending):
        if index not in taken:
            result.record(item, OutcomeStatus.CANCELLED)
    return result
