"""
PeriodGuard -- per-period mutual exclusion within one process.

Responsibility:
    Ensures at most one lifecycle operation or journal mutation runs against
    a given period at a time inside this process.  A second caller is
    rejected with PeriodBusyError rather than queued.

Architecture position:
    Kernel > Services.  Used by PeriodLifecycleService and JournalStore.
    Cross-process serialization is the job of the conditional status
    UPDATE (row lock) in PeriodLifecycleService; this guard only keeps
    threads of one process from interleaving.

Non-goals:
    - No cross-period locking: periods are independent aggregates.
    - No blocking waits: a held period fails the request immediately.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID

from oceanre_kernel.exceptions import PeriodBusyError
from oceanre_kernel.logging_config import get_logger

logger = get_logger("services.period_guard")


class PeriodGuard:
    """
    Registry of one non-reentrant lock per period id.

    Entries are reference-counted: a lock exists only while some caller is
    inside ``hold`` for that period, so ids that are never seen again
    (deleted periods, unknown ids answered with 404) leave nothing behind.
    """

    def __init__(self) -> None:
        # period_id -> (lock, number of callers currently inside hold())
        self._locks: dict[UUID, tuple[threading.Lock, int]] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, period_id: UUID) -> threading.Lock:
        with self._registry_lock:
            lock, users = self._locks.get(period_id, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[period_id] = (lock, users + 1)
            return lock

    def _checkin(self, period_id: UUID) -> None:
        with self._registry_lock:
            lock, users = self._locks[period_id]
            if users <= 1:
                del self._locks[period_id]
            else:
                self._locks[period_id] = (lock, users - 1)

    @contextmanager
    def hold(self, period_id: UUID, operation: str) -> Iterator[None]:
        """
        Hold the period's lock for the duration of the block.

        Raises:
            PeriodBusyError: If another operation already holds it.
        """
        lock = self._checkout(period_id)
        try:
            if not lock.acquire(blocking=False):
                logger.warning(
                    "period_busy_rejected",
                    extra={"period_id": str(period_id), "operation": operation},
                )
                raise PeriodBusyError(period_id)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(period_id)

    def is_held(self, period_id: UUID) -> bool:
        with self._registry_lock:
            entry = self._locks.get(period_id)
        return entry is not None and entry[0].locked()

    def tracked_count(self) -> int:
        """Number of periods that currently have a registry entry."""
        with self._registry_lock:
            return len(self._locks)


# Process-wide default shared by every service instance
default_guard = PeriodGuard()
