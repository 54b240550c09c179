"""
rolesync.reconciliation.guard

Per-subject mutual exclusion for reconciliation passes.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class ReconciliationGuard:
    """
    Non-blocking set of subjects with a pass in flight.

    All callers run on one event loop and there is no await between the membership
    check and the insert, so a plain set is enough.
    """

    def __init__(self) -> None:
        self._locked: set[str] = set()

    def try_acquire(self, subject_id: str) -> bool:
        if subject_id in self._locked:
            return False
        self._locked.add(subject_id)
        return True

    def release(self, subject_id: str) -> None:
        self._locked.discard(subject_id)

    def is_locked(self, subject_id: str) -> bool:
        return subject_id in self._locked

    @contextmanager
    def hold(self, subject_id: str) -> Iterator[bool]:
        """Yield whether the lock was taken; release on exit only if it was."""
        acquired = self.try_acquire(subject_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(subject_id)
