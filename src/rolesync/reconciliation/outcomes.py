"""
rolesync.reconciliation.outcomes

Result types returned by the engine, the listener and the reset service.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class PassStatus(enum.StrEnum):
    converged = "CONVERGED"
    partial = "PARTIAL"
    skipped = "SKIPPED"
    failed = "FAILED"


class RoleAction(enum.StrEnum):
    add = "ADD"
    remove = "REMOVE"


@dataclass(frozen=True, slots=True)
class RoleChange:
    group_id: str
    group_name: str
    role_name: str
    action: RoleAction


@dataclass(frozen=True, slots=True)
class ChangeFailure:
    group_id: str
    group_name: str
    error: str
    # None when the member lookup for the whole group failed.
    role_name: str | None = None
    action: RoleAction | None = None


@dataclass(slots=True)
class ReconcileOutcome:
    subject_id: str
    status: PassStatus
    desired: frozenset[str] = frozenset()
    applied: list[RoleChange] = field(default_factory=list)
    failures: list[ChangeFailure] = field(default_factory=list)
    groups_checked: list[str] = field(default_factory=list)
    groups_skipped: list[str] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def skipped(cls, subject_id: str) -> ReconcileOutcome:
        return cls(subject_id=subject_id, status=PassStatus.skipped)

    @property
    def converged(self) -> bool:
        return self.status is PassStatus.converged

    def count(self, action: RoleAction) -> int:
        return sum(1 for c in self.applied if c.action is action)

    def summary(self) -> str:
        if self.status is PassStatus.skipped:
            return "skipped: a sync for this user is already in progress"
        if self.status is PassStatus.failed:
            return "failed: an unexpected error interrupted the sync"
        text = (
            f"{self.count(RoleAction.add)} added, {self.count(RoleAction.remove)} removed "
            f"across {len(self.groups_checked)} server(s)"
        )
        if self.failures:
            text += f", {len(self.failures)} change(s) failed"
        return text


@dataclass(slots=True)
class ListenerResult:
    subject_id: str
    discarded: bool = False
    stored: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    outcome: ReconcileOutcome | None = None

    @property
    def touched_store(self) -> bool:
        return bool(self.stored or self.removed)


@dataclass(frozen=True, slots=True)
class SyncResult:
    """User-facing outcome of one reset: a flag and a plain-text message."""

    subject_id: str
    success: bool
    message: str
    outcome: ReconcileOutcome | None = None


@dataclass(slots=True)
class SyncAllReport:
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped_bots: int = 0
    failures: list[SyncResult] = field(default_factory=list)

    def summary(self) -> str:
        # Skipped bots are not failures.
        return (
            "Sync All Complete!\n"
            f"- Successful: {self.succeeded}\n"
            f"- Failed/Skipped: {self.failed}"
        )
