"""
rolesync.reconciliation.engine

Convergence engine: make one subject's syncable roles match its stored intent in
every guild the bot can see.

Responsibilities:
- Take the per-subject guard (skip, never queue, when a pass is already running).
- Diff desired vs. actual syncable roles per guild and issue the minimal adds/removes.
- Isolate failures per guild and per role change; release the guard on every path.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from rolesync.group_clients.base import (
    GroupCatalog,
    GroupRef,
    MemberSnapshot,
    MembershipMutator,
    RoleRef,
)
from rolesync.observability.logging import get_logger
from rolesync.reconciliation.classifier import SyncableRoles
from rolesync.reconciliation.errors import NotAMemberError, TransientApiError
from rolesync.reconciliation.guard import ReconciliationGuard
from rolesync.reconciliation.outcomes import (
    ChangeFailure,
    PassStatus,
    ReconcileOutcome,
    RoleAction,
    RoleChange,
)
from rolesync.services.intent_store import IntentStore

log = get_logger(__name__)

T = TypeVar("T")


class ReconciliationEngine:
    def __init__(
        self,
        *,
        store: IntentStore,
        catalog: GroupCatalog,
        mutator: MembershipMutator,
        roles: SyncableRoles,
        guard: ReconciliationGuard,
        call_timeout: float | None = None,
        rerun_on_contention: bool = False,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._mutator = mutator
        self._roles = roles
        self._guard = guard
        self._call_timeout = call_timeout
        self._rerun_on_contention = rerun_on_contention
        self._rerun_requested: set[str] = set()

    @property
    def guard(self) -> ReconciliationGuard:
        return self._guard

    @property
    def roles(self) -> SyncableRoles:
        return self._roles

    async def reconcile(self, subject_id: str) -> ReconcileOutcome:
        with self._guard.hold(subject_id) as acquired:
            if not acquired:
                if self._rerun_on_contention:
                    self._rerun_requested.add(subject_id)
                log.info("reconcile_skipped", subject_id=subject_id, reason="in_progress")
                return ReconcileOutcome.skipped(subject_id)

            try:
                outcome = await self._run_pass(subject_id)
                # At most one follow-up: requests arriving during the re-run collapse into it.
                if subject_id in self._rerun_requested:
                    self._rerun_requested.discard(subject_id)
                    log.info("reconcile_rerun", subject_id=subject_id)
                    outcome = await self._run_pass(subject_id)
                return outcome
            finally:
                self._rerun_requested.discard(subject_id)

    async def _run_pass(self, subject_id: str) -> ReconcileOutcome:
        with structlog.contextvars.bound_contextvars(subject_id=subject_id):
            # StorageError propagates to whoever triggered the pass.
            desired = await self._store.list_roles(subject_id)
            outcome = ReconcileOutcome(
                subject_id=subject_id, status=PassStatus.converged, desired=desired
            )
            try:
                for group in list(self._catalog.groups()):
                    await self._reconcile_group(group, subject_id, desired, outcome)
            except Exception as e:
                log.exception("reconcile_crashed")
                outcome.status = PassStatus.failed
                outcome.error = str(e)
                return outcome

            if outcome.failures:
                outcome.status = PassStatus.partial
            log.info(
                "reconcile_finished",
                status=outcome.status.value,
                added=outcome.count(RoleAction.add),
                removed=outcome.count(RoleAction.remove),
                failures=len(outcome.failures),
                groups_checked=len(outcome.groups_checked),
            )
            return outcome

    async def _reconcile_group(
        self,
        group: GroupRef,
        subject_id: str,
        desired: frozenset[str],
        outcome: ReconcileOutcome,
    ) -> None:
        try:
            member = await self._call(self._catalog.fetch_member(group.group_id, subject_id))
        except NotAMemberError:
            outcome.groups_skipped.append(group.group_id)
            return
        except Exception as e:
            if not isinstance(e, TransientApiError):
                log.exception("member_fetch_crashed", group_id=group.group_id)
            else:
                log.warning("member_fetch_failed", group_id=group.group_id, error=str(e))
            outcome.failures.append(
                ChangeFailure(group_id=group.group_id, group_name=group.name, error=str(e))
            )
            return

        outcome.groups_checked.append(group.group_id)
        syncable = self._roles.names()
        actual = member.role_names & syncable

        by_name: dict[str, RoleRef] = {}
        for role in self._catalog.roles(group.group_id):
            by_name.setdefault(role.name, role)

        for name in sorted((desired & syncable) - actual):
            role = by_name.get(name)
            if role is None or role.managed or role.is_default:
                continue
            await self._apply(RoleAction.add, group, member, role, outcome)

        for name in sorted(actual - desired):
            role = member.role_named(name)
            if role is None or role.managed:
                continue
            await self._apply(RoleAction.remove, group, member, role, outcome)

    async def _apply(
        self,
        action: RoleAction,
        group: GroupRef,
        member: MemberSnapshot,
        role: RoleRef,
        outcome: ReconcileOutcome,
    ) -> None:
        op = self._mutator.add_role if action is RoleAction.add else self._mutator.remove_role
        try:
            await self._call(op(member, role))
        except Exception as e:
            log.warning(
                "role_change_failed",
                group_id=group.group_id,
                role=role.name,
                action=action.value,
                error=str(e),
            )
            outcome.failures.append(
                ChangeFailure(
                    group_id=group.group_id,
                    group_name=group.name,
                    error=str(e),
                    role_name=role.name,
                    action=action,
                )
            )
            return

        log.info("role_changed", group_id=group.group_id, role=role.name, action=action.value)
        outcome.applied.append(
            RoleChange(
                group_id=group.group_id, group_name=group.name, role_name=role.name, action=action
            )
        )

    async def _call(self, aw: Awaitable[T]) -> T:
        if self._call_timeout is None:
            return await aw
        try:
            return await asyncio.wait_for(aw, self._call_timeout)
        except TimeoutError as e:
            raise TransientApiError(f"platform call timed out after {self._call_timeout}s") from e


# --- Module Notes -----------------------------------------------------------
# The listener discards membership events for a subject while its guard is held, which
# is what stops this engine's own role writes from re-triggering it.
