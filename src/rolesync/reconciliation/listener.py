"""
rolesync.reconciliation.listener

Membership-change entry point (feedback-loop boundary).

Responsibilities:
- Drop notifications for subjects whose reconciliation pass is in flight.
- Record gained/lost syncable roles as intent; ignore everything else.
- Trigger one reconciliation pass per notification that changed intent.
"""

from __future__ import annotations

from rolesync.group_clients.base import MemberSnapshot
from rolesync.observability.logging import get_logger
from rolesync.reconciliation.classifier import SyncableRoles
from rolesync.reconciliation.engine import ReconciliationEngine
from rolesync.reconciliation.guard import ReconciliationGuard
from rolesync.reconciliation.outcomes import ListenerResult
from rolesync.services.intent_store import IntentStore

log = get_logger(__name__)


class ChangeListener:
    def __init__(
        self,
        *,
        store: IntentStore,
        roles: SyncableRoles,
        guard: ReconciliationGuard,
        engine: ReconciliationEngine,
    ) -> None:
        self._store = store
        self._roles = roles
        self._guard = guard
        self._engine = engine

    async def on_member_update(
        self, before: MemberSnapshot, after: MemberSnapshot
    ) -> ListenerResult:
        subject_id = after.subject_id
        result = ListenerResult(subject_id=subject_id)

        # Echo of our own writes (or a human edit racing a pass): the pass decides the state.
        if self._guard.is_locked(subject_id):
            result.discarded = True
            return result

        old, new = before.role_names, after.role_names
        for name in sorted(new - old):
            if name in self._roles:
                log.info(
                    "syncable_role_gained",
                    subject_id=subject_id,
                    group_id=after.group_id,
                    role=name,
                )
                await self._store.upsert(subject_id, name)
                result.stored.append(name)

        for name in sorted(old - new):
            if name in self._roles:
                log.info(
                    "syncable_role_lost",
                    subject_id=subject_id,
                    group_id=after.group_id,
                    role=name,
                )
                await self._store.remove(subject_id, name)
                result.removed.append(name)

        if result.touched_store:
            result.outcome = await self._engine.reconcile(subject_id)
        return result
