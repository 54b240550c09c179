"""
rolesync.services.runtime

Composition of the reconciliation runtime.

Responsibilities:
- Own the process-scoped state (syncable role set, guard) and inject it into the
  classifier, engine, listener and reset service.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync.group_clients.base import GroupDirectory
from rolesync.reconciliation.classifier import SyncableRoleClassifier, SyncableRoles
from rolesync.reconciliation.engine import ReconciliationEngine
from rolesync.reconciliation.guard import ReconciliationGuard
from rolesync.reconciliation.listener import ChangeListener
from rolesync.services.intent_store import IntentStore
from rolesync.services.jobs import SyncAllJobs
from rolesync.services.rate_limit import AsyncTokenBucket
from rolesync.services.sync_service import RoleSyncService
from rolesync.settings import Settings


@dataclass(slots=True)
class RoleSyncRuntime:
    directory: GroupDirectory
    store: IntentStore
    roles: SyncableRoles
    classifier: SyncableRoleClassifier
    guard: ReconciliationGuard
    engine: ReconciliationEngine
    listener: ChangeListener
    service: RoleSyncService
    jobs: SyncAllJobs


def build_runtime(
    *,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    directory: GroupDirectory,
) -> RoleSyncRuntime:
    store = IntentStore(session_factory)
    roles = SyncableRoles()
    guard = ReconciliationGuard()

    classifier = SyncableRoleClassifier(
        catalog=directory, roles=roles, everyone_role_name=settings.everyone_role_name
    )
    engine = ReconciliationEngine(
        store=store,
        catalog=directory,
        mutator=directory,
        roles=roles,
        guard=guard,
        call_timeout=settings.group_call_timeout_seconds,
        rerun_on_contention=settings.rerun_on_contention,
    )
    listener = ChangeListener(store=store, roles=roles, guard=guard, engine=engine)
    service = RoleSyncService(
        catalog=directory,
        store=store,
        roles=roles,
        engine=engine,
        primary_group_id=settings.primary_guild_id,
        limiter=AsyncTokenBucket(
            rate=settings.sync_all_calls_per_second, burst=settings.sync_all_burst
        ),
    )
    return RoleSyncRuntime(
        directory=directory,
        store=store,
        roles=roles,
        classifier=classifier,
        guard=guard,
        engine=engine,
        listener=listener,
        service=service,
        jobs=SyncAllJobs(),
    )
