"""
rolesync.services.intent_store

Durable store of desired role intent (transaction owner).

Responsibilities:
- Expose the four intent operations (upsert, remove, list, replace-all).
- Open one session + one transaction per operation and commit before returning.
- Translate SQLAlchemy failures into `StorageError` after rollback.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync.db.repositories.intents import IntentRepo
from rolesync.observability.logging import get_logger
from rolesync.reconciliation.errors import StorageError

log = get_logger(__name__)


class IntentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self, op: str, subject_id: str) -> AsyncIterator[IntentRepo]:
        try:
            async with self._session_factory() as session, session.begin():
                yield IntentRepo(session)
        except SQLAlchemyError as e:
            # session.begin() has already rolled back by the time we get here.
            log.error("intent_store_failed", op=op, subject_id=subject_id, error=str(e))
            raise StorageError(f"intent store {op} failed for subject {subject_id}") from e

    async def upsert(self, subject_id: str, role_name: str) -> None:
        async with self._transaction("upsert", subject_id) as repo:
            await repo.insert(subject_id=subject_id, role_name=role_name)

    async def remove(self, subject_id: str, role_name: str) -> None:
        async with self._transaction("remove", subject_id) as repo:
            await repo.delete(subject_id=subject_id, role_name=role_name)

    async def list_roles(self, subject_id: str) -> frozenset[str]:
        async with self._transaction("list_roles", subject_id) as repo:
            return frozenset(await repo.role_names(subject_id))

    async def replace_all(self, subject_id: str, role_names: Iterable[str]) -> None:
        names = sorted(set(role_names))
        async with self._transaction("replace_all", subject_id) as repo:
            await repo.clear(subject_id)
            for name in names:
                await repo.insert(subject_id=subject_id, role_name=name)
        log.info("intent_replaced", subject_id=subject_id, roles=names)


# --- Module Notes -----------------------------------------------------------
# There is no engine-level lock around the store: SQLite serialises the writers, and the
# reconciliation guard keeps one subject's passes from overlapping.
