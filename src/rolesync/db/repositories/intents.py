"""
rolesync.db.repositories.intents

Repository for `SyncedRole` rows.

Responsibilities:
- Insert/delete single (subject, role) pairs idempotently.
- List and clear a subject's desired role set.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from rolesync.db.models import SyncedRole


class IntentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def insert(self, *, subject_id: str, role_name: str) -> None:
        if self._session.bind.dialect.name == "sqlite":
            stmt = (
                sqlite_insert(SyncedRole)
                .values(subject_id=subject_id, role_name=role_name)
                .on_conflict_do_nothing(index_elements=["subject_id", "role_name"])
            )
            await self._session.execute(stmt)
            return

        existing = await self._session.get(SyncedRole, (subject_id, role_name))
        if existing is None:
            self._session.add(SyncedRole(subject_id=subject_id, role_name=role_name))
            await self._session.flush()

    async def delete(self, *, subject_id: str, role_name: str) -> None:
        await self._session.execute(
            delete(SyncedRole).where(
                SyncedRole.subject_id == subject_id, SyncedRole.role_name == role_name
            )
        )

    async def clear(self, subject_id: str) -> None:
        await self._session.execute(delete(SyncedRole).where(SyncedRole.subject_id == subject_id))

    async def role_names(self, subject_id: str) -> set[str]:
        stmt = select(SyncedRole.role_name).where(SyncedRole.subject_id == subject_id)
        return set((await self._session.execute(stmt)).scalars().all())
