"""
rolesync.db.init_db

Schema bootstrap.

Responsibilities:
- Create the intent table on startup if it does not exist.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from rolesync.db import models  # noqa: F401  # registers tables on Base.metadata
from rolesync.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
