"""
tests.conftest

Shared fixtures: a temporary SQLite intent store and a runtime over `FakeDirectory`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rolesync.db.init_db import init_db
from rolesync.db.session import create_sessionmaker
from rolesync.services.intent_store import IntentStore
from rolesync.services.runtime import RoleSyncRuntime, build_runtime
from rolesync.settings import Settings
from tests.fakes import FakeDirectory


def db_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path / 'roles.db'}"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        database_url=db_url(tmp_path),
        primary_guild_id="A",
        sync_all_calls_per_second=1000.0,
    )


@pytest_asyncio.fixture
async def session_factory(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_async_engine(settings.database_url)
    await init_db(engine)
    yield create_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> IntentStore:
    return IntentStore(session_factory)


@pytest.fixture
def directory() -> FakeDirectory:
    """
    Three guilds. "VIP" and "Mod" exist in A and B, "Old" in A and C,
    "LocalOnly" only in A, "Booster" is managed in A and B.
    """
    d = FakeDirectory()
    d.add_group("A", ["VIP", "Mod", "Old", "LocalOnly"], managed=["Booster"])
    d.add_group("B", ["VIP", "Mod"], managed=["Booster"])
    d.add_group("C", ["Old", "Artist"])
    return d


@pytest.fixture
def runtime(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    directory: FakeDirectory,
) -> RoleSyncRuntime:
    rt = build_runtime(settings=settings, session_factory=session_factory, directory=directory)
    rt.classifier.rebuild()
    return rt
