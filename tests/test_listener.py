"""
tests.test_listener

Change listener: intent updates, batching and feedback-loop suppression.
"""

from __future__ import annotations

from dataclasses import replace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync.group_clients.base import MemberSnapshot
from rolesync.reconciliation.outcomes import ListenerResult, PassStatus, ReconcileOutcome
from rolesync.services.runtime import RoleSyncRuntime, build_runtime
from rolesync.settings import Settings
from tests.fakes import FakeDirectory


def gain(directory: FakeDirectory, group_id: str, subject_id: str, *names: str):
    """Apply a human role edit in the fake and return (before, after) snapshots."""
    before = directory._members[(group_id, subject_id)]
    after = replace(before, roles=before.roles + tuple(directory._role(group_id, n) for n in names))
    directory._members[(group_id, subject_id)] = after
    return before, after


def lose(directory: FakeDirectory, group_id: str, subject_id: str, *names: str):
    before = directory._members[(group_id, subject_id)]
    after = replace(before, roles=tuple(r for r in before.roles if r.name not in names))
    directory._members[(group_id, subject_id)] = after
    return before, after


class ReconcileSpy:
    def __init__(self, runtime: RoleSyncRuntime) -> None:
        self.calls: list[str] = []
        self._inner = runtime.engine.reconcile

    async def __call__(self, subject_id: str) -> ReconcileOutcome:
        self.calls.append(subject_id)
        return await self._inner(subject_id)


@pytest.fixture
def spy(runtime: RoleSyncRuntime, monkeypatch: pytest.MonkeyPatch) -> ReconcileSpy:
    s = ReconcileSpy(runtime)
    monkeypatch.setattr(runtime.engine, "reconcile", s)
    return s


@pytest.mark.asyncio
async def test_role_in_a_single_group_is_ignored(
    settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    directory = FakeDirectory()
    directory.add_group("A", ["VIP"])
    directory.add_group("B", ["Mod"])
    rt = build_runtime(settings=settings, session_factory=session_factory, directory=directory)
    rt.classifier.rebuild()
    directory.add_member("A", "42")
    directory.add_member("B", "42")

    result = await rt.listener.on_member_update(*gain(directory, "A", "42", "VIP"))

    assert not result.touched_store
    assert result.outcome is None
    assert await rt.store.list_roles("42") == frozenset()
    assert directory.mutations == []


@pytest.mark.asyncio
async def test_gained_syncable_role_is_stored_and_propagated(
    runtime: RoleSyncRuntime, directory: FakeDirectory, spy: ReconcileSpy
) -> None:
    directory.add_member("A", "42")
    directory.add_member("B", "42")

    result = await runtime.listener.on_member_update(*gain(directory, "A", "42", "VIP"))

    assert result.stored == ["VIP"]
    assert await runtime.store.list_roles("42") == {"VIP"}
    assert spy.calls == ["42"]
    assert result.outcome is not None and result.outcome.status is PassStatus.converged
    assert directory.member_roles("B", "42") == {"VIP"}
    assert "C" in result.outcome.groups_skipped
    assert directory.mutations == [("add", "B", "42", "VIP")]


@pytest.mark.asyncio
async def test_lost_syncable_role_is_removed_everywhere(
    runtime: RoleSyncRuntime, directory: FakeDirectory
) -> None:
    directory.add_member("A", "42", ["VIP"])
    directory.add_member("B", "42", ["VIP"])
    await runtime.store.upsert("42", "VIP")

    result = await runtime.listener.on_member_update(*lose(directory, "B", "42", "VIP"))

    assert result.removed == ["VIP"]
    assert await runtime.store.list_roles("42") == frozenset()
    assert directory.member_roles("A", "42") == set()


@pytest.mark.asyncio
async def test_one_notification_triggers_one_pass(
    runtime: RoleSyncRuntime, directory: FakeDirectory, spy: ReconcileSpy
) -> None:
    directory.add_member("A", "42", ["Old"])
    await runtime.store.upsert("42", "Old")

    before, mid = gain(directory, "A", "42", "VIP", "Mod")
    _, after = lose(directory, "A", "42", "Old")
    result = await runtime.listener.on_member_update(before, after)

    assert result.stored == ["Mod", "VIP"]
    assert result.removed == ["Old"]
    assert spy.calls == ["42"]
    assert await runtime.store.list_roles("42") == {"VIP", "Mod"}


@pytest.mark.asyncio
async def test_non_syncable_changes_never_touch_the_store(
    runtime: RoleSyncRuntime, directory: FakeDirectory, spy: ReconcileSpy
) -> None:
    directory.add_member("A", "42")
    directory.add_member("C", "42")

    await runtime.listener.on_member_update(*gain(directory, "A", "42", "LocalOnly"))
    await runtime.listener.on_member_update(*gain(directory, "C", "42", "Artist"))

    assert spy.calls == []
    assert await runtime.store.list_roles("42") == frozenset()


@pytest.mark.asyncio
async def test_notification_for_locked_subject_is_discarded(
    runtime: RoleSyncRuntime, directory: FakeDirectory, spy: ReconcileSpy
) -> None:
    directory.add_member("A", "42")
    runtime.guard.try_acquire("42")

    result = await runtime.listener.on_member_update(*gain(directory, "A", "42", "VIP"))

    assert result.discarded
    assert spy.calls == []
    assert await runtime.store.list_roles("42") == frozenset()


@pytest.mark.asyncio
async def test_engine_writes_echoed_back_are_suppressed(
    runtime: RoleSyncRuntime, directory: FakeDirectory, spy: ReconcileSpy
) -> None:
    directory.add_member("A", "42", ["Old"])
    directory.add_member("B", "42")
    directory.add_member("C", "42", ["Old"])
    await runtime.store.upsert("42", "Old")
    # Every role write the engine makes comes straight back as a member update.
    directory.echo = runtime.listener.on_member_update

    result = await runtime.listener.on_member_update(*gain(directory, "A", "42", "VIP", "Mod"))

    assert result.outcome is not None
    assert directory.mutations == [("add", "B", "42", "Mod"), ("add", "B", "42", "VIP")]
    assert len(directory.echo_results) == 2
    assert all(isinstance(r, ListenerResult) and r.discarded for r in directory.echo_results)
    assert spy.calls == ["42"]
    assert await runtime.store.list_roles("42") == {"Old", "VIP", "Mod"}


def test_snapshot_role_names_skip_the_default_role(directory: FakeDirectory) -> None:
    member: MemberSnapshot = directory.add_member("A", "42", ["VIP"])
    assert member.role_names == {"VIP"}
