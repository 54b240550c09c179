"""
tests.test_cog

Gateway listeners and `/sync` commands of `RoleSyncCog`, driven with stand-in
interactions, members and channels.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import discord
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync.bot.cog import RoleSyncCog, is_administrator
from rolesync.group_clients.base import MemberSnapshot
from rolesync.reconciliation.errors import StorageError
from rolesync.services.runtime import RoleSyncRuntime, build_runtime
from rolesync.settings import Settings
from tests.fakes import FakeDirectory


class FakeResponse:
    def __init__(self) -> None:
        self.sent: list[tuple[str, bool]] = []

    async def send_message(self, content: str, *, ephemeral: bool = False) -> None:
        self.sent.append((content, ephemeral))


class FakeFollowup:
    def __init__(self) -> None:
        self.sent: list[tuple[str, bool]] = []

    async def send(self, content: str, *, ephemeral: bool = False) -> None:
        self.sent.append((content, ephemeral))


class FakeChannel(discord.abc.Messageable):
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def _get_channel(self) -> Any:
        return self

    async def send(  # type: ignore[override]
        self, content: str | None = None, **kwargs: Any
    ) -> Any:
        self.sent.append(content or "")


class FakeInteraction:
    def __init__(self, user: Any, channel: Any = None) -> None:
        self.user = user
        self.channel = channel
        self.response = FakeResponse()
        self.followup = FakeFollowup()


def admin(user_id: int = 7) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.guild_permissions = SimpleNamespace(administrator=True)
    return member


def regular(user_id: int = 7) -> MagicMock:
    member = admin(user_id)
    member.guild_permissions = SimpleNamespace(administrator=False)
    return member


def gateway_member(*role_names: str) -> SimpleNamespace:
    guild = SimpleNamespace(id=1, name="Main")
    roles = [
        SimpleNamespace(
            id=i, name=name, guild=guild, managed=False, is_default=lambda: False
        )
        for i, name in enumerate(role_names, start=10)
    ]
    return SimpleNamespace(guild=guild, id=42, display_name="user-42", roles=roles, bot=False)


def make_cog(runtime: RoleSyncRuntime, primary: str | None = "1") -> RoleSyncCog:
    bot = SimpleNamespace(user="rolesync#0001", guilds=[], get_guild=lambda _id: None)
    return RoleSyncCog(bot, runtime, primary_guild_id=primary)  # type: ignore[arg-type]


@pytest.fixture
def cog(runtime: RoleSyncRuntime) -> RoleSyncCog:
    return make_cog(runtime)


@pytest.fixture
def rebuilds(runtime: RoleSyncRuntime, monkeypatch: pytest.MonkeyPatch) -> list[int]:
    calls: list[int] = []

    def rebuild() -> frozenset[str]:
        calls.append(1)
        return frozenset()

    monkeypatch.setattr(runtime.classifier, "rebuild", rebuild)
    return calls


def test_only_members_with_the_administrator_flag_are_admins() -> None:
    assert is_administrator(FakeInteraction(admin()))  # type: ignore[arg-type]
    assert not is_administrator(FakeInteraction(regular()))  # type: ignore[arg-type]
    # Users outside a guild (DMs) carry no guild permissions at all.
    assert not is_administrator(FakeInteraction(SimpleNamespace(id=7)))  # type: ignore[arg-type]


# -- gateway listeners ------------------------------------------------------


@pytest.mark.asyncio
async def test_member_role_changes_are_forwarded_as_snapshots(
    cog: RoleSyncCog, runtime: RoleSyncRuntime, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen: list[tuple[MemberSnapshot, MemberSnapshot]] = []

    async def on_member_update(before: MemberSnapshot, after: MemberSnapshot) -> None:
        seen.append((before, after))

    monkeypatch.setattr(runtime.listener, "on_member_update", on_member_update)

    await cog.on_member_update(gateway_member(), gateway_member("VIP"))  # type: ignore[arg-type]

    ((before, after),) = seen
    assert before.role_names == frozenset()
    assert after.role_names == {"VIP"}
    assert (after.group_id, after.subject_id) == ("1", "42")


@pytest.mark.asyncio
async def test_updates_without_role_changes_are_ignored(
    cog: RoleSyncCog, runtime: RoleSyncRuntime, monkeypatch: pytest.MonkeyPatch
) -> None:
    seen: list[object] = []

    async def on_member_update(before: MemberSnapshot, after: MemberSnapshot) -> None:
        seen.append(after)

    monkeypatch.setattr(runtime.listener, "on_member_update", on_member_update)
    member = gateway_member("VIP")
    renamed = SimpleNamespace(**{**vars(member), "display_name": "new nick"})

    await cog.on_member_update(member, renamed)  # type: ignore[arg-type]

    assert seen == []


@pytest.mark.asyncio
async def test_store_failure_on_member_update_does_not_escape(
    cog: RoleSyncCog, runtime: RoleSyncRuntime, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def on_member_update(before: MemberSnapshot, after: MemberSnapshot) -> None:
        raise StorageError("database is locked")

    monkeypatch.setattr(runtime.listener, "on_member_update", on_member_update)

    await cog.on_member_update(gateway_member(), gateway_member("VIP"))  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_topology_events_rebuild_the_syncable_set(
    cog: RoleSyncCog, rebuilds: list[int]
) -> None:
    guild = SimpleNamespace(id=1, name="Main")
    role = SimpleNamespace(name="VIP", managed=False)

    await cog.on_ready()
    await cog.on_guild_join(guild)  # type: ignore[arg-type]
    await cog.on_guild_remove(guild)  # type: ignore[arg-type]
    await cog.on_guild_role_create(role)  # type: ignore[arg-type]
    await cog.on_guild_role_delete(role)  # type: ignore[arg-type]

    assert len(rebuilds) == 5


@pytest.mark.asyncio
async def test_role_update_rebuilds_only_on_name_or_managed_change(
    cog: RoleSyncCog, rebuilds: list[int]
) -> None:
    vip = SimpleNamespace(name="VIP", managed=False, colour=1)
    recoloured = SimpleNamespace(name="VIP", managed=False, colour=2)
    renamed = SimpleNamespace(name="V.I.P.", managed=False, colour=1)
    integrated = SimpleNamespace(name="VIP", managed=True, colour=1)

    await cog.on_guild_role_update(vip, recoloured)  # type: ignore[arg-type]
    assert rebuilds == []

    await cog.on_guild_role_update(vip, renamed)  # type: ignore[arg-type]
    await cog.on_guild_role_update(vip, integrated)  # type: ignore[arg-type]
    assert len(rebuilds) == 2


# -- /sync commands ---------------------------------------------------------


@pytest.mark.asyncio
async def test_sync_me_replies_privately_with_the_result(
    cog: RoleSyncCog, directory: FakeDirectory
) -> None:
    directory.add_member("A", "7", ["VIP"])
    directory.add_member("B", "7")
    interaction = FakeInteraction(regular(7))

    await RoleSyncCog.sync_me.callback(cog, interaction)  # type: ignore[arg-type]

    assert interaction.response.sent == [("Starting sync for you...", True)]
    ((message, ephemeral),) = interaction.followup.sent
    assert ephemeral
    assert message.startswith("Sync complete for <@7>:")
    assert directory.member_roles("B", "7") == {"VIP"}


@pytest.mark.asyncio
async def test_sync_user_is_refused_for_non_admins(
    cog: RoleSyncCog, directory: FakeDirectory
) -> None:
    directory.add_member("A", "42", ["VIP"])
    directory.add_member("B", "42")
    interaction = FakeInteraction(regular())
    target = SimpleNamespace(id=42, name="bob")

    await RoleSyncCog.sync_user.callback(cog, interaction, target)  # type: ignore[arg-type]

    assert interaction.response.sent == [
        ("You must be an administrator to use this subcommand.", True)
    ]
    assert interaction.followup.sent == []
    assert directory.mutations == []


@pytest.mark.asyncio
async def test_sync_user_resets_the_target_for_admins(
    cog: RoleSyncCog, directory: FakeDirectory
) -> None:
    directory.add_member("A", "42", ["VIP"])
    directory.add_member("B", "42")
    interaction = FakeInteraction(admin())
    target = SimpleNamespace(id=42, name="bob")

    await RoleSyncCog.sync_user.callback(cog, interaction, target)  # type: ignore[arg-type]

    assert interaction.response.sent == [("Starting sync for user bob...", True)]
    assert interaction.followup.sent[0][0].startswith("Sync complete for <@42>:")
    assert directory.member_roles("B", "42") == {"VIP"}


@pytest.mark.asyncio
async def test_sync_all_is_refused_for_non_admins(
    cog: RoleSyncCog, runtime: RoleSyncRuntime, directory: FakeDirectory
) -> None:
    directory.add_member("A", "1", ["VIP"])
    channel = FakeChannel()
    interaction = FakeInteraction(regular(), channel)

    await RoleSyncCog.sync_all.callback(cog, interaction)  # type: ignore[arg-type]
    await runtime.jobs.wait()

    assert interaction.response.sent == [
        ("You must be an administrator to use this subcommand.", True)
    ]
    assert channel.sent == []


@pytest.mark.asyncio
async def test_sync_all_posts_the_summary_to_the_channel(
    cog: RoleSyncCog, runtime: RoleSyncRuntime, directory: FakeDirectory
) -> None:
    directory.add_member("A", "1", ["VIP"])
    directory.add_member("A", "2", bot=True)
    directory.add_member("B", "1")
    channel = FakeChannel()
    interaction = FakeInteraction(admin(), channel)

    await RoleSyncCog.sync_all.callback(cog, interaction)  # type: ignore[arg-type]
    await runtime.jobs.wait()

    ((ack, ephemeral),) = interaction.response.sent
    assert ack.startswith("**Starting sync for ALL members.**")
    assert not ephemeral
    assert channel.sent == ["Sync All Complete!\n- Successful: 1\n- Failed/Skipped: 0"]
    assert directory.member_roles("B", "1") == {"VIP"}


@pytest.mark.asyncio
async def test_sync_all_reports_why_it_could_not_run(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    directory: FakeDirectory,
) -> None:
    rt = build_runtime(
        settings=settings.model_copy(update={"primary_guild_id": None}),
        session_factory=session_factory,
        directory=directory,
    )
    cog = make_cog(rt, primary=None)
    channel = FakeChannel()

    interaction = FakeInteraction(admin(), channel)

    await RoleSyncCog.sync_all.callback(cog, interaction)  # type: ignore[arg-type]
    await rt.jobs.wait()

    assert channel.sent == [
        "Cannot complete sync: The primary server has not been configured by the bot owner."
    ]
