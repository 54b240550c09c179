"""
rolesync.group_clients.discord_gateway

discord.py adapter for the group directory contracts.

Responsibilities:
- Read guild/role topology from the connected client's cache.
- Fetch members, list members and grant/revoke roles over the REST API.
- Translate discord.py errors into the engine's error taxonomy.
"""

from __future__ import annotations

from collections.abc import Sequence

import discord

from rolesync.group_clients.base import GroupRef, MemberSnapshot, RoleRef
from rolesync.reconciliation.errors import NotAMemberError, TransientApiError


AUDIT_REASON = "Cross-server role sync"


def group_ref(guild: discord.Guild) -> GroupRef:
    return GroupRef(group_id=str(guild.id), name=guild.name)


def role_ref(role: discord.Role) -> RoleRef:
    return RoleRef(
        group_id=str(role.guild.id),
        role_id=str(role.id),
        name=role.name,
        managed=role.managed,
        is_default=role.is_default(),
    )


def member_snapshot(member: discord.Member) -> MemberSnapshot:
    return MemberSnapshot(
        group_id=str(member.guild.id),
        subject_id=str(member.id),
        display_name=member.display_name,
        roles=tuple(role_ref(r) for r in member.roles),
        is_bot=member.bot,
        handle=member,
    )


class DiscordGroupDirectory:
    """`GroupCatalog` + `MembershipMutator` over a logged-in `discord.Client`."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    def _guild(self, group_id: str) -> discord.Guild:
        guild = self._client.get_guild(int(group_id))
        if guild is None:
            raise TransientApiError(f"guild {group_id} is not available to this client")
        return guild

    def groups(self) -> Sequence[GroupRef]:
        return [group_ref(g) for g in self._client.guilds]

    def roles(self, group_id: str) -> Sequence[RoleRef]:
        guild = self._client.get_guild(int(group_id))
        if guild is None:
            return []
        return [role_ref(r) for r in guild.roles]

    async def fetch_group(self, group_id: str) -> GroupRef | None:
        guild = self._client.get_guild(int(group_id))
        if guild is not None:
            return group_ref(guild)
        try:
            return group_ref(await self._client.fetch_guild(int(group_id)))
        except (discord.NotFound, discord.Forbidden):
            return None
        except discord.HTTPException as e:
            raise TransientApiError(f"fetching guild {group_id} failed: {e}") from e

    async def fetch_member(self, group_id: str, subject_id: str) -> MemberSnapshot:
        guild = self._guild(group_id)
        member = guild.get_member(int(subject_id))
        if member is None:
            try:
                member = await guild.fetch_member(int(subject_id))
            except discord.NotFound as e:
                raise NotAMemberError(subject_id, group_id) from e
            except discord.HTTPException as e:
                raise TransientApiError(
                    f"fetching member {subject_id} in {guild.name} failed: {e}"
                ) from e
        return member_snapshot(member)

    async def list_members(self, group_id: str) -> Sequence[MemberSnapshot]:
        guild = self._guild(group_id)
        try:
            return [member_snapshot(m) async for m in guild.fetch_members(limit=None)]
        except discord.HTTPException as e:
            raise TransientApiError(f"listing members of {guild.name} failed: {e}") from e

    async def _member(self, member: MemberSnapshot) -> discord.Member:
        if isinstance(member.handle, discord.Member):
            return member.handle
        try:
            return await self._guild(member.group_id).fetch_member(int(member.subject_id))
        except discord.NotFound as e:
            raise NotAMemberError(member.subject_id, member.group_id) from e
        except discord.HTTPException as e:
            raise TransientApiError(str(e)) from e

    async def add_role(self, member: MemberSnapshot, role: RoleRef) -> None:
        target = await self._member(member)
        try:
            await target.add_roles(discord.Object(id=int(role.role_id)), reason=AUDIT_REASON)
        except discord.HTTPException as e:
            raise TransientApiError(
                f"Failed to add role {role.name!r} in {target.guild.name}: {e}"
            ) from e

    async def remove_role(self, member: MemberSnapshot, role: RoleRef) -> None:
        target = await self._member(member)
        try:
            await target.remove_roles(discord.Object(id=int(role.role_id)), reason=AUDIT_REASON)
        except discord.HTTPException as e:
            raise TransientApiError(
                f"Failed to remove role {role.name!r} in {target.guild.name}: {e}"
            ) from e


# --- Module Notes -----------------------------------------------------------
# Member reads prefer the gateway cache (kept fresh by GUILD_MEMBER_UPDATE events) and fall
# back to REST; listing members requires the privileged members intent.
