"""
rolesync.bot.cog

Gateway events and `/sync` slash commands.

Responsibilities:
- Rebuild the syncable role set whenever guild/role topology changes.
- Feed member role updates into the change listener.
- Expose `/sync me`, `/sync user` and `/sync all` (the last two for administrators).
"""

from __future__ import annotations

import discord
from discord import app_commands
from discord.ext import commands

from rolesync.group_clients.discord_gateway import member_snapshot
from rolesync.observability.logging import get_logger
from rolesync.reconciliation.errors import StorageError
from rolesync.services.jobs import JobStatus, SyncAllJob
from rolesync.services.runtime import RoleSyncRuntime

log = get_logger(__name__)


def is_administrator(interaction: discord.Interaction) -> bool:
    user = interaction.user
    return isinstance(user, discord.Member) and user.guild_permissions.administrator


class RoleSyncCog(commands.Cog):
    sync = app_commands.Group(
        name="sync", description="Resets and syncs roles based on the primary server."
    )

    def __init__(
        self,
        bot: commands.Bot,
        runtime: RoleSyncRuntime,
        *,
        primary_guild_id: str | None,
    ) -> None:
        self.bot = bot
        self._runtime = runtime
        self._primary_guild_id = primary_guild_id

    def _rebuild(self, reason: str) -> None:
        log.info("topology_changed", reason=reason)
        self._runtime.classifier.rebuild()

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        log.info("gateway_ready", user=str(self.bot.user), guilds=len(self.bot.guilds))
        self._runtime.classifier.rebuild()
        primary = self._primary_guild_id
        if not primary or self.bot.get_guild(int(primary)) is None:
            log.error(
                "primary_guild_missing",
                primary_guild_id=primary,
                detail="/sync will not work until the bot is in the primary server",
            )

    @commands.Cog.listener()
    async def on_guild_join(self, guild: discord.Guild) -> None:
        self._rebuild("guild_join")

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        self._rebuild("guild_remove")

    @commands.Cog.listener()
    async def on_guild_role_create(self, role: discord.Role) -> None:
        self._rebuild("role_create")

    @commands.Cog.listener()
    async def on_guild_role_delete(self, role: discord.Role) -> None:
        self._rebuild("role_delete")

    @commands.Cog.listener()
    async def on_guild_role_update(self, before: discord.Role, after: discord.Role) -> None:
        if before.name != after.name or before.managed != after.managed:
            self._rebuild("role_update")

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        if before.roles == after.roles:
            return
        try:
            await self._runtime.listener.on_member_update(
                member_snapshot(before), member_snapshot(after)
            )
        except StorageError:
            log.error("member_update_not_recorded", subject_id=str(after.id))

    async def _reject_non_admin(self, interaction: discord.Interaction) -> bool:
        if is_administrator(interaction):
            return False
        await interaction.response.send_message(
            "You must be an administrator to use this subcommand.", ephemeral=True
        )
        return True

    @sync.command(name="me", description="Sync your own roles from the primary server.")
    async def sync_me(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message("Starting sync for you...", ephemeral=True)
        result = await self._runtime.service.sync_subject(str(interaction.user.id))
        await interaction.followup.send(result.message, ephemeral=True)

    @sync.command(name="user", description="Sync a specific user's roles (Admin only).")
    @app_commands.describe(target="The user to sync.")
    async def sync_user(self, interaction: discord.Interaction, target: discord.User) -> None:
        if await self._reject_non_admin(interaction):
            return
        await interaction.response.send_message(
            f"Starting sync for user {target.name}...", ephemeral=True
        )
        result = await self._runtime.service.sync_subject(str(target.id))
        await interaction.followup.send(result.message, ephemeral=True)

    @sync.command(name="all", description="Sync all members from the primary server (Admin only).")
    async def sync_all(self, interaction: discord.Interaction) -> None:
        if await self._reject_non_admin(interaction):
            return
        channel = interaction.channel
        await interaction.response.send_message(
            "**Starting sync for ALL members.** This may take a very long time. "
            "A message will be sent here upon completion."
        )

        async def announce(job: SyncAllJob) -> None:
            if not isinstance(channel, discord.abc.Messageable):
                return
            if job.status is JobStatus.completed:
                await channel.send(job.report.summary())
            else:
                await channel.send(f"Cannot complete sync: {job.error}")

        service = self._runtime.service
        self._runtime.jobs.start(
            lambda progress: service.sync_all(progress=progress),
            requested_by=str(interaction.user.id),
            on_done=announce,
        )


# --- Module Notes -----------------------------------------------------------
# Permission checks here are a plain administrator flag; finer-grained access control is
# left to Discord's integration settings.
