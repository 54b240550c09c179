"""
rolesync.bot.client

discord.py bot construction.

Responsibilities:
- Request the intents the engine needs (guilds + privileged members).
- Build the reconciliation runtime over a `DiscordGroupDirectory` bound to this bot.
- Register the role sync cog and publish its slash commands on startup.
"""

from __future__ import annotations

import discord
from discord.ext import commands
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync.bot.cog import RoleSyncCog
from rolesync.group_clients.discord_gateway import DiscordGroupDirectory
from rolesync.observability.logging import get_logger
from rolesync.services.runtime import RoleSyncRuntime, build_runtime
from rolesync.settings import Settings

log = get_logger(__name__)


class RoleSyncBot(commands.Bot):
    runtime: RoleSyncRuntime

    def __init__(self, *, settings: Settings) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True
        super().__init__(command_prefix=commands.when_mentioned, intents=intents)
        self.settings = settings

    async def setup_hook(self) -> None:
        await self.add_cog(
            RoleSyncCog(self, self.runtime, primary_guild_id=self.settings.primary_guild_id)
        )
        synced = await self.tree.sync()
        log.info("slash_commands_published", count=len(synced))


def create_bot(
    *, settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> RoleSyncBot:
    bot = RoleSyncBot(settings=settings)
    bot.runtime = build_runtime(
        settings=settings,
        session_factory=session_factory,
        directory=DiscordGroupDirectory(bot),
    )
    return bot
