"""
rolesync.bot

Discord gateway surface.

Responsibilities:
- Build the discord.py bot and wire its events and slash commands to the runtime.
"""
