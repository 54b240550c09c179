"""
rolesync.group_clients

Group directory boundary.

Responsibilities:
- Define the value types and protocols the engine uses to read guild topology
  and to grant/revoke roles.
- Host concrete adapters (discord.py).
"""


# --- Module Notes -----------------------------------------------------------
# The reconciliation package depends on `group_clients.base` only, never on discord.py.
