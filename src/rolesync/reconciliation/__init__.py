"""
rolesync.reconciliation

Reconciliation core.

Responsibilities:
- Syncable-role classification, per-subject guard, the convergence engine and the
  change listener that feeds it.
"""


# --- Module Notes -----------------------------------------------------------
# Nothing here imports discord.py or SQLAlchemy; collaborators are injected.
