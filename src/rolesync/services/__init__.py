"""
rolesync.services

Service-layer package.

Responsibilities:
- Own transaction boundaries (intent store) and the admin reset workflows.
- Compose the reconciliation runtime from settings and a group directory.
"""


# --- Module Notes -----------------------------------------------------------
# Services are plain Python and testable with a fake group directory and a temp SQLite file.
