"""
rolesync.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the persistence layer.
"""


# --- Module Notes -----------------------------------------------------------
# Repositories are intentionally thin; transaction boundaries belong in services.
