"""
rolesync.reconciliation.errors

Error taxonomy shared by the store, the group adapters and the engine.

Responsibilities:
- Name the four failure classes the engine distinguishes (not-a-member,
  transient API failure, configuration, storage).
- Carry enough context for plain-text user messages.
"""

from __future__ import annotations


class RoleSyncError(Exception):
    """Base class for every failure the sync service reports by name."""


class NotAMemberError(RoleSyncError):
    def __init__(self, subject_id: str, group_id: str) -> None:
        super().__init__(f"subject {subject_id} is not a member of group {group_id}")
        self.subject_id = subject_id
        self.group_id = group_id


class TransientApiError(RoleSyncError):
    """Network, rate-limit or permission failure on a single platform call."""


class ConfigurationError(RoleSyncError):
    """The primary group is unset or not reachable."""


class StorageError(RoleSyncError):
    """A durable intent-store transaction failed and was rolled back."""


# --- Module Notes -----------------------------------------------------------
# NotAMemberError is routine during reconciliation (most subjects are not in every
# guild); only reset requests surface it to users.
