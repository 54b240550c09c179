"""
rolesync.auth.models

Auth domain models.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Scope(enum.StrEnum):
    # Reset your own roles from the primary guild.
    sync_self = "sync:self"
    # Reset anyone (single user or the whole primary guild).
    sync_any = "sync:any"


@dataclass(frozen=True, slots=True)
class Operator:
    """
    Caller of the admin API. `subject_id` is the operator's Discord user id, so
    `/v1/sync/me` resets the operator's own roles.
    """

    subject_id: str
    scopes: frozenset[str]

    def can(self, scope: Scope) -> bool:
        # sync:any implies sync:self.
        return scope.value in self.scopes or Scope.sync_any.value in self.scopes
