"""
rolesync.group_clients.base

Platform-neutral view of guilds, roles and members.

Responsibilities:
- Immutable snapshots (`GroupRef`, `RoleRef`, `MemberSnapshot`) handed to the engine.
- `GroupCatalog` / `MembershipMutator` protocols that adapters implement.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class GroupRef:
    group_id: str
    name: str


@dataclass(frozen=True, slots=True)
class RoleRef:
    group_id: str
    role_id: str
    name: str
    # Managed roles belong to an integration (bot, booster, subscription) and are never mutated.
    managed: bool = False
    # The implicit role every member holds (Discord's @everyone).
    is_default: bool = False


@dataclass(frozen=True, slots=True)
class MemberSnapshot:
    group_id: str
    subject_id: str
    display_name: str
    roles: tuple[RoleRef, ...] = ()
    is_bot: bool = False
    # Platform object the adapter may reuse for writes; opaque to the engine.
    handle: Any = field(default=None, compare=False, repr=False)

    @property
    def role_names(self) -> frozenset[str]:
        return frozenset(r.name for r in self.roles if not r.is_default)

    def role_named(self, name: str) -> RoleRef | None:
        for role in self.roles:
            if role.name == name:
                return role
        return None


class GroupCatalog(Protocol):
    def groups(self) -> Sequence[GroupRef]:
        """Groups the process can currently see (cached topology, no I/O)."""
        ...

    def roles(self, group_id: str) -> Sequence[RoleRef]:
        """Role catalog of one group (cached topology, no I/O)."""
        ...

    async def fetch_group(self, group_id: str) -> GroupRef | None:
        ...

    async def fetch_member(self, group_id: str, subject_id: str) -> MemberSnapshot:
        """Raises NotAMemberError when the subject is not in the group."""
        ...

    async def list_members(self, group_id: str) -> Sequence[MemberSnapshot]:
        ...


class MembershipMutator(Protocol):
    async def add_role(self, member: MemberSnapshot, role: RoleRef) -> None:
        ...

    async def remove_role(self, member: MemberSnapshot, role: RoleRef) -> None:
        ...


class GroupDirectory(GroupCatalog, MembershipMutator, Protocol):
    """An adapter that can both read topology and write memberships."""


# --- Module Notes -----------------------------------------------------------
# Mutations raise TransientApiError on failure; the engine isolates each call.
