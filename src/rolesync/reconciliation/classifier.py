"""
rolesync.reconciliation.classifier

Syncable role classification.

Responsibilities:
- Hold the process-wide syncable role set (name -> representative role).
- Rebuild it from the cached guild topology: a role name is syncable when it
  exists in more than one guild.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator, Mapping, Sequence
from types import MappingProxyType

from rolesync.group_clients.base import GroupCatalog, GroupRef, RoleRef
from rolesync.observability.logging import get_logger

log = get_logger(__name__)


class SyncableRoles(Mapping[str, RoleRef]):
    """
    Read-mostly view over the current syncable set.

    `replace` swaps the whole mapping in one assignment, so readers always see
    either the previous set or the next one.
    """

    def __init__(self, initial: Mapping[str, RoleRef] | None = None) -> None:
        self._current: Mapping[str, RoleRef] = MappingProxyType(dict(initial or {}))

    def replace(self, roles: Mapping[str, RoleRef]) -> None:
        self._current = MappingProxyType(dict(roles))

    def names(self) -> frozenset[str]:
        return frozenset(self._current)

    def __getitem__(self, name: str) -> RoleRef:
        return self._current[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._current)

    def __len__(self) -> int:
        return len(self._current)


def classify(
    topology: Iterable[tuple[GroupRef, Sequence[RoleRef]]],
    *,
    everyone_role_name: str = "@everyone",
) -> dict[str, RoleRef]:
    counts: Counter[str] = Counter()
    representative: dict[str, RoleRef] = {}

    for _group, roles in topology:
        seen_here: set[str] = set()
        for role in roles:
            if role.is_default or role.name == everyone_role_name:
                continue
            # Two roles sharing a name inside one guild still count as one guild.
            if role.name in seen_here:
                continue
            seen_here.add(role.name)
            counts[role.name] += 1
            representative.setdefault(role.name, role)

    return {name: representative[name] for name, n in counts.items() if n > 1}


class SyncableRoleClassifier:
    def __init__(
        self,
        *,
        catalog: GroupCatalog,
        roles: SyncableRoles,
        everyone_role_name: str = "@everyone",
    ) -> None:
        self._catalog = catalog
        self._roles = roles
        self._everyone_role_name = everyone_role_name

    def rebuild(self) -> frozenset[str]:
        topology = [(g, self._catalog.roles(g.group_id)) for g in self._catalog.groups()]
        syncable = classify(topology, everyone_role_name=self._everyone_role_name)
        self._roles.replace(syncable)
        log.info(
            "syncable_roles_rebuilt",
            groups=len(topology),
            count=len(syncable),
            roles=sorted(syncable),
        )
        return frozenset(syncable)


# --- Module Notes -----------------------------------------------------------
# Rebuilds are wholesale and cheap (cached topology only); call on ready and on any
# guild/role topology event rather than patching the set incrementally.
