"""
In-memory role snapshots for guild members.

Discord reports a member update as a before/after pair, but the "before" copy
comes from py-cord's own member cache and is easily out of date after missed
events. The snapshot cache keeps the last role set this process saw for each
(guild, member) key and diffs new role sets against it, so every role change
is reported exactly once. Snapshots are lost on restart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Protocol, Tuple

from auditcord.util.logger import get_logger

logger = get_logger("role_snapshot_cache")

SnapshotKey = Tuple[str, str]


@dataclass(frozen=True, slots=True)
class RoleDiff:
    added: frozenset[str] = field(default_factory=frozenset)
    removed: frozenset[str] = field(default_factory=frozenset)

    def __bool__(self) -> bool:
        return bool(self.added or self.removed)


class RoleSnapshotStore(Protocol):
    def seed(self, scope_id: str, subject_id: str, current_role_ids: Iterable[str]) -> None: ...

    def diff(self, scope_id: str, subject_id: str, current_role_ids: Iterable[str]) -> RoleDiff: ...

    def evict(self, scope_id: str, subject_id: str) -> None: ...


class RoleSnapshotCache:
    """Per-(guild, member) role sets.

    ``seed``, ``diff`` and ``evict`` are synchronous and therefore atomic on
    the event loop, so mutations of one key never overlap. Callers must not
    await between checking a key and diffing it.
    """

    def __init__(self) -> None:
        self.snapshots: Dict[SnapshotKey, frozenset[str]] = {}

    @staticmethod
    def key(scope_id: object, subject_id: object) -> SnapshotKey:
        return (str(scope_id), str(subject_id))

    def seed(self, scope_id: object, subject_id: object, current_role_ids: Iterable[object]) -> None:
        """Overwrite the snapshot for a key."""
        self.snapshots[self.key(scope_id, subject_id)] = frozenset(str(role_id) for role_id in current_role_ids)

    def diff(self, scope_id: object, subject_id: object, current_role_ids: Iterable[object]) -> RoleDiff:
        """Compare ``current_role_ids`` with the snapshot and store it.

        A key seen for the first time is seeded and reports no changes.
        """
        key = self.key(scope_id, subject_id)
        current = frozenset(str(role_id) for role_id in current_role_ids)
        previous = self.snapshots.get(key)
        self.snapshots[key] = current

        if previous is None:
            logger.debug("Seeded role snapshot for %s on first diff", key)
            return RoleDiff()

        return RoleDiff(added=current - previous, removed=previous - current)

    def evict(self, scope_id: object, subject_id: object) -> None:
        """Forget a key. Evicting an unknown key is a no-op."""
        key = self.key(scope_id, subject_id)
        self.snapshots.pop(key, None)

    def evict_scope(self, scope_id: object) -> int:
        """Forget every key of a guild and return how many snapshots were dropped."""
        scope = str(scope_id)
        doomed = [key for key in self.snapshots if key[0] == scope]
        for key in doomed:
            self.evict(*key)
        return len(doomed)

    def get(self, scope_id: object, subject_id: object) -> frozenset[str] | None:
        return self.snapshots.get(self.key(scope_id, subject_id))

    def scope_sizes(self) -> Dict[str, int]:
        """Number of snapshots held per guild id."""
        sizes: Dict[str, int] = {}
        for scope, _ in self.snapshots:
            sizes[scope] = sizes.get(scope, 0) + 1
        return sizes

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        return self.key(*key) in self.snapshots

    def __len__(self) -> int:
        return len(self.snapshots)
