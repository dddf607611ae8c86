"""
Audit log lookups against Discord.

The resolver talks to an ``AuditQueryClient``; the Discord implementation turns
``guild.audit_logs`` entries into immutable :class:`AuditEntry` values so the
matching rules never touch py-cord objects directly.
"""

from __future__ import annotations

from typing import Any, List, Protocol

import discord

from auditcord.datatypes.attribution_datatypes import AuditCategory, AuditEntry, DeltaKey, RoleDelta
from auditcord.util.logger import get_logger

logger = get_logger("audit_query_client")


class AuditQueryClient(Protocol):
    """Read-only access to a guild's audit trail."""

    async def query(self, scope: Any, category: AuditCategory, limit: int) -> List[AuditEntry]:
        """Return up to ``limit`` entries of ``category``, most recent first. May raise."""
        ...


def audit_action_for(category: AuditCategory) -> discord.AuditLogAction:
    return getattr(discord.AuditLogAction, category.value)


def target_id_of(target: Any) -> str | None:
    """Return the identifying string of an audit entry target.

    Invites are identified by their code; everything else by its snowflake.
    """
    if target is None:
        return None
    code = getattr(target, "code", None)
    if isinstance(code, str) and code:
        return code
    target_id = getattr(target, "id", None)
    return str(target_id) if target_id is not None else None


def role_deltas_of(entry: Any) -> tuple[RoleDelta, ...]:
    """Extract role deltas from a ``member_role_update`` entry.

    py-cord stores ``$add`` roles on ``entry.after.roles`` and ``$remove``
    roles on ``entry.before.roles``.
    """
    deltas: list[RoleDelta] = []
    for key, side in ((DeltaKey.ADD, getattr(entry, "after", None)), (DeltaKey.REMOVE, getattr(entry, "before", None))):
        roles = getattr(side, "roles", None) or []
        role_ids = frozenset(str(role.id) for role in roles if getattr(role, "id", None) is not None)
        if role_ids:
            deltas.append(RoleDelta(key=key, role_ids=role_ids))
    return tuple(deltas)


def convert_entry(entry: Any, category: AuditCategory) -> AuditEntry | None:
    """Convert a py-cord ``AuditLogEntry`` into an :class:`AuditEntry`.

    Entries whose executing user is unknown cannot attribute anything and
    are dropped.
    """
    user = getattr(entry, "user", None)
    if user is None:
        return None

    changes = role_deltas_of(entry) if category is AuditCategory.MEMBER_ROLE_UPDATE else ()
    return AuditEntry(
        target_id=target_id_of(getattr(entry, "target", None)),
        actor_id=str(user.id),
        actor_name=str(user),
        category=category,
        created_at=entry.created_at,
        changes=changes,
    )


class DiscordAuditQueryClient:
    """AuditQueryClient backed by ``discord.Guild.audit_logs``."""

    async def query(self, scope: discord.Guild, category: AuditCategory, limit: int) -> List[AuditEntry]:
        entries: List[AuditEntry] = []
        async for raw_entry in scope.audit_logs(limit=limit, action=audit_action_for(category)):
            converted = convert_entry(raw_entry, category)
            if converted is None:
                logger.debug("Skipping %s audit entry %s without a known user", category, getattr(raw_entry, "id", "?"))
                continue
            entries.append(converted)
        return entries
