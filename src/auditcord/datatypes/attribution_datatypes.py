"""
Data types used by the actor-attribution engine.

This module defines the Actor value and its two reserved sentinels, the audit
categories the resolver can query, and the normalized AuditEntry shape that the
audit query client produces from raw Discord audit log entries.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


NOT_AVAILABLE_ID = "N/A"


@dataclass(frozen=True, slots=True)
class Actor:
    """The account held responsible for a state change.

    Attributes:
        display_name: Human readable name shown in log embeds.
        id: Discord user snowflake as a string, or ``"N/A"`` for the sentinels.
    """
    display_name: str
    id: str

    @property
    def is_known(self) -> bool:
        return self.id != NOT_AVAILABLE_ID

    def __str__(self) -> str:
        return f"{self.display_name} ({self.id})"


# Attribution was attempted and nothing in the audit log matched.
UNKNOWN_ACTOR = Actor(display_name="System/Unknown", id=NOT_AVAILABLE_ID)

# The event has no actor by nature (voice transitions).
SYSTEM_ACTOR = Actor(display_name="System", id=NOT_AVAILABLE_ID)


class AuditCategory(Enum):
    """Audit log action categories the resolver can query.

    Each value is the name of the corresponding ``discord.AuditLogAction`` member.
    """

    KICK = "kick"
    MEMBER_UPDATE = "member_update"
    MEMBER_ROLE_UPDATE = "member_role_update"
    BAN_ADD = "ban"
    BAN_REMOVE = "unban"
    CHANNEL_CREATE = "channel_create"
    CHANNEL_UPDATE = "channel_update"
    CHANNEL_DELETE = "channel_delete"
    MESSAGE_PIN = "message_pin"
    ROLE_CREATE = "role_create"
    ROLE_UPDATE = "role_update"
    ROLE_DELETE = "role_delete"
    INVITE_CREATE = "invite_create"
    BOT_ADD = "bot_add"

    def __str__(self) -> str:
        return self.value


class DeltaKey(Enum):
    """Direction of a role change inside an audit entry."""

    ADD = "$add"
    REMOVE = "$remove"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class RoleDelta:
    """Roles added to or removed from a member by a single audit entry."""
    key: DeltaKey
    role_ids: frozenset[str]


@dataclass(frozen=True, slots=True)
class RoleHint:
    """Narrows attribution of a role change to one role and direction."""
    role_id: str
    direction: DeltaKey


@dataclass(frozen=True, slots=True)
class AuditEntry:
    """Normalized, immutable audit log entry.

    Attributes:
        target_id: Snowflake (or invite code) of the entry's target, if any.
        actor_id: Snowflake of the user who performed the action.
        actor_name: Display name of that user.
        category: The audit category the entry belongs to.
        created_at: Timezone-aware creation time of the entry.
        changes: Role deltas carried by the entry (empty for non-role actions).
    """
    target_id: str | None
    actor_id: str
    actor_name: str
    category: AuditCategory
    created_at: datetime.datetime
    changes: Tuple[RoleDelta, ...] = field(default_factory=tuple)

    @property
    def actor(self) -> Actor:
        return Actor(display_name=self.actor_name, id=self.actor_id)

    def mentions_role(self, role_id: str, key: DeltaKey | None = None) -> bool:
        """Return True if any change (optionally restricted to ``key``) contains ``role_id``."""
        return any(
            role_id in delta.role_ids
            for delta in self.changes
            if key is None or delta.key is key
        )
