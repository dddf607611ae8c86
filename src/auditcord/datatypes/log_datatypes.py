"""
Structured log records handed to the notification layer.

A LogRecord is the platform-neutral description of one semantic change. The
LogCategory it carries selects the destination channel through the configured
routing table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from auditcord.datatypes.attribution_datatypes import Actor


class LogCategory(Enum):
    """Logical destination keys, matching the ``log_channels`` config section."""

    KICK = "kick"
    BAN = "ban"
    UNBAN = "unban"
    TIMEOUT = "timeout"
    LEFT = "left"
    CHANNEL_CREATE = "channel_create"
    CHANNEL_UPDATE = "channel_update"
    CHANNEL_DELETE = "channel_delete"
    CHANNEL_PINS_UPDATE = "channel_pins_update"
    ROLE_CREATE = "role_create"
    ROLE_DELETE = "role_delete"
    ROLE_REMOVE = "role_remove"
    ROLE_UPDATE = "role_update"
    ROLE_GIVE = "role_give"
    VOICE_DISCONNECT = "voice_disconnect"
    VOICE_MOVE = "voice_move"
    VOICE_JOIN = "voice_join"
    BOT_ADD = "bot_add"
    BOT_REMOVE = "bot_remove"
    INVITE_MEMBERS = "invite_members"

    def __str__(self) -> str:
        return self.value


class DeliveryOutcome(Enum):
    """Where a record ended up after the primary/fallback policy ran."""

    PRIMARY = "primary"
    FALLBACK = "fallback"
    FAILED = "failed"


@dataclass(slots=True)
class LogField:
    name: str
    value: str
    inline: bool = True


@dataclass(slots=True)
class LogTarget:
    """The member, channel, role or guild an event is about."""
    name: str
    id: str
    avatar_url: str | None = None


@dataclass(slots=True)
class LogRecord:
    """Normalized description of one logged event.

    Attributes:
        category: Destination key used for routing.
        title: Embed title, without the icon.
        description: Free text body; truncated by the renderer.
        color: RGB colour as an int, e.g. ``0xE74C3C``.
        actor: Who caused the event (or a sentinel).
        target: What the event is about.
        icon: Emoji prefixed to the title.
        fields: Extra name/value pairs rendered after Executor and Target.
    """
    category: LogCategory
    title: str
    description: str
    color: int
    actor: Actor
    target: LogTarget
    icon: str = ""
    fields: List[LogField] = field(default_factory=list)
