"""
Turn gateway events into attributed log records.

Each public coroutine handles one py-cord event: it works out what changed,
asks the :class:`AttributionResolver` who did it where the event carries no
actor, and hands one :class:`LogRecord` per discrete change to the
:class:`LogDispatcher`. Handlers are independent; py-cord runs each listener
invocation in its own task.
"""

from __future__ import annotations

import asyncio
import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, List, Tuple

from auditcord.attribution.attribution_resolver import AttributionResolver
from auditcord.cache.role_snapshot_cache import RoleSnapshotCache
from auditcord.datatypes.attribution_datatypes import (
    SYSTEM_ACTOR,
    UNKNOWN_ACTOR,
    Actor,
    AuditCategory,
    DeltaKey,
    RoleHint,
)
from auditcord.datatypes.log_datatypes import LogCategory, LogField, LogRecord, LogTarget
from auditcord.notification.notification_sink import LogDispatcher
from auditcord.util.logger import get_logger

logger = get_logger("event_router")

RecordBuilder = Callable[[Actor], LogRecord]


class VoiceTransition(Enum):
    JOIN = "join"
    LEAVE = "leave"
    MOVE = "move"


def classify_voice_transition(before_channel: Any, after_channel: Any) -> VoiceTransition | None:
    """Classify a voice state change by the channels on either side.

    Mute, deafen and stream toggles keep the same channel and return None.
    """
    if before_channel is None and after_channel is not None:
        return VoiceTransition.JOIN
    if before_channel is not None and after_channel is None:
        return VoiceTransition.LEAVE
    if before_channel is not None and after_channel is not None and before_channel.id != after_channel.id:
        return VoiceTransition.MOVE
    return None


def avatar_url_of(user: Any) -> str | None:
    avatar = getattr(user, "display_avatar", None)
    return getattr(avatar, "url", None)


def user_target(user: Any, *, with_avatar: bool = True) -> LogTarget:
    return LogTarget(
        name=str(user),
        id=str(user.id),
        avatar_url=avatar_url_of(user) if with_avatar else None,
    )


def named_target(obj: Any) -> LogTarget:
    """Target for channels and roles."""
    return LogTarget(name=getattr(obj, "name", None) or "Unknown", id=str(obj.id))


def role_ids_of(member: Any) -> List[int]:
    return [role.id for role in getattr(member, "roles", None) or []]


def role_name(guild: Any, role_id: str) -> str:
    role = guild.get_role(int(role_id)) if guild is not None else None
    return role.name if role is not None else role_id


def format_timeout(until: datetime.datetime | None) -> str:
    if until is None:
        return "None"
    return f"<t:{int(until.timestamp())}:R>"


class EventRouter:
    """Gateway event handlers producing attributed log records.

    Parameters
    ----------
    resolver:
        Finds the actor behind events that arrive without one.
    cache:
        Role snapshots used to diff member role updates.
    dispatcher:
        Delivers records to their configured channel.
    """

    def __init__(self, resolver: AttributionResolver, cache: RoleSnapshotCache, dispatcher: LogDispatcher) -> None:
        self.resolver = resolver
        self.cache = cache
        self.dispatcher = dispatcher

    async def emit_attributed(self, jobs: Iterable[Tuple[Awaitable[Actor], RecordBuilder]]) -> None:
        """Resolve every job's actor concurrently, then dispatch the records in order.

        A job whose resolution raises is logged with the Unknown actor.
        """
        jobs = list(jobs)
        if not jobs:
            return
        actors = await asyncio.gather(*(actor for actor, _ in jobs), return_exceptions=True)
        for actor, (_, build) in zip(actors, jobs):
            if isinstance(actor, Exception):
                logger.warning("Attribution failed, logging with unknown actor: %s", actor)
                actor = UNKNOWN_ACTOR
            elif isinstance(actor, BaseException):
                raise actor
            await self.dispatcher.dispatch(build(actor))

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------
    async def on_member_remove(self, member: Any) -> None:
        """Log a kick, a voluntary leave, or a bot removal, and drop the member's snapshot."""
        guild = member.guild
        self.cache.evict(guild.id, member.id)

        actor = await self.resolver.resolve(guild, AuditCategory.KICK, str(member.id), strict=True)
        target = user_target(member)

        if member.bot:
            description = f"Bot **{member}** was removed from the server."
            if actor.is_known:
                description = f"Bot **{member}** was kicked from the server."
            record = LogRecord(
                category=LogCategory.BOT_REMOVE,
                title="Bot Removed",
                description=description,
                color=0xE74C3C,
                actor=actor,
                target=target,
                icon="👋",
            )
        elif actor.is_known:
            record = LogRecord(
                category=LogCategory.KICK,
                title="Member Kicked",
                description=f"**{member}** was kicked.",
                color=0xE74C3C,
                actor=actor,
                target=target,
                icon="🚪",
            )
        else:
            record = LogRecord(
                category=LogCategory.LEFT,
                title="Member Left",
                description=f"**{member}** left the server.",
                color=0x808080,
                actor=actor,
                target=target,
                icon="👋",
            )

        await self.dispatcher.dispatch(record)

    async def on_member_join(self, member: Any) -> None:
        """Seed the joining member's snapshot; log bot additions."""
        guild = member.guild
        self.cache.seed(guild.id, member.id, role_ids_of(member))

        if not member.bot:
            return

        actor = await self.resolver.resolve(guild, AuditCategory.BOT_ADD, str(member.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.BOT_ADD,
                title="Bot Added",
                description=f"Bot **{member}** joined the server.",
                color=0x7289DA,
                actor=actor,
                target=user_target(member),
                icon="🤖",
            )
        )

    async def on_member_update(self, before: Any, after: Any) -> None:
        """Log timeout changes and each individual role grant or removal."""
        guild = after.guild
        target_id = str(after.id)
        jobs: List[Tuple[Awaitable[Actor], RecordBuilder]] = []

        old_timeout = getattr(before, "communication_disabled_until", None)
        new_timeout = getattr(after, "communication_disabled_until", None)
        if old_timeout != new_timeout:
            def build_timeout(actor: Actor) -> LogRecord:
                return LogRecord(
                    category=LogCategory.TIMEOUT,
                    title="Member Timeout",
                    description=f"**{after}** timeout changed.",
                    color=0xFFA500,
                    actor=actor,
                    target=user_target(after),
                    icon="🔇",
                    fields=[
                        LogField("Old Timeout", format_timeout(old_timeout)),
                        LogField("New Timeout", format_timeout(new_timeout)),
                    ],
                )

            jobs.append((self.resolver.resolve(guild, AuditCategory.MEMBER_UPDATE, target_id), build_timeout))

        # No await between the membership check and the diff.
        if (guild.id, after.id) not in self.cache:
            self.cache.seed(guild.id, after.id, role_ids_of(before))
        delta = self.cache.diff(guild.id, after.id, role_ids_of(after))

        changes = [(role_id, DeltaKey.REMOVE) for role_id in sorted(delta.removed)]
        changes += [(role_id, DeltaKey.ADD) for role_id in sorted(delta.added)]
        for role_id, direction in changes:
            hint = RoleHint(role_id=role_id, direction=direction)
            jobs.append((
                self.resolver.resolve(guild, AuditCategory.MEMBER_ROLE_UPDATE, target_id, hint),
                self.role_change_builder(after, role_id, direction),
            ))

        await self.emit_attributed(jobs)

    def role_change_builder(self, member: Any, role_id: str, direction: DeltaKey) -> RecordBuilder:
        name = role_name(member.guild, role_id)

        def build(actor: Actor) -> LogRecord:
            if direction is DeltaKey.REMOVE:
                category, title, color, icon = LogCategory.ROLE_REMOVE, "Role Removed", 0xE67E22, "➖"
                description = f"Role **{name}** removed from **{member}**."
            else:
                category, title, color, icon = LogCategory.ROLE_GIVE, "Role Added", 0x2ECC71, "➕"
                description = f"Role **{name}** added to **{member}**."
            return LogRecord(
                category=category,
                title=title,
                description=description,
                color=color,
                actor=actor,
                target=user_target(member, with_avatar=False),
                icon=icon,
                fields=[LogField("Role ID", role_id)],
            )

        return build

    # ------------------------------------------------------------------
    # Bans
    # ------------------------------------------------------------------
    async def on_member_ban(self, guild: Any, user: Any) -> None:
        actor = await self.resolver.resolve(guild, AuditCategory.BAN_ADD, str(user.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.BAN,
                title="Member Banned",
                description=f"**{user}** was banned.",
                color=0xFF0000,
                actor=actor,
                target=user_target(user),
                icon="⛔",
            )
        )

    async def on_member_unban(self, guild: Any, user: Any) -> None:
        actor = await self.resolver.resolve(guild, AuditCategory.BAN_REMOVE, str(user.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.UNBAN,
                title="Member Unbanned",
                description=f"**{user}** was unbanned.",
                color=0x00FF00,
                actor=actor,
                target=user_target(user),
                icon="✅",
            )
        )

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------
    async def on_channel_create(self, channel: Any) -> None:
        actor = await self.resolver.resolve(channel.guild, AuditCategory.CHANNEL_CREATE, str(channel.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.CHANNEL_CREATE,
                title="Channel Created",
                description=f"Channel **{channel.name}** created.",
                color=0x3498DB,
                actor=actor,
                target=named_target(channel),
                icon="📢",
            )
        )

    async def on_channel_update(self, before: Any, after: Any) -> None:
        actor = await self.resolver.resolve(after.guild, AuditCategory.CHANNEL_UPDATE, str(after.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.CHANNEL_UPDATE,
                title="Channel Updated",
                description=f"Channel **{after.name}** updated.",
                color=0x2980B9,
                actor=actor,
                target=named_target(after),
                icon="✏️",
                fields=[
                    LogField("Old Name", before.name or "N/A"),
                    LogField("New Name", after.name or "N/A"),
                ],
            )
        )

    async def on_channel_delete(self, channel: Any) -> None:
        actor = await self.resolver.resolve(channel.guild, AuditCategory.CHANNEL_DELETE, str(channel.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.CHANNEL_DELETE,
                title="Channel Deleted",
                description=f"Channel **{channel.name}** deleted.",
                color=0xE74C3C,
                actor=actor,
                target=named_target(channel),
                icon="🗑️",
            )
        )

    async def on_channel_pins_update(self, channel: Any) -> None:
        # Pin entries target the message author, so this usually matches on recency.
        actor = await self.resolver.resolve(channel.guild, AuditCategory.MESSAGE_PIN, str(channel.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.CHANNEL_PINS_UPDATE,
                title="Channel Pins Updated",
                description=f"Pins updated in **{channel.name}**.",
                color=0x9B59B6,
                actor=actor,
                target=named_target(channel),
                icon="📌",
            )
        )

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------
    async def on_role_create(self, role: Any) -> None:
        actor = await self.resolver.resolve(role.guild, AuditCategory.ROLE_CREATE, str(role.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.ROLE_CREATE,
                title="Role Created",
                description=f"Role **{role.name}** created.",
                color=0x2ECC71,
                actor=actor,
                target=named_target(role),
                icon="🆕",
            )
        )

    async def on_role_update(self, before: Any, after: Any) -> None:
        actor = await self.resolver.resolve(after.guild, AuditCategory.ROLE_UPDATE, str(after.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.ROLE_UPDATE,
                title="Role Updated",
                description=f"Role updated: **{before.name}** → **{after.name}**.",
                color=0x27AE60,
                actor=actor,
                target=named_target(after),
                icon="✏️",
                fields=[
                    LogField("Old Name", before.name or "N/A"),
                    LogField("New Name", after.name or "N/A"),
                ],
            )
        )

    async def on_role_delete(self, role: Any) -> None:
        actor = await self.resolver.resolve(role.guild, AuditCategory.ROLE_DELETE, str(role.id))
        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.ROLE_DELETE,
                title="Role Deleted",
                description=f"Role **{role.name}** deleted.",
                color=0xE74C3C,
                actor=actor,
                target=named_target(role),
                icon="🗑️",
            )
        )

    # ------------------------------------------------------------------
    # Voice
    # ------------------------------------------------------------------
    async def on_voice_state_update(self, member: Any, before: Any, after: Any) -> None:
        """Log voice joins, leaves and moves. Voice transitions are never attributed."""
        before_channel = getattr(before, "channel", None)
        after_channel = getattr(after, "channel", None)
        transition = classify_voice_transition(before_channel, after_channel)
        if transition is None:
            return

        target = user_target(member, with_avatar=False)
        if transition is VoiceTransition.JOIN:
            record = LogRecord(
                category=LogCategory.VOICE_JOIN,
                title="Member Joined Voice",
                description=f"**{member}** joined **{after_channel.name}**.",
                color=0x3498DB,
                actor=SYSTEM_ACTOR,
                target=target,
                icon="🎤",
            )
        elif transition is VoiceTransition.LEAVE:
            record = LogRecord(
                category=LogCategory.VOICE_DISCONNECT,
                title="Member Left Voice",
                description=f"**{member}** left **{before_channel.name}**.",
                color=0xE74C3C,
                actor=SYSTEM_ACTOR,
                target=target,
                icon="🔇",
            )
        else:
            record = LogRecord(
                category=LogCategory.VOICE_MOVE,
                title="Member Moved Voice",
                description=f"**{member}** moved from **{before_channel.name}** to **{after_channel.name}**.",
                color=0xF39C12,
                actor=SYSTEM_ACTOR,
                target=target,
                icon="🔄",
            )

        await self.dispatcher.dispatch(record)

    # ------------------------------------------------------------------
    # Invites
    # ------------------------------------------------------------------
    async def on_invite_create(self, invite: Any) -> None:
        """Log a new invite, using the inviter Discord supplies when present."""
        guild = invite.guild
        inviter = getattr(invite, "inviter", None)
        if inviter is not None:
            actor = Actor(display_name=str(inviter), id=str(inviter.id))
        else:
            actor = await self.resolver.resolve(guild, AuditCategory.INVITE_CREATE, invite.code)

        fields = []
        channel = getattr(invite, "channel", None)
        if channel is not None:
            fields.append(LogField("Channel", getattr(channel, "name", None) or str(channel.id)))
        max_uses = getattr(invite, "max_uses", None)
        fields.append(LogField("Max Uses", str(max_uses) if max_uses else "Unlimited"))

        await self.dispatcher.dispatch(
            LogRecord(
                category=LogCategory.INVITE_MEMBERS,
                title="Invite Created",
                description=f"Invite **{invite.code}** created.",
                color=0x8E44AD,
                actor=actor,
                target=LogTarget(
                    name=getattr(guild, "name", None) or "Guild",
                    id=str(guild.id) if guild is not None else "N/A",
                ),
                icon="✉️",
                fields=fields,
            )
        )

    # ------------------------------------------------------------------
    # Guild lifecycle
    # ------------------------------------------------------------------
    async def warm_cache(self, guilds: Iterable[Any]) -> int:
        """Seed snapshots for every cached member of ``guilds``; return how many were seeded."""
        seeded = 0
        for guild in guilds:
            if not getattr(guild, "chunked", True):
                try:
                    await guild.chunk()
                except Exception as exc:
                    logger.warning("Could not chunk members of guild %s: %s", guild.id, exc)
            for member in guild.members:
                self.cache.seed(guild.id, member.id, role_ids_of(member))
                seeded += 1
        logger.info("Role cache seeded with %d member snapshots", seeded)
        return seeded

    async def on_guild_join(self, guild: Any) -> None:
        await self.warm_cache([guild])

    async def on_guild_remove(self, guild: Any) -> None:
        dropped = self.cache.evict_scope(guild.id)
        logger.info("Dropped %d role snapshots for guild %s", dropped, guild.id)
