"""
Delivery of log records to Discord channels.

``NotificationSink`` is the single delivery capability: take a record and a
destination id, report success. ``LogDispatcher`` layers the routing table and
the primary-then-fallback policy on top of it. A record whose fallback
delivery also fails is logged at ERROR level and dropped.
"""

from __future__ import annotations

from typing import Mapping, Protocol

import discord

from auditcord.datatypes.log_datatypes import DeliveryOutcome, LogCategory, LogRecord
from auditcord.notification.log_embed import build_log_embed
from auditcord.util.logger import get_logger

logger = get_logger("notification_sink")


class NotificationSink(Protocol):
    async def deliver(self, record: LogRecord, destination_id: int) -> bool:
        """Deliver ``record`` to ``destination_id``; return False on any failure."""
        ...


class DiscordChannelSink:
    """NotificationSink that posts embeds to guild text channels."""

    def __init__(self, bot: discord.Client) -> None:
        self.bot = bot

    async def resolve_channel(self, channel_id: int) -> discord.abc.Messageable | None:
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden) as exc:
                logger.warning("Log channel %s is not accessible: %s", channel_id, exc)
                return None

        if not isinstance(channel, discord.abc.Messageable):
            logger.warning("Log channel %s (%s) cannot receive messages", channel_id, type(channel).__name__)
            return None
        return channel

    async def deliver(self, record: LogRecord, destination_id: int) -> bool:
        try:
            channel = await self.resolve_channel(destination_id)
            if channel is None:
                return False
            await channel.send(embed=build_log_embed(record))
            return True
        except discord.HTTPException as exc:
            logger.warning("Failed to send '%s' to channel %s: %s", record.title, destination_id, exc)
        except Exception as exc:
            logger.exception("Unexpected error sending '%s' to channel %s: %s", record.title, destination_id, exc)
        return False


class LogDispatcher:
    """Route records by category and apply the fallback policy.

    Parameters
    ----------
    sink:
        Delivery capability.
    routes:
        Log category to channel id. Missing or None entries are treated as
        misconfigured and go to the fallback channel.
    fallback_channel_id:
        Single well-known destination for undeliverable records.
    """

    def __init__(
        self,
        sink: NotificationSink,
        routes: Mapping[LogCategory, int | None],
        fallback_channel_id: int | None,
    ) -> None:
        self.sink = sink
        self.routes = dict(routes)
        self.fallback_channel_id = fallback_channel_id

    async def try_deliver(self, record: LogRecord, destination_id: int) -> bool:
        try:
            return bool(await self.sink.deliver(record, destination_id))
        except Exception as exc:
            logger.warning("Sink raised delivering '%s' to %s: %s", record.title, destination_id, exc)
            return False

    async def dispatch(self, record: LogRecord) -> DeliveryOutcome:
        """Deliver to the category's channel, falling back once on failure."""
        destination_id = self.routes.get(record.category)

        if destination_id is None:
            logger.warning("No log channel configured for '%s'; using fallback channel", record.category)
        elif await self.try_deliver(record, destination_id):
            return DeliveryOutcome.PRIMARY
        else:
            logger.warning("Delivery of '%s' to %s failed; using fallback channel", record.title, destination_id)

        if self.fallback_channel_id is not None and await self.try_deliver(record, self.fallback_channel_id):
            return DeliveryOutcome.FALLBACK

        logger.error(
            "Dropped '%s' record (%s, target %s, actor %s): primary and fallback delivery failed",
            record.category, record.title, record.target.id, record.actor,
        )
        return DeliveryOutcome.FAILED
