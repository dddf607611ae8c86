"""Audit log listener Cog for Auditcord.

This cog subscribes to the guild gateway events Auditcord logs and forwards each
one to the EventRouter. It also warms the role snapshot cache on ready and
keeps it in step with guild joins and removals.
"""

from __future__ import annotations

from typing import Any, Awaitable

import discord
from discord.ext import commands

from auditcord.attribution.attribution_resolver import AttributionResolver
from auditcord.attribution.audit_query_client import DiscordAuditQueryClient
from auditcord.cache.role_snapshot_cache import RoleSnapshotCache
from auditcord.configuration.app_configuration import AppConfig, app_config
from auditcord.notification.notification_sink import DiscordChannelSink, LogDispatcher
from auditcord.router.event_router import EventRouter
from auditcord.util.logger import get_logger

logger = get_logger("audit_log_listener_cog")

# Shared across cog reloads so a reload does not forget role snapshots.
role_snapshot_cache = RoleSnapshotCache()


def build_router(discord_bot_instance: discord.Client, config: AppConfig, cache: RoleSnapshotCache) -> EventRouter:
    """Wire resolver, dispatcher and cache together from the application config."""
    resolver = AttributionResolver(DiscordAuditQueryClient(), config.attribution)
    dispatcher = LogDispatcher(
        DiscordChannelSink(discord_bot_instance),
        config.log_channels,
        config.fallback_channel,
    )
    if config.fallback_channel is None:
        logger.warning("No fallback_channel configured; undeliverable records will be dropped")
    return EventRouter(resolver, cache, dispatcher)


class AuditLogListenerCog(commands.Cog):
    """Cog forwarding moderation-relevant gateway events to the EventRouter."""

    def __init__(self, discord_bot_instance, router: EventRouter | None = None, config: AppConfig | None = None):
        """Initialize the audit log listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        router:
            Optional pre-built router; built from ``config`` when omitted.
        config:
            Application configuration, defaults to the shared ``app_config``.
        """
        self.bot = discord_bot_instance
        self.config = config or app_config
        self.router = router or build_router(discord_bot_instance, self.config, role_snapshot_cache)
        logger.info("Audit log listener cog loaded")

    async def run_handler(self, event_name: str, handler: Awaitable[Any]) -> None:
        """Await a router handler, logging anything it raises so one event cannot break the listener."""
        try:
            await handler
        except Exception as exc:
            logger.exception("Error while handling %s: %s", event_name, exc)

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        if self.bot.user:
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
            await self.bot.change_presence(
                status=discord.Status.online,
                activity=discord.Activity(type=discord.ActivityType.watching, name="the audit log"),
            )
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        if self.config.role_cache_warmup:
            logger.info("Building role cache...")
            await self.run_handler("on_ready", self.router.warm_cache(self.bot.guilds))

    # Members
    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member):
        await self.run_handler("on_member_join", self.router.on_member_join(member))

    @commands.Cog.listener(name="on_member_remove")
    async def on_member_remove(self, member: discord.Member):
        await self.run_handler("on_member_remove", self.router.on_member_remove(member))

    @commands.Cog.listener(name="on_member_update")
    async def on_member_update(self, before: discord.Member, after: discord.Member):
        await self.run_handler("on_member_update", self.router.on_member_update(before, after))

    @commands.Cog.listener(name="on_member_ban")
    async def on_member_ban(self, guild: discord.Guild, user: discord.User | discord.Member):
        await self.run_handler("on_member_ban", self.router.on_member_ban(guild, user))

    @commands.Cog.listener(name="on_member_unban")
    async def on_member_unban(self, guild: discord.Guild, user: discord.User):
        await self.run_handler("on_member_unban", self.router.on_member_unban(guild, user))

    # Channels
    @commands.Cog.listener(name="on_guild_channel_create")
    async def on_guild_channel_create(self, channel: discord.abc.GuildChannel):
        await self.run_handler("on_guild_channel_create", self.router.on_channel_create(channel))

    @commands.Cog.listener(name="on_guild_channel_update")
    async def on_guild_channel_update(self, before: discord.abc.GuildChannel, after: discord.abc.GuildChannel):
        await self.run_handler("on_guild_channel_update", self.router.on_channel_update(before, after))

    @commands.Cog.listener(name="on_guild_channel_delete")
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel):
        await self.run_handler("on_guild_channel_delete", self.router.on_channel_delete(channel))

    @commands.Cog.listener(name="on_guild_channel_pins_update")
    async def on_guild_channel_pins_update(self, channel: discord.abc.GuildChannel, last_pin):
        await self.run_handler("on_guild_channel_pins_update", self.router.on_channel_pins_update(channel))

    # Roles
    @commands.Cog.listener(name="on_guild_role_create")
    async def on_guild_role_create(self, role: discord.Role):
        await self.run_handler("on_guild_role_create", self.router.on_role_create(role))

    @commands.Cog.listener(name="on_guild_role_update")
    async def on_guild_role_update(self, before: discord.Role, after: discord.Role):
        await self.run_handler("on_guild_role_update", self.router.on_role_update(before, after))

    @commands.Cog.listener(name="on_guild_role_delete")
    async def on_guild_role_delete(self, role: discord.Role):
        await self.run_handler("on_guild_role_delete", self.router.on_role_delete(role))

    # Voice and invites
    @commands.Cog.listener(name="on_voice_state_update")
    async def on_voice_state_update(self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState):
        await self.run_handler("on_voice_state_update", self.router.on_voice_state_update(member, before, after))

    @commands.Cog.listener(name="on_invite_create")
    async def on_invite_create(self, invite: discord.Invite):
        await self.run_handler("on_invite_create", self.router.on_invite_create(invite))

    # Guild lifecycle
    @commands.Cog.listener(name="on_guild_join")
    async def on_guild_join(self, guild: discord.Guild):
        await self.run_handler("on_guild_join", self.router.on_guild_join(guild))

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild):
        await self.run_handler("on_guild_remove", self.router.on_guild_remove(guild))


def setup(discord_bot_instance):
    """Register the AuditLogListenerCog with the bot.

    Parameters
    ----------
    discord_bot_instance:
        The Discord bot instance to add this cog to.
    """
    discord_bot_instance.add_cog(AuditLogListenerCog(discord_bot_instance))
