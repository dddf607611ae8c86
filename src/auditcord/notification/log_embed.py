"""
Embed rendering for log records.
"""

import datetime
import discord

from auditcord.datatypes.log_datatypes import LogRecord

# Discord limits
DESCRIPTION_LIMIT = 4096
FIELD_VALUE_LIMIT = 1024
MAX_FIELDS = 25


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def build_log_embed(record: LogRecord) -> discord.Embed:
    """
    Render a LogRecord as a Discord embed.

    Layout: ``<icon> <title>`` header, description, thumbnail of the target's
    avatar when known, inline Executor and Target fields followed by the
    record's own fields, and the current time as the embed timestamp.
    """
    title = f"{record.icon} {record.title}".strip()
    embed = discord.Embed(
        title=title,
        description=truncate(record.description or "", DESCRIPTION_LIMIT),
        color=discord.Color(record.color),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )

    if record.target.avatar_url:
        embed.set_thumbnail(url=record.target.avatar_url)

    embed.add_field(
        name="👤 Executor",
        value=f"{record.actor.display_name} (`{record.actor.id}`)",
        inline=True,
    )
    embed.add_field(
        name="🎯 Target",
        value=f"{record.target.name} (`{record.target.id}`)",
        inline=True,
    )

    for log_field in record.fields[: MAX_FIELDS - 2]:
        embed.add_field(
            name=log_field.name,
            value=truncate(log_field.value or "N/A", FIELD_VALUE_LIMIT),
            inline=log_field.inline,
        )

    return embed
