"""Interactive console for operating the running audit log bot.

Commands register themselves with :func:`command`; the first line of each
handler's docstring is its help text.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field

import discord
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import PromptSession, clear

from auditcord.bot.cogs.audit_log_listener import role_snapshot_cache
from auditcord.util.logger import get_logger

logger = get_logger("console")

BOX_WIDTH = 45

CommandHandler = Callable[["ConsoleControl", list[str]], Awaitable[None]]

COMMANDS: dict[str, CommandHandler] = {}
ALIASES: dict[str, str] = {}
USAGE: dict[str, str] = {}


def command(name: str, *aliases: str, usage: str = "") -> Callable[[CommandHandler], CommandHandler]:
    """Register ``handler`` as console command ``name``, reachable through ``aliases`` too."""
    def register(handler: CommandHandler) -> CommandHandler:
        COMMANDS[name] = handler
        ALIASES.update(dict.fromkeys(aliases, name))
        if usage:
            USAGE[name] = usage
        return handler

    return register


def lookup(name: str) -> CommandHandler | None:
    return COMMANDS.get(ALIASES.get(name, name))


def console_print(message: str, style: str = "") -> None:
    """Render text via prompt_toolkit without breaking the active prompt."""
    print_formatted_text(FormattedText([(style, message)]) if style else message)


def print_box(title: str, style: str) -> None:
    inner = BOX_WIDTH - 2
    console_print(f"╔{'═' * inner}╗", style)
    console_print(f"║{title.center(inner)}║", style)
    console_print(f"╚{'═' * inner}╝", style)


async def close_bot_instance(bot: discord.Bot | None, *, log_close: bool = False) -> None:
    """Close the Discord bot instance if it is active."""
    if bot is None or bot.is_closed():
        return

    try:
        await bot.close()
        if log_close:
            logger.info("Discord bot connection closed.")
    except Exception as exc:
        logger.exception("Error while closing Discord bot: %s", exc)


@dataclass
class ConsoleControl:
    """Shutdown and restart flags shared by the console and the bot runtime."""

    bot: discord.Bot | None = None
    shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)
    restart_event: asyncio.Event = field(default_factory=asyncio.Event)

    async def stop_bot(self, *, restart: bool = False) -> None:
        """Flag shutdown (and restart, if asked) and close the bot."""
        if restart:
            self.restart_event.set()
        self.shutdown_event.set()
        await close_bot_instance(self.bot)


# ==================== Commands ====================

@command("help", "h", "?")
async def cmd_help(control: ConsoleControl, args: list[str]) -> None:
    """Show every command with its aliases."""
    print_box("Console Commands", "ansigreen")
    for name, handler in COMMANDS.items():
        aliases = [alias for alias, target in ALIASES.items() if target == name]
        suffix = f" ({', '.join(aliases)})" if aliases else ""
        console_print(f"  {name}{suffix}", "ansicyan")
        console_print(f"    {(handler.__doc__ or '').strip().splitlines()[0]}")
        if name in USAGE:
            console_print(f"    Usage: {USAGE[name]}", "ansibrightblack")
    console_print("")


@command("status", "stat", "info")
async def cmd_status(control: ConsoleControl, args: list[str]) -> None:
    """Show connection state, latency and role cache size."""
    print_box("Bot Status", "ansiblue")
    bot = control.bot
    if bot is None:
        console_print("  Bot:        🔴 Not initialized")
    else:
        console_print(f"  Bot:        {'🔴 Disconnected' if bot.is_closed() else '🟢 Connected'}")
        console_print(f"  Guilds:     {len(bot.guilds)}")
        console_print(f"  Latency:    {bot.latency * 1000:.0f}ms")
    console_print(f"  Snapshots:  {len(role_snapshot_cache)}")
    console_print("")


@command("guilds", "servers", "g")
async def cmd_guilds(control: ConsoleControl, args: list[str]) -> None:
    """List the guilds the bot is logging."""
    guilds = control.bot.guilds if control.bot else []
    if not guilds:
        console_print("No guilds found or bot not connected.", "ansiyellow")
        return

    print_box(f"Connected Guilds ({len(guilds)})", "ansiblue")
    for guild in guilds:
        console_print(f"  • {guild.name} (ID: {guild.id}, Members: {guild.member_count})")
    console_print("")


@command("cache", "roles", usage="cache [clear <guild_id>]")
async def cmd_cache(control: ConsoleControl, args: list[str]) -> None:
    """Show role snapshot counts per guild, or drop one guild's snapshots."""
    if args and args[0] == "clear":
        if len(args) < 2:
            console_print(f"Usage: {USAGE['cache']}", "ansiyellow")
            return
        dropped = role_snapshot_cache.evict_scope(args[1])
        console_print(f"Dropped {dropped} snapshots for guild {args[1]}.", "ansigreen")
        return

    sizes = role_snapshot_cache.scope_sizes()
    print_box(f"Role Cache ({len(role_snapshot_cache)} snapshots)", "ansiblue")
    if not sizes:
        console_print("  (empty)", "ansibrightblack")
    for guild_id, count in sorted(sizes.items()):
        guild = control.bot.get_guild(int(guild_id)) if control.bot else None
        label = f"{guild.name} ({guild_id})" if guild else guild_id
        console_print(f"  • {label}: {count}")
    console_print("")


@command("clear", "cls")
async def cmd_clear(control: ConsoleControl, args: list[str]) -> None:
    """Clear the console screen."""
    clear()


@command("restart", "reboot")
async def cmd_restart(control: ConsoleControl, args: list[str]) -> None:
    """Shut the bot down and start a fresh process."""
    console_print("Restart requested. Bot will shut down and restart...", "ansiyellow")
    await control.stop_bot(restart=True)


@command("shutdown", "stop", "quit", "exit")
async def cmd_shutdown(control: ConsoleControl, args: list[str]) -> None:
    """Shut the bot down gracefully."""
    console_print("Shutdown requested.", "ansiyellow")
    await control.stop_bot()


# ==================== Loop ====================

async def handle_console_command(line: str, control: ConsoleControl) -> None:
    """Run a single console command line."""
    parts = line.split()
    if not parts:
        return

    name, args = parts[0].lower(), parts[1:]
    handler = lookup(name)
    if handler is None:
        console_print(f"Unknown command '{name}'. Type 'help' for available commands.", "ansired")
        return

    try:
        await handler(control, args)
    except Exception as exc:
        logger.exception("Error executing command '%s': %s", name, exc)
        console_print(f"Error executing command: {exc}", "ansired")


async def run_console(control: ConsoleControl) -> None:
    """Read commands until shutdown is requested; EOF or Ctrl+C shuts the bot down."""
    session = PromptSession("> ")
    print_box("Auditcord Console", "ansigreen")
    console_print("Type 'help' for available commands or 'exit' to quit.\n", "ansibrightblack")

    with patch_stdout():
        while not control.shutdown_event.is_set():
            try:
                await handle_console_command(await session.prompt_async(), control)
            except (EOFError, KeyboardInterrupt):
                console_print("\nShutdown requested by user.", "ansiyellow")
                await control.stop_bot()
            except Exception as exc:
                logger.exception("Error in console input loop: %s", exc)


@asynccontextmanager
async def console_session(control: ConsoleControl) -> AsyncIterator[ConsoleControl]:
    """Run the console alongside the bot, cancelling it when the block exits."""
    console_task = asyncio.create_task(run_console(control))
    try:
        yield control
    finally:
        control.shutdown_event.set()
        console_task.cancel()
        with suppress(asyncio.CancelledError):
            await console_task
