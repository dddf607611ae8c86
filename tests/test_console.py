"""Tests for console UI utilities: bot shutdown and command dispatch."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from auditcord.ui import console
from auditcord.ui.console import ConsoleControl, close_bot_instance, handle_console_command


@pytest.fixture()
def printed(monkeypatch):
    """Capture console_print output instead of writing to the terminal."""
    lines = []
    monkeypatch.setattr(console, "console_print", lambda message, style="": lines.append(message))
    return lines


@pytest.fixture()
def snapshot_cache(monkeypatch):
    from auditcord.cache.role_snapshot_cache import RoleSnapshotCache

    cache = RoleSnapshotCache()
    monkeypatch.setattr(console, "role_snapshot_cache", cache)
    return cache


@pytest.mark.asyncio
async def test_close_bot_instance_with_none():
    """close_bot_instance handles a missing bot gracefully."""
    await close_bot_instance(None)


@pytest.mark.asyncio
async def test_close_bot_instance_with_closed_bot():
    """An already closed bot is left alone."""
    bot = MagicMock()
    bot.is_closed.return_value = True

    await close_bot_instance(bot)

    bot.close.assert_not_called()


@pytest.mark.asyncio
async def test_close_bot_instance_closes_open_bot():
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()

    await close_bot_instance(bot, log_close=False)

    bot.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_bot_instance_handles_exceptions():
    """Errors raised while closing are logged, not propagated."""
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock(side_effect=Exception("Connection error"))

    await close_bot_instance(bot, log_close=False)

    bot.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_unknown_command_reports_error(printed):
    await handle_console_command("frobnicate", ConsoleControl())

    assert any("Unknown command 'frobnicate'" in line for line in printed)


@pytest.mark.asyncio
async def test_blank_command_is_ignored(printed):
    await handle_console_command("   ", ConsoleControl())

    assert printed == []


@pytest.mark.asyncio
async def test_help_lists_every_command(printed):
    await handle_console_command("help", ConsoleControl())

    output = "\n".join(printed)
    for name in console.COMMANDS:
        assert name in output
    assert "Usage: cache [clear <guild_id>]" in output


def test_aliases_resolve_to_registered_commands():
    assert console.lookup("roles") is console.cmd_cache
    assert console.lookup("exit") is console.cmd_shutdown
    assert console.lookup("status") is console.cmd_status
    assert console.lookup("nope") is None


@pytest.mark.asyncio
async def test_shutdown_closes_attached_bot(printed):
    bot = MagicMock()
    bot.is_closed.return_value = False
    bot.close = AsyncMock()

    await handle_console_command("shutdown", ConsoleControl(bot=bot))

    bot.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_cache_command_lists_snapshot_counts(printed, snapshot_cache):
    snapshot_cache.seed(1, 10, ["a"])
    snapshot_cache.seed(1, 11, ["a"])
    snapshot_cache.seed(2, 10, [])

    await handle_console_command("cache", ConsoleControl())

    assert any("3 snapshots" in line for line in printed)
    assert any("1: 2" in line for line in printed)
    assert any("2: 1" in line for line in printed)


@pytest.mark.asyncio
async def test_cache_clear_drops_guild_snapshots(printed, snapshot_cache):
    snapshot_cache.seed(1, 10, ["a"])
    snapshot_cache.seed(2, 10, ["a"])

    await handle_console_command("roles clear 1", ConsoleControl())

    assert snapshot_cache.scope_sizes() == {"2": 1}
    assert any("Dropped 1 snapshots" in line for line in printed)


@pytest.mark.asyncio
async def test_cache_clear_without_guild_shows_usage(printed, snapshot_cache):
    await handle_console_command("cache clear", ConsoleControl())

    assert any("Usage" in line for line in printed)


@pytest.mark.asyncio
async def test_shutdown_and_restart_set_events(printed):
    control = ConsoleControl()
    await handle_console_command("restart", control)

    assert control.restart_event.is_set()
    assert control.shutdown_event.is_set()

    control = ConsoleControl()
    await handle_console_command("quit", control)

    assert control.shutdown_event.is_set()
    assert not control.restart_event.is_set()
