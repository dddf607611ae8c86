import sys
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from auditcord import main
from auditcord.ui import console


def test_resolve_base_dir_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("AUDITCORD_HOME", str(tmp_path))

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_compiled(tmp_path, monkeypatch):
    monkeypatch.delenv("AUDITCORD_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "auditcord.exe")])

    assert main.resolve_base_dir() == tmp_path.resolve()


def test_resolve_base_dir_source(monkeypatch):
    monkeypatch.delenv("AUDITCORD_HOME", raising=False)
    monkeypatch.setattr(sys, "frozen", False, raising=False)
    monkeypatch.setattr(sys, "compiled", False, raising=False)

    assert main.resolve_base_dir() == main.Path(main.__file__).resolve().parents[2]


def test_load_environment_returns_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.setenv("DISCORD_BOT_TOKEN", "secret-token")

    assert main.load_environment() == "secret-token"


def test_load_environment_exits_without_token(monkeypatch):
    monkeypatch.setattr(main, "load_dotenv", lambda **kwargs: None)
    monkeypatch.delenv("DISCORD_BOT_TOKEN", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        main.load_environment()

    assert exc_info.value.code == 1


def test_build_intents_enables_member_and_moderation_events():
    intents = main.build_intents()

    assert intents.members is True
    assert intents.guilds is True
    assert intents.bans is True
    assert intents.voice_states is True
    assert intents.invites is True


@pytest.mark.asyncio
async def test_async_main_returns_42_on_restart(monkeypatch):
    monkeypatch.setattr(main, "load_environment", lambda: "token")
    monkeypatch.setattr(main, "create_bot", lambda: MagicMock())

    async def fake_session(bot, token, control):
        control.restart_event.set()
        return 0

    monkeypatch.setattr(main, "run_bot_session", fake_session)

    assert await main.async_main() == 42


@pytest.mark.asyncio
async def test_async_main_reports_bot_creation_failure(monkeypatch):
    monkeypatch.setattr(main, "load_environment", lambda: "token")

    def broken():
        raise RuntimeError("no intents")

    monkeypatch.setattr(main, "create_bot", broken)

    assert await main.async_main() == 1


@pytest.mark.asyncio
async def test_run_bot_session_returns_1_on_login_failure(monkeypatch):
    monkeypatch.setattr(main, "start_bot", AsyncMock(side_effect=discord.LoginFailure("bad token")))
    monkeypatch.setattr(console, "run_console", AsyncMock())
    bot = MagicMock()
    bot.is_closed.return_value = True
    control = console.ConsoleControl()

    assert await main.run_bot_session(bot, "token", control) == 1
    assert control.bot is None


def test_main_restarts_with_os_execv_on_exit_code_42():
    """Exit code 42 replaces the process via os.execv."""
    with patch("auditcord.main.asyncio.run", return_value=42):
        with patch("auditcord.main.os.execv") as execv_mock:
            with patch("auditcord.main.sys.executable", "/usr/bin/python"):
                with patch("auditcord.main.sys.argv", ["auditcord"]):
                    main.main()

    execv_mock.assert_called_once_with("/usr/bin/python", ["/usr/bin/python", "auditcord"])


def test_main_converts_system_exit_to_code():
    with patch("auditcord.main.asyncio.run", side_effect=SystemExit(3)):
        assert main.main() == 3
