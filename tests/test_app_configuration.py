import json
from pathlib import Path

import pytest

from auditcord.configuration.app_configuration import AppConfig, AttributionSettings
from auditcord.datatypes.log_datatypes import LogCategory


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_path.write_text(
        "log_channels:\n"
        "  kick: 1001\n"
        "  role_give: '1002'\n"
        "  ban: 0\n"
        "fallback_channel: 2000\n"
        "attribution:\n"
        "  max_attempts: 6\n"
        "  base_delay_seconds: 0.5\n"
        "role_cache:\n"
        "  warm_on_ready: false\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    channels = config.log_channels
    assert set(channels) == set(LogCategory)
    assert channels[LogCategory.KICK] == 1001
    assert channels[LogCategory.ROLE_GIVE] == 1002
    assert channels[LogCategory.BAN] is None
    assert channels[LogCategory.VOICE_MOVE] is None
    assert config.fallback_channel == 2000

    settings = config.attribution
    assert settings.max_attempts == 6
    assert settings.base_delay_seconds == pytest.approx(0.5)
    assert settings.fetch_limit == 10
    assert config.role_cache_warmup is False


def test_app_config_accepts_json_payload(config_path: Path) -> None:
    config_path.write_text(json.dumps({"fallback_channel": "3000"}), encoding="utf-8")

    config = AppConfig(config_path)

    assert config.get("fallback_channel") == "3000"
    assert config.fallback_channel == 3000


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.fallback_channel is None
    assert all(channel is None for channel in config.log_channels.values())
    assert config.attribution == AttributionSettings()
    assert config.role_cache_warmup is True


def test_app_config_non_mapping_document_is_empty(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("fallback_channel: 1\n", encoding="utf-8")
    config = AppConfig(config_path)

    config_path.write_text("fallback_channel: 2\n", encoding="utf-8")
    config.reload()

    assert config.fallback_channel == 2


@pytest.mark.parametrize(
    "value, expected",
    [
        (123, 123),
        ("456", 456),
        (" 789 ", 789),
        (0, None),
        (-5, None),
        ("", None),
        ("channel", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_channel_id(value, expected) -> None:
    assert AppConfig.parse_channel_id(value) == expected


def test_attribution_settings_keep_defaults_for_bad_values() -> None:
    settings = AttributionSettings.from_mapping(
        {
            "max_attempts": 0,
            "fetch_limit": "twenty",
            "staleness_seconds": -1,
            "query_timeout_seconds": "2.5",
            "unrelated": 1,
        }
    )

    assert settings.max_attempts == 4
    assert settings.fetch_limit == 10
    assert settings.staleness_seconds == pytest.approx(10.0)
    assert settings.query_timeout_seconds == pytest.approx(2.5)


def test_attribution_settings_reject_zero_timeouts_and_delays() -> None:
    settings = AttributionSettings.from_mapping(
        {
            "query_timeout_seconds": 0,
            "base_delay_seconds": 0,
            "staleness_seconds": 0,
            "delay_increment_seconds": 0,
        }
    )

    assert settings.query_timeout_seconds == pytest.approx(5.0)
    assert settings.base_delay_seconds == pytest.approx(1.2)
    assert settings.staleness_seconds == pytest.approx(10.0)
    assert settings.delay_increment_seconds == 0


def test_attribution_settings_from_non_mapping() -> None:
    assert AttributionSettings.from_mapping(None) == AttributionSettings()
    assert AttributionSettings.from_mapping(["x"]) == AttributionSettings()
