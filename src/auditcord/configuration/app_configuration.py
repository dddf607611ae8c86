from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from auditcord.datatypes.log_datatypes import LogCategory
from auditcord.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()


@dataclass(frozen=True, slots=True)
class AttributionSettings:
    """Tuning knobs for the attribution resolver's retry loop."""
    max_attempts: int = 4
    fetch_limit: int = 10
    base_delay_seconds: float = 1.2
    delay_increment_seconds: float = 0.3
    staleness_seconds: float = 10.0
    query_timeout_seconds: float = 5.0

    @classmethod
    def from_mapping(cls, raw: Any) -> "AttributionSettings":
        """Build settings from a config mapping, keeping defaults for bad or missing values."""
        if not isinstance(raw, dict):
            return cls()

        defaults = cls()
        values: Dict[str, Any] = {}
        for name, caster in (
            ("max_attempts", int),
            ("fetch_limit", int),
            ("base_delay_seconds", float),
            ("delay_increment_seconds", float),
            ("staleness_seconds", float),
            ("query_timeout_seconds", float),
        ):
            if name not in raw:
                continue
            try:
                value = caster(raw[name])
            except (TypeError, ValueError):
                logger.warning("[APP CONFIGURATION] Ignoring invalid attribution.%s=%r", name, raw[name])
                continue
            # Only the delay increment may be zero.
            if value < 0 or (value == 0 and name != "delay_increment_seconds"):
                logger.warning("[APP CONFIGURATION] Ignoring out-of-range attribution.%s=%r", name, raw[name])
                continue
            values[name] = value

        return replace(defaults, **values)


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml``, exposes dictionary-like
    access helpers, and resolves the log channel routing table and attribution
    settings. Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                data = yaml.safe_load(f)
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    @staticmethod
    def parse_channel_id(value: Any) -> int | None:
        """Coerce a configured channel id to int; zero, blanks and garbage become None."""
        if value is None or isinstance(value, bool):
            return None
        try:
            channel_id = int(str(value).strip())
        except ValueError:
            return None
        return channel_id if channel_id > 0 else None

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def log_channels(self) -> Dict[LogCategory, int | None]:
        """Return the routing table from log category to destination channel id.

        Every LogCategory is present in the result; unmapped or invalid entries
        are None so the dispatcher falls back to the fallback channel.
        """
        raw = self._data.get("log_channels", {})
        if not isinstance(raw, dict):
            raw = {}

        known = {category.value for category in LogCategory}
        for key in raw:
            if key not in known:
                logger.warning("[APP CONFIGURATION] Unknown log channel key %r ignored.", key)

        return {category: self.parse_channel_id(raw.get(category.value)) for category in LogCategory}

    @property
    def fallback_channel(self) -> int | None:
        """Return the fallback channel id used when a primary destination fails."""
        return self.parse_channel_id(self._data.get("fallback_channel"))

    @property
    def attribution(self) -> AttributionSettings:
        """Return the attribution resolver settings."""
        return AttributionSettings.from_mapping(self._data.get("attribution", {}))

    @property
    def role_cache_warmup(self) -> bool:
        """Whether to seed the role cache from every cached member on ready."""
        section = self._data.get("role_cache", {})
        if isinstance(section, dict):
            return bool(section.get("warm_on_ready", True))
        return True


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
