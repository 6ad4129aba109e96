"""
Configuration management for the SiteStats visit counter.
Handles loading, validating, and providing access to application settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ANIMATION_SPEEDS = ("slow", "normal", "fast", "none")
STORAGE_BACKENDS = ("json", "memory")


@dataclass
class AppConfig:
    """Application configuration settings."""
    host: str
    port: int
    debug: bool


@dataclass
class SiteStatsConfig:
    """Visit accounting settings. Intervals are in seconds."""
    anti_spam_interval: int = 300
    session_interval: int = 1800
    online_user_timeout: int = 60
    online_presence_window: int = 60
    lock_timeout: float = 5.0
    update_interval: int = 3000  # milliseconds, consumed by the front-end poller
    animation_speed: str = "normal"

    def to_client_dict(self) -> Dict[str, Any]:
        """Settings the front-end widget needs."""
        return {
            "update_interval": self.update_interval,
            "anti_spam_interval": self.anti_spam_interval,
            "session_interval": self.session_interval,
            "online_user_timeout": self.online_user_timeout,
            "animation_speed": self.animation_speed
        }


@dataclass
class PathsConfig:
    """Path configuration settings."""
    data_dir: str
    storage: str


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = "site_stats_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._loaded_mtime: Optional[float] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables.

        The new settings are built aside and swapped in with one assignment,
        so readers on other threads see either the old or the new config.
        """
        # Start with default config
        config = self._get_default_config()
        mtime = self._file_mtime()

        # Load base config from file
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
            except (ValueError, OSError) as e:
                self._loaded_mtime = mtime
                if self._config is not None:
                    # Keep serving the previous settings until the file is fixed
                    logger.warning(f"Could not reload config file {self.config_file}: {e}")
                    return
                logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
            else:
                # Merge file config with defaults
                self._merge_config(config, file_config)

        # Override with environment variables
        self._override_with_env(config)

        self._config = config
        self._loaded_mtime = mtime

    def _file_mtime(self) -> Optional[float]:
        try:
            return self.config_file.stat().st_mtime
        except OSError:
            return None

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "app": {
                "host": "0.0.0.0",
                "port": 22582,
                "debug": False
            },
            "site_stats": {
                "anti_spam_interval": 300,
                "session_interval": 1800,
                "online_user_timeout": 60,
                "online_presence_window": 60,
                "lock_timeout": 5.0,
                "update_interval": 3000,
                "animation_speed": "normal"
            },
            "paths": {
                "data_dir": "data",
                "storage": "json"
            }
        }

    def _merge_config(self, config: Dict[str, Any], file_config: Dict[str, Any]) -> None:
        """Merge file configuration into config."""
        if not isinstance(file_config, dict):
            logger.warning(f"Config file {self.config_file} is not a JSON object, using defaults")
            return
        for section, values in file_config.items():
            if section in config:
                if isinstance(values, dict):
                    config[section].update(values)
                else:
                    logger.warning(f"Config section {section!r} is not a JSON object, using defaults")
            else:
                config[section] = values

    def _override_with_env(self, config: Dict[str, Any]) -> None:
        """Override configuration with environment variables."""
        # Visit accounting settings
        env_map = {
            "SITE_STATS_ANTI_SPAM_INTERVAL": "anti_spam_interval",
            "SITE_STATS_SESSION_INTERVAL": "session_interval",
            "SITE_STATS_ONLINE_USER_TIMEOUT": "online_user_timeout",
            "SITE_STATS_ONLINE_PRESENCE_WINDOW": "online_presence_window",
            "SITE_STATS_LOCK_TIMEOUT": "lock_timeout",
            "SITE_STATS_UPDATE_INTERVAL": "update_interval",
            "SITE_STATS_ANIMATION_SPEED": "animation_speed",
        }
        for env_name, key in env_map.items():
            if os.getenv(env_name):
                config["site_stats"][key] = os.getenv(env_name)

        # App settings
        if os.getenv("APP_HOST"):
            config["app"]["host"] = os.getenv("APP_HOST")

        if os.getenv("APP_PORT"):
            config["app"]["port"] = int(os.getenv("APP_PORT"))

        if os.getenv("APP_DEBUG"):
            config["app"]["debug"] = os.getenv("APP_DEBUG").lower() == "true"

        # Paths
        if os.getenv("SITE_STATS_DATA_DIR"):
            config["paths"]["data_dir"] = os.getenv("SITE_STATS_DATA_DIR")

        if os.getenv("SITE_STATS_STORAGE"):
            config["paths"]["storage"] = os.getenv("SITE_STATS_STORAGE").lower()

    @staticmethod
    def _coerce(value: Any, default, cast):
        """Cast a setting, falling back to the default on bad input."""
        try:
            result = cast(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid config value {value!r}, using default {default!r}")
            return default
        return max(result, 0)

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=int(app_config["port"]),
            debug=bool(app_config["debug"])
        )

    def get_site_stats_config(self) -> SiteStatsConfig:
        """Get visit accounting configuration."""
        raw = self._config["site_stats"]
        defaults = SiteStatsConfig()

        animation_speed = str(raw.get("animation_speed", defaults.animation_speed)).lower()
        if animation_speed not in ANIMATION_SPEEDS:
            logger.warning(f"Unknown animation speed {animation_speed!r}, using 'normal'")
            animation_speed = defaults.animation_speed

        return SiteStatsConfig(
            anti_spam_interval=self._coerce(raw.get("anti_spam_interval"), defaults.anti_spam_interval, int),
            session_interval=self._coerce(raw.get("session_interval"), defaults.session_interval, int),
            online_user_timeout=self._coerce(raw.get("online_user_timeout"), defaults.online_user_timeout, int),
            online_presence_window=self._coerce(raw.get("online_presence_window"), defaults.online_presence_window, int),
            lock_timeout=self._coerce(raw.get("lock_timeout"), defaults.lock_timeout, float),
            update_interval=self._coerce(raw.get("update_interval"), defaults.update_interval, int),
            animation_speed=animation_speed
        )

    def get_paths_config(self) -> PathsConfig:
        """Get paths configuration."""
        paths_config = self._config["paths"]
        storage = str(paths_config.get("storage", "json")).lower()
        if storage not in STORAGE_BACKENDS:
            logger.warning(f"Unknown storage backend {storage!r}, using 'json'")
            storage = "json"
        return PathsConfig(
            data_dir=str(paths_config["data_dir"]),
            storage=storage
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def reload_if_modified(self) -> bool:
        """Reload when the config file changed on disk since the last load."""
        if self._file_mtime() == self._loaded_mtime:
            return False
        logger.info(f"Config file {self.config_file} changed, reloading")
        self._load_config()
        return True

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)
        self._loaded_mtime = self._file_mtime()


# Global configuration instance
config_manager = ConfigManager()


def get_app_config() -> AppConfig:
    """Get application configuration."""
    return config_manager.get_app_config()


def get_site_stats_config() -> SiteStatsConfig:
    """Get visit accounting configuration, picking up on-disk edits."""
    config_manager.reload_if_modified()
    return config_manager.get_site_stats_config()


def get_paths_config() -> PathsConfig:
    """Get paths configuration."""
    return config_manager.get_paths_config()


def reload_config() -> None:
    """Reload configuration."""
    config_manager.reload()


def save_config() -> None:
    """Save configuration to file."""
    config_manager.save_config()
