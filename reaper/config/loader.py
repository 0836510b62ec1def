"""
Runtime settings loader for reaper.yml and allow-list path resolution.
"""

from __future__ import annotations

import logging
import sys
import threading
import time
from pathlib import Path

import yaml

from reaper.config.models import ReaperSettings
from reaper.config.settings import APPS_CONFIG_FILE_NAME, DEFAULT_SLEEP_INTERVAL, get_env

logger = logging.getLogger("session-reaper")

# Configuration paths
CONFIG_PATH = Path(get_env("config_path", "/etc/session-reaper") or "/etc/session-reaper")
REAPER_CONFIG_FILE = CONFIG_PATH / "reaper.yml"


def apps_config_path() -> Path:
    """
    Resolve the allow-list file location.

    ``REAPER_APPS_CONFIG`` wins when set; otherwise apps.ini sits next to
    the running script.
    """
    override = get_env("apps_config")
    if override:
        return Path(override)
    return Path(sys.argv[0]).resolve().parent / APPS_CONFIG_FILE_NAME


class ReaperConfig:
    """Manages runtime settings from YAML file."""

    _lock = threading.Lock()
    _config: dict = {}
    _typed_config: ReaperSettings | None = None
    _last_load: float = 0
    _cache_duration: int = 60

    @classmethod
    def load(cls) -> dict:
        """Load runtime settings from YAML file."""
        now = time.time()
        if cls._config and (now - cls._last_load) < cls._cache_duration:
            return cls._config

        with cls._lock:
            # Double-check after acquiring the lock
            now = time.time()
            if cls._config and (now - cls._last_load) < cls._cache_duration:
                return cls._config
            return cls._load_locked(now)

    @classmethod
    def _load_locked(cls, now: float) -> dict:
        """Load config while holding ``_lock``. Called from :meth:`load`."""
        defaults = {
            "scheduler": {"interval": DEFAULT_SLEEP_INTERVAL, "isolate_broker_failures": True},
            "broker_api": {
                "url_template": "https://{broker}/api/v1",
                "timeout": 30,
                "verify_tls": True,
                "token_lifetime": 3500,
            },
            "circuit_breaker": {"failure_threshold": 5, "recovery_timeout": 30.0},
            "metrics": {"enabled": False, "port": 9108},
            "logging": {"level": "INFO"},
        }

        if not REAPER_CONFIG_FILE.exists():
            logger.info(f"Reaper settings not found, using defaults: {REAPER_CONFIG_FILE}")
            cls._config = defaults
            cls._last_load = now
            cls._typed_config = ReaperSettings.model_validate(cls._config)
            return cls._config

        try:
            with open(REAPER_CONFIG_FILE, "r") as f:
                file_config = yaml.safe_load(f) or {}

            cls._config = cls._deep_merge(defaults, file_config)
            cls._last_load = now
            logger.info(f"Loaded reaper settings from {REAPER_CONFIG_FILE}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading reaper settings: {e}")
            cls._config = defaults

        cls._typed_config = ReaperSettings.model_validate(cls._config)
        return cls._config

    @classmethod
    def _deep_merge(cls, base: dict, override: dict) -> dict:
        """Deep merge two dictionaries."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    @classmethod
    def settings(cls) -> ReaperSettings:
        """Get typed configuration as a ReaperSettings instance."""
        cls.load()
        assert cls._typed_config is not None
        return cls._typed_config
