"""Configuration module for the Session Reaper."""

from reaper.config.settings import (
    APPS_CONFIG_FILE_NAME,
    DEFAULT_SLEEP_INTERVAL,
    NO_SECTION,
    get_env,
)
from reaper.config.secrets import secrets_provider, SecretsProvider
from reaper.config.loader import (
    ReaperConfig,
    CONFIG_PATH,
    REAPER_CONFIG_FILE,
    apps_config_path,
)
from reaper.config.store import (
    Config,
    ConfigError,
    ConfigFormatError,
    ConfigNotFoundError,
)

__all__ = [
    "APPS_CONFIG_FILE_NAME",
    "DEFAULT_SLEEP_INTERVAL",
    "NO_SECTION",
    "get_env",
    "secrets_provider",
    "SecretsProvider",
    "ReaperConfig",
    "CONFIG_PATH",
    "REAPER_CONFIG_FILE",
    "apps_config_path",
    "Config",
    "ConfigError",
    "ConfigFormatError",
    "ConfigNotFoundError",
]
