"""
Constants and settings for the Session Reaper.
"""

import re

# =============================================================================
# Constants
# =============================================================================

APPS_CONFIG_FILE_NAME = "apps.ini"
APPS_CONFIG_EXTENSION = ".ini"
DEFAULT_SLEEP_INTERVAL = 10

# Bucket for keys and comments that appear before any [section] line
NO_SECTION = "no-section"
COMMENT_KEY_PREFIX = "Comment"

# Allow-list file grammar
SECTION_PATTERN = re.compile(r'^\[(.+)\]')
COMMENT_PATTERN = re.compile(r'^(;.*)$')
KEY_VALUE_PATTERN = re.compile(r'^(.+?)\s*=(.*)$')
COMMENT_KEY_PATTERN = re.compile(r'^Comment\d+$')

# Application paths reported by brokers ("Group\\Sub\\App.exe")
APPLICATION_PATH_DELIMITERS = re.compile(r'[\\/]')


def get_env(key: str, default: str = None, required: bool = False) -> str:
    """
    Retrieve an environment variable with Vault support.

    Args:
        key: Configuration key
        default: Default value
        required: Whether the value is required

    Returns:
        Configuration value

    Raises:
        ValueError: If required value is missing
    """
    # Import here to avoid circular imports
    from reaper.config.secrets import secrets_provider

    value = secrets_provider.get(key, default)
    if required and not value:
        raise ValueError(f"Required configuration missing: {key}")
    return value
