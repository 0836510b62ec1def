"""
Configuration lookups backed by environment variables, with broker API
credentials optionally read from Vault (OpenBao/HashiCorp KV v2).

Keys served:

- ``broker_api_username`` / ``broker_api_password``: Vault secret at
  ``VAULT_MOUNT``/``VAULT_PATH``, else ``REAPER_BROKER_API_USERNAME`` /
  ``REAPER_BROKER_API_PASSWORD``
- ``apps_config``: ``REAPER_APPS_CONFIG``
- ``config_path``: ``REAPER_CONFIG_PATH``
"""

from __future__ import annotations

import logging
import os
import threading

import requests

logger = logging.getLogger("session-reaper")

BROKER_SECRET_KEYS = frozenset({"broker_api_username", "broker_api_password"})


class SecretsProvider:
    """Resolves configuration keys: Vault (broker credentials only) > env > default."""

    def __init__(self) -> None:
        self.vault_addr = os.environ.get("VAULT_ADDR")
        self.vault_token = os.environ.get("VAULT_TOKEN")
        self.vault_mount = os.environ.get("VAULT_MOUNT", "secret")
        self.vault_path = os.environ.get("VAULT_PATH", "session-reaper/broker-api")
        self._credentials: dict[str, str] | None = None
        self._lock = threading.Lock()

    @property
    def use_vault(self) -> bool:
        return bool(self.vault_addr and self.vault_token)

    def _broker_credentials(self) -> dict[str, str]:
        """
        Read the broker credential secret once per process.

        A failed read is not remembered, so the next lookup tries again.
        """
        with self._lock:
            if self._credentials is not None:
                return self._credentials
            try:
                resp = requests.get(
                    f"{self.vault_addr}/v1/{self.vault_mount}/data/{self.vault_path}",
                    headers={"X-Vault-Token": self.vault_token},
                    timeout=5,
                )
                resp.raise_for_status()
                self._credentials = resp.json().get("data", {}).get("data", {}) or {}
                logger.info(f"Loaded broker credentials from Vault: {self.vault_path}")
            except (requests.RequestException, ValueError) as e:
                logger.warning(f"Vault unavailable ({e}), using environment variables")
                return {}
            return self._credentials

    def get(self, key: str, default: str | None = None) -> str | None:
        """
        Resolve ``key``; ``broker_api_password`` maps to
        ``REAPER_BROKER_API_PASSWORD`` in the environment.
        """
        if key in BROKER_SECRET_KEYS and self.use_vault:
            value = self._broker_credentials().get(key)
            if value:
                return value

        env_key = "REAPER_" + key.upper().replace("-", "_")
        return os.environ.get(env_key, default)


# Global instance
secrets_provider = SecretsProvider()
