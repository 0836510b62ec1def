"""
Shared pytest fixtures for the reaper test suite.
"""

import os
from unittest.mock import MagicMock

import pytest

# ---------------------------------------------------------------------------
# Environment stubs – must be set BEFORE any reaper module is imported so
# that module-level calls to get_env / SecretsProvider don't fail.
# ---------------------------------------------------------------------------

os.environ.pop("VAULT_ADDR", None)
os.environ.setdefault("REAPER_CONFIG_PATH", "/tmp/reaper-tests/config")
os.environ.setdefault("REAPER_BROKER_API_USERNAME", "svc-reaper")
os.environ.setdefault("REAPER_BROKER_API_PASSWORD", "test-password")

# Import reaper modules AFTER env vars are set (they trigger module-level code)
from reaper.config.models import ReaperSettings  # noqa: E402
from reaper.domain.types import ApplicationPath, DisconnectedSession  # noqa: E402


# ---------------------------------------------------------------------------
# apps.ini on disk
# ---------------------------------------------------------------------------

@pytest.fixture
def apps_ini(tmp_path):
    """Factory writing an apps.ini file and returning its path."""
    def _write(content: str, name: str = "apps.ini"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path
    return _write


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_session():
    """Factory for a DisconnectedSession."""
    def _make(handle="1001", user="Alice Smith", apps=("\\Apps\\Notepad.exe",)) -> DisconnectedSession:
        return DisconnectedSession(
            session_handle=handle,
            user_full_name=user,
            applications=tuple(ApplicationPath(a) for a in apps),
        )
    return _make


# ---------------------------------------------------------------------------
# Broker clients
# ---------------------------------------------------------------------------

@pytest.fixture
def broker_clients():
    """
    Per-broker MagicMock clients plus a factory returning them.

    ``clients["DDC1"].fetch_disconnected.return_value = [...]`` sets what a
    broker reports; unknown brokers report no sessions.
    """
    clients: dict[str, MagicMock] = {}

    def _factory(broker: str) -> MagicMock:
        if broker not in clients:
            client = MagicMock()
            client.broker = broker
            client.fetch_disconnected.return_value = []
            clients[broker] = client
        return clients[broker]

    _factory.clients = clients
    return _factory


# ---------------------------------------------------------------------------
# ReaperConfig mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_reaper_config(mocker):
    """Patch ReaperConfig.settings to return defaults with a fast interval."""
    settings = ReaperSettings(scheduler={"interval": 0.01})
    mocker.patch("reaper.config.loader.ReaperConfig.settings", return_value=settings)
    return settings
