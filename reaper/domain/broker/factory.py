"""
Factory for broker clients.
"""

from __future__ import annotations

import logging
import threading

from reaper.config.loader import ReaperConfig
from reaper.config.settings import get_env
from reaper.domain.broker.base import BrokerBackend
from reaper.domain.broker.client import BrokerAPI
from reaper.resilience import CircuitBreaker

logger = logging.getLogger("session-reaper")

# One client per broker identifier, kept across cycles for token and
# circuit breaker state. Session data is never cached here.
_lock = threading.Lock()
_clients: dict[str, BrokerBackend] = {}


def get_broker_client(broker: str) -> BrokerBackend:
    """
    Get the client for a broker, creating it on first use.

    Args:
        broker: Broker identifier (section name in apps.ini)

    Returns:
        BrokerBackend for that broker
    """
    client = _clients.get(broker)
    if client is not None:
        return client

    with _lock:
        client = _clients.get(broker)
        if client is not None:
            return client

        settings = ReaperConfig.settings()
        api = settings.broker_api
        base_url = api.url_template.format(broker=broker)
        logger.info(f"Initializing broker client for {broker} ({base_url})")

        client = BrokerAPI(
            broker,
            base_url,
            username=get_env("broker_api_username", "") or "",
            password=get_env("broker_api_password", "") or "",
            timeout=api.timeout,
            verify_tls=api.verify_tls,
            token_lifetime=api.token_lifetime,
            circuit_breaker=CircuitBreaker(
                name=broker,
                failure_threshold=settings.circuit_breaker.failure_threshold,
                recovery_timeout=settings.circuit_breaker.recovery_timeout,
            ),
        )
        _clients[broker] = client

    return client


def reset_broker_clients() -> None:
    """Drop all cached clients (settings change or tests)."""
    with _lock:
        _clients.clear()
