"""
Broker backends.

A broker is reached through its REST session management API; the
scheduler only depends on the protocols in :mod:`reaper.domain.broker.base`.
"""

from reaper.domain.broker.base import (
    BrokerBackend,
    BrokerError,
    BrokerUnavailableError,
    LogoffExecutor,
    SessionSource,
    TerminationFailedError,
)
from reaper.domain.broker.client import BrokerAPI
from reaper.domain.broker.factory import get_broker_client, reset_broker_clients

__all__ = [
    "BrokerBackend",
    "BrokerError",
    "BrokerUnavailableError",
    "LogoffExecutor",
    "SessionSource",
    "TerminationFailedError",
    "BrokerAPI",
    "get_broker_client",
    "reset_broker_clients",
]
