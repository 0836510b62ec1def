"""Domain module containing the matching logic and broker access."""

from reaper.domain.types import AllowListEntry, ApplicationPath, DisconnectedSession
from reaper.domain.matcher import matches
from reaper.domain.broker import (
    BrokerAPI,
    BrokerUnavailableError,
    TerminationFailedError,
    get_broker_client,
)

__all__ = [
    "AllowListEntry",
    "ApplicationPath",
    "DisconnectedSession",
    "matches",
    "BrokerAPI",
    "BrokerUnavailableError",
    "TerminationFailedError",
    "get_broker_client",
]
