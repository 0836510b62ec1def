"""
Protocols and errors for broker backends.
"""

from typing import Protocol

from reaper.domain.types import DisconnectedSession


class BrokerError(Exception):
    """Base class for errors raised while talking to a broker."""

    def __init__(self, broker: str, message: str) -> None:
        self.broker = broker
        super().__init__(f"[{broker}] {message}")


class BrokerUnavailableError(BrokerError):
    """The broker could not be reached or refused the request."""


class TerminationFailedError(BrokerError):
    """A logoff request was rejected or could not be sent."""

    def __init__(self, broker: str, session_handle: str, message: str) -> None:
        self.session_handle = session_handle
        super().__init__(broker, f"logoff of session {session_handle} failed: {message}")


class SessionSource(Protocol):
    """Supplies the disconnected sessions of one broker."""

    def fetch_disconnected(self) -> list[DisconnectedSession]:
        """
        Get the sessions currently disconnected on the broker.

        Returns:
            Disconnected sessions (empty list when there are none)

        Raises:
            BrokerUnavailableError: If the broker cannot be queried
        """
        ...


class LogoffExecutor(Protocol):
    """Requests termination of a session on its broker."""

    def terminate(self, session: DisconnectedSession) -> None:
        """
        Request a logoff for the session.

        Args:
            session: Session to log off

        Raises:
            TerminationFailedError: If the broker rejects the request
        """
        ...


class BrokerBackend(SessionSource, LogoffExecutor, Protocol):
    """A broker client that can both list and terminate sessions."""

    broker: str
