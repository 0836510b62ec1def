"""
REST client for a broker's session management API.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable
from urllib.parse import quote

import requests

from reaper.domain.broker.base import BrokerUnavailableError, TerminationFailedError
from reaper.domain.types import DisconnectedSession
from reaper.resilience import CircuitBreaker, CircuitOpenError, CircuitState

logger = logging.getLogger("session-reaper")


class BrokerAPI:
    """Client for one broker's REST API."""

    def __init__(
        self,
        broker: str,
        base_url: str,
        username: str = "",
        password: str = "",
        timeout: float = 30,
        verify_tls: bool = True,
        token_lifetime: int = 3500,
        circuit_breaker: CircuitBreaker | None = None,
    ):
        """
        Initialize the broker API client.

        Args:
            broker: Broker identifier as written in apps.ini
            base_url: API base URL for this broker
            username: Admin username (empty for unauthenticated APIs)
            password: Admin password
            timeout: Request timeout in seconds
            verify_tls: Whether to verify the broker's TLS certificate
            token_lifetime: Seconds before a token is refreshed
            circuit_breaker: Optional pre-built CircuitBreaker (defaults to a new one)
        """
        self.broker = broker
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.token_lifetime = token_lifetime
        self.token: str | None = None
        self.token_expires: float = 0
        self._lock = threading.Lock()
        self._circuit = circuit_breaker or CircuitBreaker(name=broker)

    @property
    def circuit_healthy(self) -> bool:
        """Whether the broker circuit breaker is CLOSED (healthy)."""
        return self._circuit.state == CircuitState.CLOSED

    def _request(self, method: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute an HTTP request through the circuit breaker."""
        return self._circuit.call(method, *args, **kwargs)

    def authenticate(self) -> str:
        """
        Authenticate with the broker.  Must be called under ``self._lock``.

        Returns:
            Authentication token
        """
        resp = self._request(
            requests.post,
            f"{self.base_url}/tokens",
            data={"username": self.username, "password": self.password},
            timeout=self.timeout,
            verify=self.verify_tls,
        )
        resp.raise_for_status()
        self.token = resp.json()["authToken"]
        self.token_expires = time.time() + self.token_lifetime
        return self.token

    def _auth_headers(self) -> dict[str, str]:
        if not self.username:
            return {}
        with self._lock:
            if not self.token or time.time() > self.token_expires:
                self.authenticate()
            return {"Authorization": f"Bearer {self.token}"}

    def _invalidate_token(self) -> None:
        """Force token refresh on next API call."""
        with self._lock:
            self.token = None
            self.token_expires = 0

    def _do_request(
        self,
        method: Callable[..., Any],
        path: str,
        **kwargs: Any,
    ) -> requests.Response:
        """
        Make an authenticated API call with automatic re-auth on 401/403.

        Args:
            method: HTTP method (requests.get, requests.post, etc.)
            path: API path relative to the base URL
            **kwargs: Additional arguments passed to the request

        Returns:
            Response object
        """
        for attempt in range(2):
            resp = self._request(
                method,
                f"{self.base_url}/{path}",
                headers=self._auth_headers(),
                timeout=self.timeout,
                verify=self.verify_tls,
                **kwargs,
            )
            if resp.status_code in (401, 403) and attempt == 0 and self.username:
                logger.warning(f"Got {resp.status_code} from broker {self.broker}, forcing re-authentication")
                self._invalidate_token()
                continue
            resp.raise_for_status()
            return resp
        return resp  # pragma: no cover

    def fetch_disconnected(self) -> list[DisconnectedSession]:
        """
        Get the disconnected sessions on this broker.

        Records without a session handle are skipped.

        Returns:
            List of DisconnectedSession

        Raises:
            BrokerUnavailableError: On transport, HTTP or decoding errors
        """
        try:
            resp = self._do_request(requests.get, "sessions", params={"state": "Disconnected"})
            records = resp.json() or []
        except CircuitOpenError as e:
            raise BrokerUnavailableError(self.broker, str(e)) from e
        except (requests.RequestException, ValueError, KeyError) as e:
            raise BrokerUnavailableError(self.broker, f"session query failed: {e}") from e

        if not isinstance(records, list):
            raise BrokerUnavailableError(self.broker, "unexpected session list payload")

        sessions = []
        for record in records:
            try:
                sessions.append(DisconnectedSession.from_api(record))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping malformed session record from {self.broker}: {e}")
        return sessions

    def terminate(self, session: DisconnectedSession) -> None:
        """
        Request a logoff for a session.

        Args:
            session: Session to log off

        Raises:
            TerminationFailedError: If the request fails or is rejected
        """
        try:
            self._do_request(requests.post, f"sessions/{quote(session.session_handle, safe='')}/logoff")
        except CircuitOpenError as e:
            raise TerminationFailedError(self.broker, session.session_handle, str(e)) from e
        except (requests.RequestException, KeyError, ValueError) as e:
            raise TerminationFailedError(self.broker, session.session_handle, str(e)) from e
