"""
Per-broker circuit breaker.

A broker that keeps failing is skipped for ``recovery_timeout`` seconds
instead of stalling every cycle on network timeouts.
"""

from __future__ import annotations

import enum
import threading
import time
from typing import Any, Callable

from prometheus_client import Counter, Gauge


CIRCUIT_STATE = Gauge(
    "reaper_circuit_breaker_state",
    "Broker circuit breaker state (0=closed, 1=open, 2=half_open)",
    ["broker"],
)

CIRCUIT_TRIPS = Counter(
    "reaper_circuit_breaker_trips_total",
    "Number of times a broker circuit breaker tripped to OPEN",
    ["broker"],
)


class CircuitState(enum.Enum):
    CLOSED = 0
    OPEN = 1
    HALF_OPEN = 2


class CircuitOpenError(Exception):
    """Raised when the circuit breaker is OPEN and calls are rejected."""

    def __init__(self, name: str, retry_after: float) -> None:
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit '{name}' is OPEN (retry after {retry_after:.0f}s)")


class CircuitBreaker:
    """Thread-safe circuit breaker.

    - CLOSED: calls pass through; consecutive failures are counted.
    - After ``failure_threshold`` consecutive failures the circuit trips to OPEN.
    - OPEN: ``CircuitOpenError`` is raised immediately (no network call).
    - After ``recovery_timeout`` seconds the state moves to HALF_OPEN: one
      probe call is allowed through.
    - Probe success -> CLOSED; probe failure -> back to OPEN.
    """

    def __init__(
        self,
        name: str = "default",
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float = 0.0

        self._set_state(CircuitState.CLOSED)

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Execute *func* through the circuit breaker.

        The lock is released before the call itself so a slow broker does
        not block readers of :attr:`state`.
        """
        with self._lock:
            self._maybe_half_open()
            if self._state == CircuitState.OPEN:
                retry_after = self.recovery_timeout - (time.monotonic() - self._last_failure_time)
                raise CircuitOpenError(self.name, max(0.0, retry_after))

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def reset(self) -> None:
        """Force-reset the circuit to CLOSED."""
        with self._lock:
            self._failure_count = 0
            self._last_failure_time = 0.0
            self._set_state(CircuitState.CLOSED)

    # ------------------------------------------------------------------
    # Internal helpers (caller holds ``_lock``)
    # ------------------------------------------------------------------

    def _set_state(self, state: CircuitState) -> None:
        self._state = state
        CIRCUIT_STATE.labels(broker=self.name).set(state.value)

    def _maybe_half_open(self) -> None:
        if (
            self._state == CircuitState.OPEN
            and time.monotonic() - self._last_failure_time >= self.recovery_timeout
        ):
            self._set_state(CircuitState.HALF_OPEN)

    def _record_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.CLOSED)

    def _record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.monotonic()

            tripped = self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            )
            if tripped:
                self._set_state(CircuitState.OPEN)
                CIRCUIT_TRIPS.labels(broker=self.name).inc()
