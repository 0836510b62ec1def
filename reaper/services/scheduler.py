"""
Reconciliation loop: log off disconnected sessions of allow-listed apps.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from reaper.config import store
from reaper.config.settings import DEFAULT_SLEEP_INTERVAL, NO_SECTION
from reaper.config.store import Config, ConfigError
from reaper.domain.broker import (
    BrokerBackend,
    BrokerUnavailableError,
    TerminationFailedError,
    get_broker_client,
)
from reaper.domain.matcher import matches
from reaper.observability import (
    BROKER_ERRORS_TOTAL,
    CYCLE_DURATION,
    DISCONNECTED_SESSIONS,
    LOGOFF_FAILURES_TOTAL,
    LOGOFFS_TOTAL,
)
from reaper.services.alerts import notify_fatal

logger = logging.getLogger("session-reaper")


class SchedulerState(enum.Enum):
    IDLE = "idle"
    LOADING_CONFIG = "loading_config"
    ITERATING_BROKERS = "iterating_brokers"
    ITERATING_SESSIONS = "iterating_sessions"
    SLEEPING = "sleeping"
    FATAL = "fatal"
    STOPPED = "stopped"


@dataclass
class CycleReport:
    """Outcome of a single reconciliation cycle."""

    brokers_checked: int = 0
    sessions_seen: int = 0
    sessions_matched: int = 0
    logoffs_requested: int = 0
    logoff_failures: int = 0
    failed_brokers: list[str] = field(default_factory=list)


class Scheduler:
    """Reloads apps.ini, sweeps every broker, then sleeps. Repeats until stopped."""

    def __init__(
        self,
        config_path: Path | str,
        interval: float = DEFAULT_SLEEP_INTERVAL,
        client_factory: Callable[[str], BrokerBackend] = get_broker_client,
        isolate_broker_failures: bool = True,
        on_fatal: Callable[[str], None] = notify_fatal,
    ):
        """
        Initialize the scheduler.

        Args:
            config_path: Path to apps.ini
            interval: Sleep between cycles in seconds
            client_factory: Returns the broker client for a broker identifier
            isolate_broker_failures: Keep sweeping other brokers when one fails
            on_fatal: Called with a message before exiting on a config error
        """
        self.config_path = Path(config_path)
        self.interval = interval
        self.client_factory = client_factory
        self.isolate_broker_failures = isolate_broker_failures
        self.on_fatal = on_fatal
        self.state = SchedulerState.IDLE
        self.cycles = 0
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self.state not in (SchedulerState.IDLE, SchedulerState.STOPPED, SchedulerState.FATAL)

    def stop(self) -> None:
        """Request the loop to stop; an ongoing sleep is cut short."""
        self._stop_event.set()

    def load_config(self) -> Config:
        self.state = SchedulerState.LOADING_CONFIG
        return store.load(self.config_path)

    def run(self) -> None:
        """
        Run cycles until :meth:`stop` is called.

        Raises:
            SystemExit: With status 1 when apps.ini is missing or invalid
        """
        logger.info(f"Session reaper started (config: {self.config_path}, interval: {self.interval}s)")
        self._stop_event.clear()

        while not self._stop_event.is_set():
            try:
                config = self.load_config()
            except ConfigError as e:
                self.state = SchedulerState.FATAL
                self.on_fatal(f"Cannot load allow-list: {e}")
                raise SystemExit(1) from e

            try:
                self.run_cycle(config)
            except Exception as e:
                logger.error(f"Cycle error: {e}")

            self.state = SchedulerState.SLEEPING
            self._stop_event.wait(self.interval)

        self.state = SchedulerState.STOPPED
        logger.info("Session reaper stopped")

    def run_cycle(self, config: Config | None = None) -> CycleReport:
        """
        Sweep every broker once.

        Args:
            config: Parsed allow-list; loaded from ``config_path`` when omitted

        Returns:
            CycleReport for the cycle

        Raises:
            ConfigError: If ``config`` is omitted and apps.ini cannot be loaded
            BrokerUnavailableError: If a broker fails and failures are not isolated
        """
        if config is None:
            config = self.load_config()

        report = CycleReport()
        started = time.monotonic()
        self.state = SchedulerState.ITERATING_BROKERS

        orphans = config.allow_list(NO_SECTION)
        if orphans:
            logger.warning(f"Ignoring {len(orphans)} entries outside any [broker] section")

        try:
            for broker in config.brokers():
                report.brokers_checked += 1
                try:
                    self._sweep_broker(broker, config.allow_list(broker), report)
                except BrokerUnavailableError as e:
                    BROKER_ERRORS_TOTAL.labels(broker=broker).inc()
                    report.failed_brokers.append(broker)
                    if not self.isolate_broker_failures:
                        raise
                    logger.error(f"Broker {broker} skipped this cycle: {e}")
                self.state = SchedulerState.ITERATING_BROKERS
        finally:
            self.cycles += 1
            CYCLE_DURATION.observe(time.monotonic() - started)

        logger.info(
            f"Cycle {self.cycles} done: {report.brokers_checked} brokers, "
            f"{report.sessions_seen} disconnected sessions, "
            f"{report.logoffs_requested} logoffs requested"
        )
        return report

    def _sweep_broker(self, broker: str, allow_list: dict[str, str], report: CycleReport) -> None:
        logger.info(f"Checking disconnected sessions on {broker}")
        client = self.client_factory(broker)
        sessions = client.fetch_disconnected()

        DISCONNECTED_SESSIONS.labels(broker=broker).set(len(sessions))
        report.sessions_seen += len(sessions)
        self.state = SchedulerState.ITERATING_SESSIONS

        for session in sessions:
            matched = matches(allow_list, session)
            if not matched:
                continue

            report.sessions_matched += 1
            for entry in sorted(matched, key=lambda e: (e.alias, e.target)):
                logger.info(
                    f"Disconnected session of {entry.target} ({entry.alias}) found on {broker} "
                    f"for {session.display_user}, logging off"
                )

            # One logoff per session, however many entries matched
            report.logoffs_requested += 1
            application = min(entry.target for entry in matched)
            LOGOFFS_TOTAL.labels(broker=broker, application=application).inc()
            try:
                client.terminate(session)
            except TerminationFailedError as e:
                report.logoff_failures += 1
                LOGOFF_FAILURES_TOTAL.labels(broker=broker).inc()
                logger.error(f"Logoff failed for {session.display_user} on {broker}: {e}")
