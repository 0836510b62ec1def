"""
Lightweight DI container for reaper services.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reaper.services.scheduler import Scheduler

logger = logging.getLogger("session-reaper")


class ServiceContainer:
    """Lightweight service container holding shared service instances."""

    def __init__(self) -> None:
        self._scheduler: Scheduler | None = None

    @property
    def scheduler(self) -> Scheduler:
        if self._scheduler is None:
            from reaper.config.loader import ReaperConfig, apps_config_path
            from reaper.services.scheduler import Scheduler

            settings = ReaperConfig.settings().scheduler
            self._scheduler = Scheduler(
                apps_config_path(),
                interval=settings.interval,
                isolate_broker_failures=settings.isolate_broker_failures,
            )
        return self._scheduler

    def shutdown(self) -> None:
        """Stop background services that have been started."""
        if self._scheduler is not None:
            logger.info("Shutdown requested")
            self._scheduler.stop()
