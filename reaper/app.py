"""
Process entry point for the Session Reaper.

Takes no command-line arguments. Exits with status 1 when apps.ini is
missing or invalid, and with 0 after SIGINT/SIGTERM.
"""

import logging
import os
import signal

from reaper.config.loader import ReaperConfig
from reaper.container import ServiceContainer
from reaper.observability import setup_json_logging, start_metrics_server

logger = logging.getLogger("session-reaper")


def main() -> int:
    settings = ReaperConfig.settings()
    setup_json_logging(level=os.environ.get("LOG_LEVEL", settings.logging.level))

    if settings.metrics.enabled:
        try:
            start_metrics_server(settings.metrics.port)
        except OSError as e:
            logger.warning(f"Metrics exporter disabled: {e}")

    container = ServiceContainer()

    def _handle_signal(signum: int, frame: object) -> None:
        logger.info(f"Received signal {signum}")
        container.shutdown()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    container.scheduler.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
