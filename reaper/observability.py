"""
Observability module: Prometheus metrics and structured JSON logging.

- Reaper metrics (Gauges, Counters, Histogram) updated by the Scheduler
- Optional Prometheus HTTP exporter
- JSON structured logging via python-json-logger
"""

import logging
import re
import sys

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger("session-reaper")

# =============================================================================
# Prometheus Metrics
# =============================================================================

DISCONNECTED_SESSIONS = Gauge(
    "reaper_disconnected_sessions",
    "Disconnected sessions seen on the last cycle",
    ["broker"],
)

LOGOFFS_TOTAL = Counter(
    "reaper_logoffs_total",
    "Logoff requests sent, by broker and matched application",
    ["broker", "application"],
)

LOGOFF_FAILURES_TOTAL = Counter(
    "reaper_logoff_failures_total",
    "Logoff requests that failed",
    ["broker"],
)

BROKER_ERRORS_TOTAL = Counter(
    "reaper_broker_errors_total",
    "Cycles in which a broker could not be queried",
    ["broker"],
)

CYCLE_DURATION = Histogram(
    "reaper_cycle_duration_seconds",
    "Duration of one reconciliation cycle",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60, 120),
)


def start_metrics_server(port: int) -> None:
    """Expose /metrics on ``port`` from a daemon thread."""
    start_http_server(port)
    logger.info(f"Prometheus exporter listening on :{port}")


# =============================================================================
# JSON Structured Logging
# =============================================================================

class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data in log messages."""

    SENSITIVE_PATTERNS = [
        (re.compile(r'password["\']?\s*[:=]\s*["\']?[^"\'}\s]+', re.I), 'password=***'),
        (re.compile(r'token["\']?\s*[:=]\s*["\']?[^"\'}\s]+', re.I), 'token=***'),
        (re.compile(r'bearer\s+\S+', re.I), 'Bearer ***'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            for pattern, replacement in self.SENSITIVE_PATTERNS:
                record.msg = pattern.sub(replacement, record.msg)
        return True


def setup_json_logging(level: str = "INFO") -> None:
    """
    Configure the root logger with JSON structured output on stderr.

    The SensitiveDataFilter is attached to the handler so every logger
    (including requests/urllib3) is masked.
    """
    from pythonjsonlogger.json import JsonFormatter

    handler = logging.StreamHandler(sys.stderr)
    formatter = JsonFormatter(
        fmt="%(timestamp)s %(name)s %(levelname)s %(message)s",
        rename_fields={"levelname": "level", "asctime": "timestamp"},
        timestamp=True,
    )
    handler.setFormatter(formatter)
    handler.addFilter(SensitiveDataFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())
