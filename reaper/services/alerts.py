"""
Operator alerts for conditions that stop the reaper.
"""

import logging
import sys

logger = logging.getLogger("session-reaper")


def notify_fatal(message: str) -> None:
    """
    Report a fatal error to the operator.

    Logged at CRITICAL for the log pipeline and written as plain text to
    stderr so it is visible on an interactive console.
    """
    logger.critical(message)
    print(f"Session Reaper stopped: {message}", file=sys.stderr, flush=True)
