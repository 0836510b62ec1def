"""Services module for the reconciliation loop and operator alerts."""

from reaper.services.alerts import notify_fatal
from reaper.services.scheduler import CycleReport, Scheduler, SchedulerState

__all__ = [
    "notify_fatal",
    "CycleReport",
    "Scheduler",
    "SchedulerState",
]
