"""Scheduler contracts and helpers."""

from .timing import PollResult, poll_until
from .watch import (
    LIMITED_RECOVERY_PROMPT,
    HealthCycle,
    MonitorCycleResult,
    MonitorExitCode,
    MonitorRunResult,
    determine_monitor_exit_code,
    run_monitor_loop,
)

__all__ = [
    "LIMITED_RECOVERY_PROMPT",
    "HealthCycle",
    "MonitorCycleResult",
    "MonitorExitCode",
    "MonitorRunResult",
    "PollResult",
    "determine_monitor_exit_code",
    "poll_until",
    "run_monitor_loop",
]
