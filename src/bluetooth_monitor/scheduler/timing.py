"""Bounded polling helpers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import time as time_module

from bluetooth_monitor.errors import SchedulerError

SleepFn = Callable[[float], None]
ProgressFn = Callable[[float], None]


@dataclass(frozen=True)
class PollResult:
    ok: bool
    elapsed_seconds: float
    attempts: int


def poll_until(
    predicate: Callable[[], bool],
    *,
    max_wait_seconds: float,
    interval_seconds: float = 1,
    sleep_fn: SleepFn | None = None,
    progress_every_seconds: float | None = None,
    on_progress: ProgressFn | None = None,
) -> PollResult:
    """Evaluate ``predicate`` every interval until it holds or ``max_wait_seconds`` elapses.

    Elapsed time is counted from requested sleeps, not wall-clock time.
    """
    if max_wait_seconds < 0:
        raise SchedulerError("max_wait_seconds must be >= 0.")
    if interval_seconds <= 0:
        raise SchedulerError("interval_seconds must be > 0.")
    if progress_every_seconds is not None and progress_every_seconds <= 0:
        raise SchedulerError("progress_every_seconds must be > 0 when provided.")

    sleeper = sleep_fn or time_module.sleep
    elapsed = 0.0
    attempts = 0
    next_progress = progress_every_seconds
    while True:
        attempts += 1
        if predicate():
            return PollResult(ok=True, elapsed_seconds=elapsed, attempts=attempts)
        if elapsed >= max_wait_seconds:
            return PollResult(ok=False, elapsed_seconds=elapsed, attempts=attempts)

        step = min(interval_seconds, max_wait_seconds - elapsed)
        sleeper(step)
        elapsed += step
        if on_progress is not None and next_progress is not None and elapsed >= next_progress:
            on_progress(elapsed)
            next_progress += progress_every_seconds
