"""Monitor loop orchestration on top of health evaluation and the recovery ladder."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
import time as time_module
from typing import TYPE_CHECKING

from bluetooth_monitor.errors import SchedulerError
from bluetooth_monitor.logging import get_logger, log_recovery
from bluetooth_monitor.models import HealthReport, RecoverySummary

if TYPE_CHECKING:
    # Recovery actions import scheduler.timing; runtime imports here would cycle.
    from bluetooth_monitor.diagnostics.health import HealthEvaluator
    from bluetooth_monitor.recovery.ladder import RecoveryLadder

NowFn = Callable[[], datetime]
SleepFn = Callable[[float], None]
ConfirmFn = Callable[[str], bool]

LIMITED_RECOVERY_PROMPT = "Try limited recovery actions?"

logger = get_logger(__name__)


@dataclass(frozen=True)
class MonitorCycleResult:
    cycle: int
    started_at: datetime
    report: HealthReport
    recovery: RecoverySummary | None = None
    verification: HealthReport | None = None
    aborted: bool = False

    @property
    def resolved(self) -> bool:
        final = self.verification or self.report
        return not final.recovery_needed

    @property
    def ok(self) -> bool:
        return not self.aborted and self.resolved


@dataclass(frozen=True)
class MonitorRunResult:
    cycles_completed: int
    last_cycle: MonitorCycleResult | None = None
    interrupted: bool = False

    @property
    def aborted(self) -> bool:
        return self.last_cycle is not None and self.last_cycle.aborted


class MonitorExitCode(IntEnum):
    """Stable exit code matrix for service wrappers and scripts."""

    SUCCESS = 0
    FAILURE = 1
    INTERRUPTED = 130


RunCycleFn = Callable[[int], MonitorCycleResult]


class HealthCycle:
    """One health cycle: evaluate, optionally run the ladder, then re-verify."""

    def __init__(
        self,
        evaluator: HealthEvaluator,
        ladder: RecoveryLadder,
        *,
        auto_recovery: bool = True,
        confirm_fn: ConfirmFn | None = None,
        now_fn: NowFn | None = None,
    ) -> None:
        self._evaluator = evaluator
        self._ladder = ladder
        self._auto_recovery = auto_recovery
        self._confirm = confirm_fn or (lambda _prompt: False)
        self._now = now_fn or (lambda: datetime.now(timezone.utc))

    def __call__(self, cycle: int) -> MonitorCycleResult:
        started_at = self._now()
        report = self._evaluator.evaluate()
        if not report.recovery_needed:
            return MonitorCycleResult(cycle=cycle, started_at=started_at, report=report)
        if not self._auto_recovery:
            logger.info("Recovery needed but automatic recovery is disabled")
            return MonitorCycleResult(cycle=cycle, started_at=started_at, report=report)

        env = self._ladder.env
        if not env.host.privilege.available:
            logger.warning("Not running as root and passwordless sudo is unavailable; recovery actions may fail")
            if not self._confirm(LIMITED_RECOVERY_PROMPT):
                logger.error("Recovery aborted by user")
                return MonitorCycleResult(cycle=cycle, started_at=started_at, report=report, aborted=True)

        logger.info("Attempting automatic recovery...")
        summary = self._ladder.run(bcm_reset_detected=report.bcm_reset_detected)
        if not summary.ok:
            logger.error("Recovery actions failed")
            return MonitorCycleResult(cycle=cycle, started_at=started_at, report=report, recovery=summary)

        env.pause(env.settings.verify_pause_seconds)
        log_recovery("Verifying recovery...")
        verification = self._evaluator.evaluate()
        if verification.recovery_needed:
            logger.warning("Some issues persist after recovery")
        else:
            log_recovery("All issues resolved by recovery")
        return MonitorCycleResult(
            cycle=cycle,
            started_at=started_at,
            report=report,
            recovery=summary,
            verification=verification,
        )


def run_monitor_loop(
    run_cycle: RunCycleFn,
    *,
    interval_seconds: int,
    max_cycles: int | None = None,
    sleep_fn: SleepFn | None = None,
) -> MonitorRunResult:
    """Run health cycles every interval until ``max_cycles``, an abort, or Ctrl-C."""
    if interval_seconds <= 0:
        raise SchedulerError("interval_seconds must be > 0.")
    if max_cycles is not None and max_cycles <= 0:
        raise SchedulerError("max_cycles must be > 0 when provided.")

    sleeper = sleep_fn or time_module.sleep
    completed = 0
    last: MonitorCycleResult | None = None
    while True:
        try:
            last = run_cycle(completed + 1)
        except KeyboardInterrupt:
            return _interrupted(completed, last)
        completed += 1

        if last.aborted:
            return MonitorRunResult(cycles_completed=completed, last_cycle=last)
        if max_cycles is not None and completed >= max_cycles:
            return MonitorRunResult(cycles_completed=completed, last_cycle=last)

        try:
            sleeper(interval_seconds)
        except KeyboardInterrupt:
            return _interrupted(completed, last)


def determine_monitor_exit_code(result: MonitorRunResult) -> MonitorExitCode:
    if result.interrupted:
        return MonitorExitCode.INTERRUPTED
    if result.last_cycle is None or not result.last_cycle.ok:
        return MonitorExitCode.FAILURE
    return MonitorExitCode.SUCCESS


def _interrupted(completed: int, last: MonitorCycleResult | None) -> MonitorRunResult:
    logger.info("Bluetooth Monitor terminated by user")
    return MonitorRunResult(cycles_completed=completed, last_cycle=last, interrupted=True)
