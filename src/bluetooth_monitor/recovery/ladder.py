"""Fixed, ordered recovery ladder over the individual actions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from bluetooth_monitor.errors import BluetoothMonitorError, RecoveryError
from bluetooth_monitor.logging import get_logger, log_recovery
from bluetooth_monitor.models import RecoveryActionResult, RecoveryStep, RecoverySummary, failure
from bluetooth_monitor.recovery.base import RecoveryAction, RecoveryEnv
from bluetooth_monitor.recovery.broadcom import fix_broadcom_reset
from bluetooth_monitor.recovery.modules import reload_modules
from bluetooth_monitor.recovery.power import fix_power_management
from bluetooth_monitor.recovery.service import restart_service
from bluetooth_monitor.recovery.usb_reset import reset_usb_device

FULL_PLAN = (
    RecoveryStep.BROADCOM_FIX,
    RecoveryStep.POWER_MANAGEMENT,
    RecoveryStep.USB_RESET,
    RecoveryStep.SERVICE_RESTART,
    RecoveryStep.MODULE_RELOAD,
)
RECOVERY_SUBSET = (
    RecoveryStep.POWER_MANAGEMENT,
    RecoveryStep.USB_RESET,
    RecoveryStep.SERVICE_RESTART,
)

DEFAULT_ACTIONS: Mapping[RecoveryStep, RecoveryAction] = {
    RecoveryStep.BROADCOM_FIX: fix_broadcom_reset,
    RecoveryStep.POWER_MANAGEMENT: fix_power_management,
    RecoveryStep.USB_RESET: reset_usb_device,
    RecoveryStep.SERVICE_RESTART: restart_service,
    RecoveryStep.MODULE_RELOAD: reload_modules,
}

logger = get_logger(__name__)


class RecoveryLadder:
    """Run every step in order regardless of earlier outcomes; nothing raises out of a run."""

    def __init__(self, env: RecoveryEnv, *, actions: Mapping[RecoveryStep, RecoveryAction] | None = None) -> None:
        self._env = env
        self._actions = dict(DEFAULT_ACTIONS if actions is None else actions)

    @property
    def env(self) -> RecoveryEnv:
        return self._env

    def run(self, *, bcm_reset_detected: bool, steps: Sequence[RecoveryStep] = FULL_PLAN) -> RecoverySummary:
        if not steps:
            raise RecoveryError("Recovery plan must contain at least one step.")
        unknown = [step for step in steps if step not in self._actions]
        if unknown:
            raise RecoveryError(f"No recovery action registered for: {', '.join(step.value for step in unknown)}.")

        log_recovery("Starting recovery sequence...")
        outcomes: list[RecoveryActionResult] = []
        for step in steps:
            if step is RecoveryStep.BROADCOM_FIX:
                if not bcm_reset_detected:
                    continue
                log_recovery("Detected BCM reset failure, attempting specialized fix...")
            outcomes.append(self.run_step(step))

        summary = RecoverySummary(outcomes=tuple(outcomes))
        _log_summary(summary)
        return summary

    def run_step(self, step: RecoveryStep) -> RecoveryActionResult:
        action = self._actions.get(step)
        if action is None:
            raise RecoveryError(f"No recovery action registered for: {step.value}.")

        log_recovery("Step: %s", step.label)
        try:
            result = action(self._env)
        except BluetoothMonitorError as exc:
            logger.error("%s failed: %s", step.label, exc)
            result = failure(step, str(exc))

        if result.ok:
            log_recovery("%s successful", step.label)
        else:
            logger.warning("%s unsuccessful, continuing with other recovery methods", step.label)
        return result


def _log_summary(summary: RecoverySummary) -> None:
    log_recovery("Recovery Sequence Summary:")
    for outcome in summary.outcomes:
        log_recovery("  - %s: %s", outcome.step.label, "SUCCESS" if outcome.ok else "FAILED")
    log_recovery("Summary: %d out of %d actions succeeded", summary.succeeded, summary.attempted)
    if summary.ok:
        log_recovery(
            "Recovery sequence completed with at least one successful action (%d/%d)",
            summary.succeeded,
            summary.attempted,
        )
    else:
        logger.error("All recovery actions failed (0/%d)", summary.attempted)
