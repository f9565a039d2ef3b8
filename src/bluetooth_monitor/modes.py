"""Single-shot operation modes selected from the command line."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from bluetooth_monitor.diagnostics.checks import check_hardware, check_service
from bluetooth_monitor.diagnostics.firmware import scan_firmware
from bluetooth_monitor.diagnostics.health import detect_bcm_reset_failure
from bluetooth_monitor.logging import get_logger
from bluetooth_monitor.models import RecoveryStep
from bluetooth_monitor.recovery.ladder import RECOVERY_SUBSET
from bluetooth_monitor.scheduler.watch import MonitorExitCode
from bluetooth_monitor.wiring import MonitorServices

logger = get_logger(__name__)


class OperationMode(str, Enum):
    MONITOR = "monitor"
    DETECT_ONLY = "detect-only"
    CHECK_SERVICE = "check-service"
    RESTART_SERVICE = "restart-service"
    POWER_MANAGEMENT = "power-management"
    CHECK_STATE = "check-state"
    RECOVERY = "recovery"
    FULL_RECOVERY = "full-recovery"


@dataclass(frozen=True)
class ModeResult:
    exit_code: MonitorExitCode
    message: str

    @property
    def ok(self) -> bool:
        return self.exit_code is MonitorExitCode.SUCCESS


def run_operation_mode(mode: OperationMode, services: MonitorServices) -> ModeResult:
    handler = _HANDLERS.get(mode)
    if handler is None:
        raise ValueError(f"Mode '{mode.value}' is not a single-shot operation.")
    try:
        return handler(services)
    except KeyboardInterrupt:
        logger.info("Bluetooth Monitor terminated by user")
        return ModeResult(exit_code=MonitorExitCode.INTERRUPTED, message=f"Interrupted during {mode.value}")


def _detect_only(services: MonitorServices) -> ModeResult:
    result = check_hardware(services.host)
    if result.ok:
        return _result(True, f"Bluetooth hardware {result.detail}")
    return _result(False, result.detail)


def _check_service(services: MonitorServices) -> ModeResult:
    result = check_service(services.host)
    return _result(result.ok, f"Bluetooth service: {result.status.value} ({result.detail})")


def _restart_service(services: MonitorServices) -> ModeResult:
    outcome = services.ladder.run_step(RecoveryStep.SERVICE_RESTART)
    return _result(outcome.ok, f"{outcome.step.label}: {'SUCCESS' if outcome.ok else 'FAILED'} ({outcome.detail})")


def _power_management(services: MonitorServices) -> ModeResult:
    outcome = services.ladder.run_step(RecoveryStep.POWER_MANAGEMENT)
    return _result(outcome.ok, f"{outcome.step.label}: {'SUCCESS' if outcome.ok else 'FAILED'} ({outcome.detail})")


def _check_state(services: MonitorServices) -> ModeResult:
    report = services.evaluator.evaluate()
    firmware = scan_firmware(services.config.paths.firmware_dir)
    if firmware.found:
        logger.info("Found %d Bluetooth firmware file(s) in %s", len(firmware.bluetooth_files), firmware.root)
        for path in firmware.apple_bcm_files:
            logger.info("Found potential Apple/Broadcom firmware: %s", path)
    else:
        logger.warning("No Bluetooth firmware files found in %s", firmware.root)
    return _result(not report.recovery_needed, report.summary_line())


def _recovery(services: MonitorServices) -> ModeResult:
    summary = services.ladder.run(bcm_reset_detected=False, steps=RECOVERY_SUBSET)
    return _result(summary.ok, f"Summary: {summary.succeeded} out of {summary.attempted} actions succeeded")


def _full_recovery(services: MonitorServices) -> ModeResult:
    bcm_reset = detect_bcm_reset_failure(services.host)
    summary = services.ladder.run(bcm_reset_detected=bcm_reset)
    return _result(summary.ok, f"Summary: {summary.succeeded} out of {summary.attempted} actions succeeded")


def _result(ok: bool, message: str) -> ModeResult:
    return ModeResult(exit_code=MonitorExitCode.SUCCESS if ok else MonitorExitCode.FAILURE, message=message)


_HANDLERS: dict[OperationMode, Callable[[MonitorServices], ModeResult]] = {
    OperationMode.DETECT_ONLY: _detect_only,
    OperationMode.CHECK_SERVICE: _check_service,
    OperationMode.RESTART_SERVICE: _restart_service,
    OperationMode.POWER_MANAGEMENT: _power_management,
    OperationMode.CHECK_STATE: _check_state,
    OperationMode.RECOVERY: _recovery,
    OperationMode.FULL_RECOVERY: _full_recovery,
}
