"""Health evaluation: run every check, detect the Broadcom reset signature, log the result."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from bluetooth_monitor.config import RecoveryConfig
from bluetooth_monitor.diagnostics.checks import (
    check_functionality,
    check_hardware,
    check_modules,
    check_service,
)
from bluetooth_monitor.diagnostics.events import StatusLog
from bluetooth_monitor.logging import VERBOSE, get_logger
from bluetooth_monitor.models import CheckName, CheckResult, CheckStatus, HealthReport
from bluetooth_monitor.system.host import BluetoothHost
from bluetooth_monitor.system.usb import APPLE_BCM_USB_ID, find_entry

BCM_RESET_MARKER = "BCM: Reset failed"
HCI_RUNNING_MARKER = "UP RUNNING"

NowFn = Callable[[], datetime]

logger = get_logger(__name__)

_CHECK_LABELS = {
    CheckName.MODULES: ("Bluetooth kernel modules are properly loaded", "Bluetooth kernel modules have issues"),
    CheckName.HARDWARE: ("Bluetooth hardware is present", "Bluetooth hardware is not detected"),
    CheckName.SERVICE: ("Bluetooth service is running", "Bluetooth service is not running"),
    CheckName.FUNCTIONALITY: ("Bluetooth is fully functional", "Bluetooth is not functioning properly"),
}


def detect_bcm_reset_failure(host: BluetoothHost) -> bool:
    """Either the kernel log shows the reset failure, or the Apple controller is present but down."""
    logger.log(VERBOSE, "Checking for Broadcom BCM reset failures...")
    kernel_log = host.kernel_log()
    if kernel_log is not None and BCM_RESET_MARKER in kernel_log:
        logger.warning("Detected Broadcom BCM Reset failure in dmesg")
        return True

    listing = host.usb_listing()
    if listing and find_entry(listing, APPLE_BCM_USB_ID) is not None:
        logger.log(VERBOSE, "Found Apple Bluetooth controller (possibly Broadcom BCM chip)")
        hci = host.hci_info(all_info=True)
        if hci is not None and HCI_RUNNING_MARKER not in hci.stdout:
            logger.warning("Apple/Broadcom controller detected but not UP RUNNING")
            return True
    return False


class HealthEvaluator:
    """Runs all four checks unconditionally and aggregates them into a HealthReport."""

    def __init__(
        self,
        host: BluetoothHost,
        settings: RecoveryConfig,
        *,
        status_log: StatusLog | None = None,
        now_fn: NowFn | None = None,
    ) -> None:
        self._host = host
        self._settings = settings
        self._status_log = status_log
        self._now = now_fn or (lambda: datetime.now(timezone.utc))

    def evaluate(self) -> HealthReport:
        checked_at = self._now()
        logger.info("Checking Bluetooth status at %s", checked_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"))

        checks = (
            check_modules(self._host),
            check_hardware(self._host),
            check_service(self._host),
            check_functionality(self._host, timeout_seconds=self._settings.functionality_timeout_seconds),
        )
        for check in checks:
            _log_check(check)

        report = HealthReport(
            checks=checks,
            bcm_reset_detected=detect_bcm_reset_failure(self._host),
            checked_at=checked_at,
        )
        if self._status_log is not None:
            self._status_log.append_report(report)

        if report.recovery_needed:
            logger.info("Issues detected - recovery actions may be needed")
        elif report.healthy:
            logger.info("Bluetooth is working properly")
        else:
            logger.info("No failures detected, but some checks could not be completed")
        return report


def _log_check(check: CheckResult) -> None:
    ok_message, fail_message = _CHECK_LABELS[check.name]
    if check.status is CheckStatus.OK:
        logger.info("%s: %s", ok_message, check.detail)
    elif check.status is CheckStatus.FAIL:
        logger.warning("%s: %s", fail_message, check.detail)
    else:
        logger.warning("%s check inconclusive: %s", check.name.value.capitalize(), check.detail)
