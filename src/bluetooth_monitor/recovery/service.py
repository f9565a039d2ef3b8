"""Bluetooth service restart."""

from __future__ import annotations

from bluetooth_monitor.errors import CommandError
from bluetooth_monitor.logging import get_logger, log_recovery
from bluetooth_monitor.models import RecoveryActionResult, RecoveryStep, failure, success
from bluetooth_monitor.recovery.base import RecoveryEnv
from bluetooth_monitor.system.host import BLUETOOTH_UNIT

logger = get_logger(__name__)


def restart_service(env: RecoveryEnv, unit: str = BLUETOOTH_UNIT) -> RecoveryActionResult:
    host = env.host
    host.privilege.require(f"restart the {unit} service")

    if host.has_systemctl():
        log_recovery("Stopping %s service...", unit)
        stopped = host.run_privileged(["systemctl", "stop", unit])
        if not stopped.ok:
            logger.warning("Failed to stop %s service: %s", unit, stopped.output)
        env.pause(env.settings.service_pause_seconds)

        log_recovery("Starting %s service...", unit)
        started = host.run_privileged(["systemctl", "start", unit])
        if not started.ok:
            logger.error("Failed to start %s service: %s", unit, started.output)
            return failure(RecoveryStep.SERVICE_RESTART, f"systemctl start {unit} failed")
        if host.service_active(unit):
            log_recovery("%s service restarted successfully", unit)
            return success(RecoveryStep.SERVICE_RESTART, f"{unit} service is active")
        logger.error("%s service is not active after restart", unit)
        return failure(RecoveryStep.SERVICE_RESTART, f"{unit} service is not active after restart")

    if host.has_tool("service"):
        log_recovery("Restarting %s service...", unit)
        restarted = host.run_privileged(["service", unit, "restart"])
        if not restarted.ok:
            logger.error("Failed to restart %s service: %s", unit, restarted.output)
            return failure(RecoveryStep.SERVICE_RESTART, f"service {unit} restart failed")
        if host.daemon_running():
            log_recovery("%s service restarted successfully", unit)
            return success(RecoveryStep.SERVICE_RESTART, "bluetoothd is running")
        logger.error("bluetoothd is not running after restart")
        return failure(RecoveryStep.SERVICE_RESTART, "bluetoothd is not running after restart")

    raise CommandError(f"Neither systemctl nor service is available to restart {unit}.")
