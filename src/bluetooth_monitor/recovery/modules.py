"""Kernel module unload and reload."""

from __future__ import annotations

from bluetooth_monitor.diagnostics.checks import BLUETOOTH_MODULE, BTUSB_MODULE
from bluetooth_monitor.errors import CommandError
from bluetooth_monitor.logging import get_logger, log_recovery
from bluetooth_monitor.models import RecoveryActionResult, RecoveryStep, failure, success
from bluetooth_monitor.recovery.base import RecoveryEnv

# Unload dependents first, load the core module first.
UNLOAD_ORDER = (BTUSB_MODULE, BLUETOOTH_MODULE)
LOAD_ORDER = (BLUETOOTH_MODULE, BTUSB_MODULE)

logger = get_logger(__name__)


def reload_modules(env: RecoveryEnv) -> RecoveryActionResult:
    host = env.host
    host.privilege.require("reload kernel modules")
    if not host.has_tool("modprobe"):
        raise CommandError("modprobe is not available to reload kernel modules.")

    loaded = host.loaded_modules() or frozenset()
    for module in UNLOAD_ORDER:
        if module not in loaded:
            continue
        log_recovery("Unloading %s module...", module)
        result = host.run_privileged(["modprobe", "-r", module])
        if not result.ok:
            logger.warning("Could not unload %s module (may be in use): %s", module, result.output)

    env.pause(env.settings.module_pause_seconds)

    for module in LOAD_ORDER:
        log_recovery("Loading %s module...", module)
        result = host.run_privileged(["modprobe", module])
        if not result.ok:
            logger.error("Failed to load %s module: %s", module, result.output)
            return failure(RecoveryStep.MODULE_RELOAD, f"modprobe {module} failed")

    log_recovery("Bluetooth kernel modules reloaded")
    return success(RecoveryStep.MODULE_RELOAD, "bluetooth and btusb reloaded")
