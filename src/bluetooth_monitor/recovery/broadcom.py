"""Specialised fix for the Apple/Broadcom controller that fails its HCI reset."""

from __future__ import annotations

from bluetooth_monitor.diagnostics.checks import BTUSB_MODULE
from bluetooth_monitor.diagnostics.firmware import find_broadcom_firmware
from bluetooth_monitor.diagnostics.health import HCI_RUNNING_MARKER
from bluetooth_monitor.logging import get_logger, log_recovery
from bluetooth_monitor.models import RecoveryActionResult, RecoveryStep, failure, success
from bluetooth_monitor.recovery.base import RecoveryEnv
from bluetooth_monitor.recovery.usb_reset import ResetMethod, power_cycle
from bluetooth_monitor.system.host import BLUETOOTH_UNIT
from bluetooth_monitor.system.usb import APPLE_BCM_USB_ID, UsbDevice, find_entry, find_usb_device_by_address

BROADCOM_RESET_METHODS = (ResetMethod.AUTHORIZED, ResetMethod.REBIND, ResetMethod.RESET_UTILITY)
MANUAL_GUIDANCE = (
    "For persistent Broadcom BCM reset issues, consider:",
    "1. Checking for updated firmware packages for your distribution",
    "2. Temporarily using an external Bluetooth adapter as a workaround",
    "3. Adding 'btusb.reset_delay=1' to kernel boot parameters",
)

logger = get_logger(__name__)


def fix_broadcom_reset(env: RecoveryEnv) -> RecoveryActionResult:
    host = env.host
    log_recovery("Attempting to fix Broadcom BCM reset failure...")
    host.privilege.require("fix Broadcom issues")

    _report_firmware(env)

    log_recovery("Executing specialized Broadcom reset sequence...")
    fixed = _reload_btusb_with_reset_delay(env)
    if not fixed:
        device = _apple_controller(env)
        if device is not None:
            log_recovery("Attempting USB power cycle for device %s:%s", device.busnum, device.devnum)
            method = power_cycle(env, device, methods=BROADCOM_RESET_METHODS)
            fixed = method is not None
            if fixed:
                log_recovery("Power cycled Apple Bluetooth controller via %s", method.value)

    if not fixed:
        log_recovery("Broadcom BCM reset fix failed")
        for line in MANUAL_GUIDANCE:
            log_recovery(line)
        return failure(RecoveryStep.BROADCOM_FIX, "btusb reload and power cycle both failed")

    if host.has_systemctl():
        log_recovery("Restarting Bluetooth service to apply Broadcom fixes...")
        if host.run_privileged(["systemctl", "restart", BLUETOOTH_UNIT]).ok:
            log_recovery("Bluetooth service restarted successfully")
        else:
            logger.warning("Failed to restart Bluetooth service")
        env.pause(env.settings.broadcom_settle_seconds)

        hci = host.hci_info(all_info=True)
        if hci is not None:
            if HCI_RUNNING_MARKER in hci.stdout:
                log_recovery("Broadcom controller is now working properly!")
                return success(RecoveryStep.BROADCOM_FIX, "controller is UP RUNNING")
            logger.warning("Broadcom controller is still not functioning properly")

    log_recovery("Broadcom BCM reset fix succeeded at least partially")
    return success(RecoveryStep.BROADCOM_FIX, "partial fix applied")


def _report_firmware(env: RecoveryEnv) -> None:
    log_recovery("Searching for Broadcom firmware files...")
    hcd_files, candidate = find_broadcom_firmware(env.paths.firmware_dir)
    if not hcd_files:
        logger.warning("No Broadcom firmware files found under %s", env.paths.firmware_dir / "brcm")
        return
    log_recovery("Found Broadcom firmware files: %s", ", ".join(str(path) for path in hcd_files))
    if candidate is not None:
        log_recovery("Found potential Apple Bluetooth firmware: %s", candidate)


def _reload_btusb_with_reset_delay(env: RecoveryEnv) -> bool:
    host = env.host
    loaded = host.loaded_modules() or frozenset()
    if BTUSB_MODULE not in loaded or not host.has_tool("modprobe"):
        return False

    log_recovery("Unloading btusb module...")
    if not host.run_privileged(["modprobe", "-r", BTUSB_MODULE]).ok:
        logger.warning("Could not unload btusb module (may be in use)")
        return False
    env.pause(env.settings.module_pause_seconds)

    log_recovery("Reloading btusb module with reset_delay parameter...")
    if host.run_privileged(["modprobe", BTUSB_MODULE, "reset_delay=1"]).ok:
        log_recovery("Successfully reloaded btusb with reset_delay parameter")
        return True
    if host.run_privileged(["modprobe", BTUSB_MODULE]).ok:
        log_recovery("Reloaded btusb module (without parameters)")
        return True
    logger.warning("Failed to reload btusb module")
    return False


def _apple_controller(env: RecoveryEnv) -> UsbDevice | None:
    listing = env.host.usb_listing()
    if not listing:
        return None
    entry = find_entry(listing, APPLE_BCM_USB_ID)
    if entry is None:
        return None
    log_recovery("Found Apple Bluetooth controller: %s", entry.raw)
    device = find_usb_device_by_address(env.host.usb_devices_dir, entry.bus, entry.device)
    if device is None:
        logger.warning("No sysfs node for USB bus %s device %s", entry.bus, entry.device)
    return device
