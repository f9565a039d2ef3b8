"""The four diagnostic checks, each a function of current host state."""

from __future__ import annotations

from bluetooth_monitor.logging import VERBOSE, get_logger
from bluetooth_monitor.models import CheckName, CheckResult, CheckStatus
from bluetooth_monitor.system.host import BLUETOOTH_UNIT, BluetoothHost
from bluetooth_monitor.system.usb import find_bluetooth_entries

BLUETOOTH_MODULE = "bluetooth"
BTUSB_MODULE = "btusb"
NO_CONTROLLER_MARKER = "No default controller available"
NO_DEVICE_MARKER = "No such device"
NO_HARDWARE_DETAIL = "No Bluetooth hardware detected"
HARDWARE_PRESENT_DETAIL = "present and detected"

logger = get_logger(__name__)


def check_modules(host: BluetoothHost) -> CheckResult:
    logger.log(VERBOSE, "Checking Bluetooth kernel modules...")
    loaded = host.loaded_modules()
    if loaded is None:
        return CheckResult(CheckName.MODULES, CheckStatus.UNKNOWN, "Cannot list kernel modules.")

    bluetooth_loaded = BLUETOOTH_MODULE in loaded
    btusb_loaded = BTUSB_MODULE in loaded
    if not btusb_loaded and _btusb_bound(host):
        logger.log(VERBOSE, "Bluetooth USB driver (btusb) is in use by a device")
        btusb_loaded = True

    if bluetooth_loaded and btusb_loaded:
        return CheckResult(CheckName.MODULES, CheckStatus.OK, "bluetooth and btusb loaded")
    if not bluetooth_loaded and not btusb_loaded:
        return CheckResult(CheckName.MODULES, CheckStatus.FAIL, "Neither bluetooth nor btusb modules are loaded")
    if bluetooth_loaded:
        return CheckResult(CheckName.MODULES, CheckStatus.FAIL, "bluetooth module is loaded but btusb driver is not")
    return CheckResult(CheckName.MODULES, CheckStatus.FAIL, "btusb driver is loaded but bluetooth module is not")


def check_hardware(host: BluetoothHost) -> CheckResult:
    logger.log(VERBOSE, "Checking Bluetooth hardware presence...")

    controllers = host.controllers()
    if controllers:
        for controller in controllers:
            uevent = host.controller_uevent(controller)
            logger.log(VERBOSE, "  - %s: %s", controller.name, uevent or "No USB device information available")
        names = ", ".join(controller.name for controller in controllers)
        return CheckResult(CheckName.HARDWARE, CheckStatus.OK, f"{HARDWARE_PRESENT_DETAIL} (sysfs: {names})")
    logger.log(VERBOSE, "No Bluetooth controllers found in sysfs, checking USB devices...")

    listing = host.usb_listing()
    if listing:
        matches = find_bluetooth_entries(listing)
        if matches:
            for entry in matches:
                logger.log(VERBOSE, "Found potential Bluetooth device: %s", entry.raw)
            ids = ", ".join(entry.usb_id for entry in matches)
            return CheckResult(CheckName.HARDWARE, CheckStatus.OK, f"{HARDWARE_PRESENT_DETAIL} (usb: {ids})")
        logger.log(VERBOSE, "No Bluetooth USB devices found with lsusb")

    hci = host.hci_info()
    if hci is not None:
        output = hci.output
        if output and NO_DEVICE_MARKER not in output:
            logger.log(VERBOSE, "Found Bluetooth controllers with hciconfig: %s", output)
            return CheckResult(CheckName.HARDWARE, CheckStatus.OK, f"{HARDWARE_PRESENT_DETAIL} (hciconfig)")
        logger.log(VERBOSE, "No Bluetooth controllers found with hciconfig")

    return CheckResult(CheckName.HARDWARE, CheckStatus.FAIL, NO_HARDWARE_DETAIL)


def check_service(host: BluetoothHost, unit: str = BLUETOOTH_UNIT) -> CheckResult:
    logger.log(VERBOSE, "Checking Bluetooth service status...")
    active = host.service_active(unit)
    if active is None:
        active = host.legacy_service_status(unit)
        if active is None:
            return CheckResult(
                CheckName.SERVICE,
                CheckStatus.UNKNOWN,
                "Neither systemctl nor service is available.",
            )
    if active:
        return CheckResult(CheckName.SERVICE, CheckStatus.OK, f"{unit} service is active")
    return CheckResult(CheckName.SERVICE, CheckStatus.FAIL, f"{unit} service is not active")


def check_functionality(host: BluetoothHost, *, timeout_seconds: float = 5) -> CheckResult:
    logger.log(VERBOSE, "Checking Bluetooth functionality...")
    result = host.controller_show(timeout=timeout_seconds)
    if result is None:
        return CheckResult(
            CheckName.FUNCTIONALITY,
            CheckStatus.UNKNOWN,
            "bluetoothctl not found, cannot check Bluetooth functionality",
        )
    if result.timed_out:
        logger.warning("Bluetooth control command timed out after %ss", timeout_seconds)
        return CheckResult(CheckName.FUNCTIONALITY, CheckStatus.UNKNOWN, "bluetoothctl show timed out")

    output = result.output
    if NO_CONTROLLER_MARKER in output:
        return CheckResult(CheckName.FUNCTIONALITY, CheckStatus.FAIL, NO_CONTROLLER_MARKER)

    for line in output.splitlines():
        if "Controller" in line:
            return CheckResult(CheckName.FUNCTIONALITY, CheckStatus.OK, line.strip())

    logger.warning("Unexpected output from bluetoothctl: %s", output)
    return CheckResult(CheckName.FUNCTIONALITY, CheckStatus.FAIL, "Unexpected output from bluetoothctl")


def _btusb_bound(host: BluetoothHost) -> bool:
    return any(
        host.controller_uevent(controller).get("DRIVER") == BTUSB_MODULE for controller in host.controllers()
    )
