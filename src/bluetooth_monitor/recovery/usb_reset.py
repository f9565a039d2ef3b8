"""USB device reset with escalating mechanisms and bounded re-enumeration waits."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path

from bluetooth_monitor.logging import VERBOSE, get_logger, log_recovery
from bluetooth_monitor.models import RecoveryActionResult, RecoveryStep, failure, success
from bluetooth_monitor.recovery.base import RecoveryEnv
from bluetooth_monitor.scheduler.timing import poll_until
from bluetooth_monitor.system.usb import UsbDevice

logger = get_logger(__name__)


class ResetMethod(str, Enum):
    AUTHORIZED = "authorized"
    REBIND = "rebind"
    RESET_UTILITY = "reset_utility"
    SUSPEND = "suspend"


ALL_METHODS = (ResetMethod.AUTHORIZED, ResetMethod.REBIND, ResetMethod.RESET_UTILITY, ResetMethod.SUSPEND)


def reset_usb_device(env: RecoveryEnv) -> RecoveryActionResult:
    log_recovery("Attempting USB reset of the Bluetooth device...")
    controller, device = _locate(env)
    if device is None:
        logger.error("Could not find Bluetooth USB device path")
        return failure(RecoveryStep.USB_RESET, "Could not find Bluetooth USB device path")

    env.host.privilege.require("reset the USB device")
    log_recovery("Found Bluetooth USB device at: %s", device.path)
    if device.busnum is not None and device.devnum is not None:
        log_recovery("USB bus:device = %s:%s", device.busnum, device.devnum)

    interface = _bound_interface(controller)
    method = power_cycle(env, device, interface=interface)
    if method is not None:
        log_recovery("USB device reset was successful")
        return success(RecoveryStep.USB_RESET, f"USB reset via {method.value}")

    logger.error("All USB reset methods failed")
    log_recovery("Consider manually removing and reinserting the device if possible,")
    log_recovery("or rebooting the system to fully reset the Bluetooth hardware.")
    return failure(RecoveryStep.USB_RESET, "All USB reset methods failed")


def power_cycle(
    env: RecoveryEnv,
    device: UsbDevice,
    *,
    interface: Path | None = None,
    methods: tuple[ResetMethod, ...] = ALL_METHODS,
) -> ResetMethod | None:
    """Try each mechanism in order; return the first that worked."""
    attempts: dict[ResetMethod, Callable[[], bool]] = {
        ResetMethod.AUTHORIZED: lambda: _reset_via_authorized(env, device),
        ResetMethod.REBIND: lambda: _reset_via_rebind(env, interface or device.path),
        ResetMethod.RESET_UTILITY: lambda: _reset_via_utility(env, device),
        ResetMethod.SUSPEND: lambda: _reset_via_suspend(env, device),
    }
    for method in methods:
        if attempts[method]():
            return method
    return None


def wait_for_reenumeration(env: RecoveryEnv, max_wait_seconds: float) -> bool:
    settings = env.settings
    log_recovery("Waiting up to %ss for device re-enumeration...", _fmt(max_wait_seconds))
    result = poll_until(
        lambda: bool(env.host.controllers()),
        max_wait_seconds=max_wait_seconds,
        interval_seconds=settings.poll_interval_seconds,
        sleep_fn=env.sleep_fn,
        progress_every_seconds=settings.progress_every_seconds,
        on_progress=lambda elapsed: log_recovery("Still waiting for device... %ss elapsed", _fmt(elapsed)),
    )
    if not result.ok:
        log_recovery("Device did not re-enumerate within %ss", _fmt(max_wait_seconds))
        return False
    log_recovery("Device re-enumerated after %ss", _fmt(result.elapsed_seconds))
    env.pause(settings.poll_interval_seconds)
    return True


def _reset_via_authorized(env: RecoveryEnv, device: UsbDevice) -> bool:
    authorized = device.path / "authorized"
    if not authorized.is_file():
        logger.log(VERBOSE, "No authorized flag for %s, skipping", device.name)
        return False

    log_recovery("USB reset via authorized flag: disabling %s...", device.name)
    if not env.host.write_attr(authorized, "0"):
        logger.warning("Failed to disable USB device via authorized flag")
        return False
    env.pause(env.settings.authorized_settle_seconds)
    log_recovery("Re-enabling USB device %s...", device.name)
    if not env.host.write_attr(authorized, "1"):
        logger.error("Failed to re-enable USB device via authorized flag")
        return False
    return True


def _reset_via_rebind(env: RecoveryEnv, node: Path) -> bool:
    driver_link = node / "driver"
    if not driver_link.exists():
        logger.warning("Could not find driver path and device ID for bind/unbind method")
        return False
    driver = driver_link.resolve()
    device_id = node.resolve().name

    log_recovery("USB reset via driver rebind: unbinding %s from %s...", device_id, driver)
    if not env.host.write_attr(driver / "unbind", device_id):
        logger.warning("Failed to unbind device from driver")
        return False
    env.pause(env.settings.unbind_settle_seconds)
    log_recovery("Rebinding device %s to driver...", device_id)
    if not env.host.write_attr(driver / "bind", device_id):
        logger.error("Failed to rebind device to driver")
        return False
    if wait_for_reenumeration(env, env.settings.unbind_wait_seconds):
        log_recovery("Device successfully reset using bind/unbind method")
        return True
    logger.warning("Device did not re-enumerate after bind/unbind reset")
    return False


def _reset_via_utility(env: RecoveryEnv, device: UsbDevice) -> bool:
    host = env.host
    if device.busnum is None or device.devnum is None:
        logger.log(VERBOSE, "Bus/Device numbers not available, cannot use a reset utility")
        return False

    if host.has_tool("usbreset"):
        argv = ["usbreset", str(device.dev_node)]
    elif host.has_tool("usb_modeswitch"):
        argv = [
            "usb_modeswitch",
            "-v",
            f"0x{device.vendor_id}",
            "-p",
            f"0x{device.product_id}",
            "-R",
            "-b",
            str(device.busnum),
            "-g",
            str(device.devnum),
        ]
    else:
        logger.log(VERBOSE, "Neither usbreset nor usb_modeswitch available, skipping this reset method")
        return False

    log_recovery("USB reset via %s for %s at %s:%s...", argv[0], device.usb_id, device.busnum, device.devnum)
    result = host.run_privileged(argv)
    if not result.ok:
        logger.error("%s command failed: %s", argv[0], result.output)
        return False
    if wait_for_reenumeration(env, env.settings.reset_utility_wait_seconds):
        log_recovery("Device successfully reset using %s", argv[0])
        return True
    logger.warning("Device did not re-enumerate after %s reset", argv[0])
    return False


def _reset_via_suspend(env: RecoveryEnv, device: UsbDevice) -> bool:
    power = device.path / "power"
    if not (power / "autosuspend").is_file():
        logger.log(VERBOSE, "Power management files not available, cannot use power cycle method")
        return False

    log_recovery("USB reset via suspend/resume: forcing %s to suspend...", device.name)
    if not env.host.write_attr(power / "autosuspend", "1"):
        logger.error("Failed to set autosuspend value")
        return False
    if not env.host.write_attr(power / "control", "auto"):
        logger.error("Failed to set power control to auto")
        return False
    env.pause(env.settings.suspend_settle_seconds)
    log_recovery("Resuming USB device %s...", device.name)
    if not env.host.write_attr(power / "control", "on"):
        logger.error("Failed to resume USB device")
        return False
    if wait_for_reenumeration(env, env.settings.suspend_wait_seconds):
        log_recovery("Device successfully reset using power cycle method")
        return True
    logger.warning("Device did not respond after power cycle")
    return False


def _locate(env: RecoveryEnv) -> tuple[Path | None, UsbDevice | None]:
    for controller in env.host.controllers():
        device = env.host.usb_device_for(controller)
        if device is not None:
            return controller, device
    return None, None


def _bound_interface(controller: Path | None) -> Path | None:
    if controller is None:
        return None
    device_link = controller / "device"
    if (device_link / "driver").exists():
        return device_link.resolve()
    return None


def _fmt(seconds: float) -> str:
    return f"{seconds:g}"
