"""Pin USB runtime power management of the Bluetooth device to ``on``."""

from __future__ import annotations

from pathlib import Path

from bluetooth_monitor.logging import get_logger, log_recovery
from bluetooth_monitor.models import RecoveryActionResult, RecoveryStep, failure, success
from bluetooth_monitor.recovery.base import RecoveryEnv
from bluetooth_monitor.system.usb import find_power_ancestor, find_usb_ancestor, usb_device_at

UDEV_POWER_RULE_FILENAME = "10-bluetooth-power.rules"

logger = get_logger(__name__)


def fix_power_management(env: RecoveryEnv) -> RecoveryActionResult:
    log_recovery("Attempting to fix power management for Bluetooth USB device...")
    targets = power_managed_devices(env)
    if not targets:
        logger.error("Could not find any Bluetooth USB devices with power management")
        return failure(RecoveryStep.POWER_MANAGEMENT, "No Bluetooth USB devices with power management")

    env.host.privilege.require("modify power management settings")

    corrected: list[str] = []
    for device_path in targets:
        if _pin_power_on(env, device_path):
            corrected.append(device_path.name)
        _resume_if_suspended(env, device_path)

    if corrected:
        return success(RecoveryStep.POWER_MANAGEMENT, f"power/control=on for {', '.join(corrected)}")
    return failure(RecoveryStep.POWER_MANAGEMENT, "Could not pin power/control to on")


def power_managed_devices(env: RecoveryEnv) -> tuple[Path, ...]:
    """USB nodes with a ``power/`` directory behind each controller, without duplicates."""
    stop = env.host.sysfs_root
    found: list[Path] = []
    for controller in env.host.controllers():
        device_link = controller / "device"
        if not device_link.exists():
            continue
        usb_device = find_usb_ancestor(device_link, stop=stop)
        if usb_device is not None and (usb_device.path / "power").is_dir():
            path = usb_device.path
        else:
            path = find_power_ancestor(device_link, stop=stop)
        if path is not None and path not in found:
            found.append(path)
    return tuple(found)


def _pin_power_on(env: RecoveryEnv, device_path: Path) -> bool:
    host = env.host
    control_path = device_path / "power" / "control"
    current = host.read_attr(control_path)
    if current is None:
        logger.warning("Power management control not found for %s", device_path.name)
        return False
    log_recovery("Current power management control for %s: %s", device_path.name, current)

    if current == "on":
        log_recovery("Power management already disabled for %s", device_path.name)
        return True
    if current != "auto":
        logger.warning("Unknown power management state: %s", current)
        return False

    log_recovery("Disabling auto power management for %s...", device_path.name)
    if not host.write_attr(control_path, "on") or host.read_attr(control_path) != "on":
        logger.error("Failed to disable auto power management for %s", device_path.name)
        return False
    log_recovery("Power control is now set to 'on' for %s", device_path.name)
    _install_udev_rule(env, device_path)
    return True


def _resume_if_suspended(env: RecoveryEnv, device_path: Path) -> None:
    power = device_path / "power"
    status = env.host.read_attr(power / "runtime_status")
    if status is None:
        return
    log_recovery("Power runtime status for %s: %s", device_path.name, status)
    if status != "suspended":
        return
    resume_path = power / "runtime_suspended"
    if not resume_path.exists():
        logger.warning("Cannot resume %s: no runtime_suspended attribute", device_path.name)
        return
    log_recovery("Attempting to resume suspended device...")
    if env.host.write_attr(resume_path, "0"):
        log_recovery("Successfully resumed device from suspension")
    else:
        logger.warning("Failed to resume device from suspension")


def udev_power_rule(vendor_id: str, product_id: str) -> str:
    return (
        "# Disable power management for Bluetooth device\n"
        f'ACTION=="add", SUBSYSTEM=="usb", ATTR{{idVendor}}=="{vendor_id}", '
        f'ATTR{{idProduct}}=="{product_id}", ATTR{{power/control}}="on"\n'
    )


def _install_udev_rule(env: RecoveryEnv, device_path: Path) -> None:
    host = env.host
    device = usb_device_at(device_path)
    if device is None or not host.has_tool("udevadm") or not host.privilege.available:
        return

    rules_dir = env.paths.udev_rules_dir
    rules_file = rules_dir / UDEV_POWER_RULE_FILENAME
    log_recovery("Creating persistent udev rule for power management...")
    try:
        rules_dir.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        if not host.run_privileged(["mkdir", "-p", str(rules_dir)]).ok:
            logger.warning("Failed to create udev rules directory")
            return
    except OSError as exc:
        logger.warning("Failed to create udev rules directory: %s", exc)
        return

    if not host.write_attr(rules_file, udev_power_rule(device.vendor_id, device.product_id)):
        logger.warning("Failed to create udev rule")
        return
    log_recovery("Created udev rule: %s", rules_file)
    if host.run_privileged(["udevadm", "control", "--reload-rules"]).ok:
        log_recovery("Reloaded udev rules successfully")
    else:
        logger.warning("Failed to reload udev rules")
