"""Capability set over external tools and sysfs for one local Bluetooth adapter."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from bluetooth_monitor.errors import PrivilegeError
from bluetooth_monitor.logging import VERBOSE, get_logger
from bluetooth_monitor.system.base import CommandResult, CommandRunner
from bluetooth_monitor.system.executor import PrivilegeGate
from bluetooth_monitor.system.usb import (
    UsbDevice,
    UsbListingEntry,
    find_usb_ancestor,
    find_usb_device_by_id,
    parse_uevent,
    parse_usb_listing,
    uevent_vendor_product,
)

BLUETOOTH_UNIT = "bluetooth"
BLUETOOTH_DAEMON = "bluetoothd"

logger = get_logger(__name__)


class BluetoothHost:
    """One method per external fact the checks and recovery actions need."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        sysfs_root: str | Path = "/sys",
        privilege: PrivilegeGate | None = None,
    ) -> None:
        self._runner = runner
        self._sysfs_root = Path(sysfs_root)
        self._privilege = privilege or PrivilegeGate(runner)

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    @property
    def privilege(self) -> PrivilegeGate:
        return self._privilege

    @property
    def sysfs_root(self) -> Path:
        return self._sysfs_root

    @property
    def class_bluetooth_dir(self) -> Path:
        return self._sysfs_root / "class" / "bluetooth"

    @property
    def usb_devices_dir(self) -> Path:
        return self._sysfs_root / "bus" / "usb" / "devices"

    @property
    def modules_dir(self) -> Path:
        return self._sysfs_root / "module"

    def has_tool(self, name: str) -> bool:
        return self._runner.which(name)

    def run(self, argv: Sequence[str], *, timeout: float | None = None) -> CommandResult:
        return self._runner.run(argv, timeout=timeout)

    def run_privileged(self, argv: Sequence[str], *, timeout: float | None = None) -> CommandResult:
        return self._runner.run(self._privilege.wrap(argv), timeout=timeout)

    def loaded_modules(self) -> frozenset[str] | None:
        """Module names from lsmod, or /sys/module when lsmod is unavailable."""
        if self.has_tool("lsmod"):
            result = self.run(["lsmod"])
            if result.ok:
                names = set()
                for line in result.stdout.splitlines()[1:]:
                    parts = line.split()
                    if parts:
                        names.add(parts[0])
                return frozenset(names)
        if self.modules_dir.is_dir():
            return frozenset(entry.name for entry in self.modules_dir.iterdir() if entry.is_dir())
        return None

    def controllers(self) -> tuple[Path, ...]:
        directory = self.class_bluetooth_dir
        if not directory.is_dir():
            return ()
        return tuple(sorted(entry for entry in directory.iterdir() if entry.is_dir()))

    def controller_uevent(self, controller: Path) -> dict[str, str]:
        raw = self.read_attr(controller / "device" / "uevent")
        return parse_uevent(raw) if raw else {}

    def usb_listing(self) -> tuple[UsbListingEntry, ...] | None:
        if not self.has_tool("lsusb"):
            logger.log(VERBOSE, "lsusb command not found, cannot scan USB devices")
            return None
        result = self.run(["lsusb"])
        if not result.ok:
            return None
        return parse_usb_listing(result.stdout)

    def hci_info(self, *, all_info: bool = False) -> CommandResult | None:
        if not self.has_tool("hciconfig"):
            return None
        return self.run(["hciconfig", "-a"] if all_info else ["hciconfig"])

    def controller_show(self, *, timeout: float) -> CommandResult | None:
        if not self.has_tool("bluetoothctl"):
            return None
        return self.run(["bluetoothctl", "show"], timeout=timeout)

    def has_systemctl(self) -> bool:
        return self.has_tool("systemctl")

    def service_active(self, unit: str = BLUETOOTH_UNIT) -> bool | None:
        if not self.has_systemctl():
            return None
        result = self.run(["systemctl", "is-active", unit])
        return result.returncode == 0 or result.stdout.strip() == "active"

    def service_enabled(self, unit: str) -> bool | None:
        if not self.has_systemctl():
            return None
        result = self.run(["systemctl", "is-enabled", unit])
        return result.returncode == 0 or result.stdout.strip() == "enabled"

    def legacy_service_status(self, unit: str = BLUETOOTH_UNIT) -> bool | None:
        if not self.has_tool("service"):
            return None
        return self.run(["service", unit, "status"]).ok

    def daemon_running(self, name: str = BLUETOOTH_DAEMON) -> bool | None:
        if not self.has_tool("pgrep"):
            return None
        return self.run(["pgrep", name]).ok

    def kernel_log(self) -> str | None:
        """dmesg output when privileged access is available, else None."""
        if not self.has_tool("dmesg") or not self._privilege.available:
            return None
        result = self.run_privileged(["dmesg"])
        return result.stdout if result.ok else None

    def read_attr(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError:
            return None

    def write_attr(self, path: Path, value: str) -> bool:
        """Write a sysfs attribute, escalating through ``sudo -n tee`` when needed."""
        try:
            path.write_text(value, encoding="utf-8")
            return True
        except PermissionError as exc:
            # As root, EACCES means a read-only or absent attribute.
            if self._privilege.is_root:
                logger.warning("Failed to write %r to %s: %s", value, path, exc)
                return False
            if not self._privilege.has_passwordless_sudo:
                raise PrivilegeError(f"Writing {path} requires root privileges.") from None
        except OSError as exc:
            logger.warning("Failed to write %r to %s: %s", value, path, exc)
            return False

        result = self._runner.run(["sudo", "-n", "tee", str(path)], input_text=value)
        if not result.ok:
            logger.warning("Failed to write %r to %s via sudo: %s", value, path, result.output)
        return result.ok

    def usb_device_for(self, controller: Path) -> UsbDevice | None:
        """Physical USB node backing a controller: ancestry walk, then vendor:product match."""
        device_link = controller / "device"
        if device_link.exists():
            found = find_usb_ancestor(device_link, stop=self._sysfs_root)
            if found is not None:
                return found

        ids = uevent_vendor_product(self.controller_uevent(controller))
        if ids is None:
            return None
        logger.log(VERBOSE, "Trying vendor/product search for %04x:%04x", *ids)
        return find_usb_device_by_id(self.usb_devices_dir, *ids)

    def bluetooth_usb_device(self) -> UsbDevice | None:
        for controller in self.controllers():
            device = self.usb_device_for(controller)
            if device is not None:
                return device
        return None
