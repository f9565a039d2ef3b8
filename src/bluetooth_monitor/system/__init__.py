"""External command and sysfs access."""

from .base import CommandResult, CommandRunner
from .executor import PrivilegeGate, SubprocessRunner
from .host import BLUETOOTH_UNIT, BluetoothHost
from .usb import (
    APPLE_BCM_USB_ID,
    KNOWN_BLUETOOTH_IDS,
    UsbDevice,
    UsbListingEntry,
    find_bluetooth_entries,
    parse_usb_listing,
)

__all__ = [
    "APPLE_BCM_USB_ID",
    "BLUETOOTH_UNIT",
    "BluetoothHost",
    "CommandResult",
    "CommandRunner",
    "KNOWN_BLUETOOTH_IDS",
    "PrivilegeGate",
    "SubprocessRunner",
    "UsbDevice",
    "UsbListingEntry",
    "find_bluetooth_entries",
    "parse_usb_listing",
]
