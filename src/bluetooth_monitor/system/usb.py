"""USB listing parsing and sysfs USB device resolution."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re

# Apple Bluetooth USB Host Controller carrying the Broadcom chip with the reset bug.
APPLE_BCM_USB_ID = "05ac:8294"

KNOWN_BLUETOOTH_IDS = (
    APPLE_BCM_USB_ID,
    "05ac:8290",  # Apple Bluetooth Host Controller
    "0a5c:21e8",  # Broadcom Bluetooth Controller
    "0a5c:21e6",  # Broadcom Bluetooth USB device
)
KNOWN_BLUETOOTH_VENDORS = (
    "0a12",  # Cambridge Silicon Radio
    "8087",  # Intel
    "0489",  # Foxconn / Hon Hai
    "0b05",  # ASUSTek
    "413c",  # Dell
)

_LSUSB_LINE_RE = re.compile(
    r"^Bus\s+(?P<bus>\d+)\s+Device\s+(?P<device>\d+):\s+ID\s+"
    r"(?P<vendor>[0-9a-fA-F]{4}):(?P<product>[0-9a-fA-F]{4})\s*(?P<description>.*)$"
)
_UEVENT_PRODUCT_RE = re.compile(r"^(?P<vendor>[0-9a-fA-F]+)/(?P<product>[0-9a-fA-F]+)(?:/.*)?$")


@dataclass(frozen=True)
class UsbListingEntry:
    bus: int
    device: int
    vendor_id: str
    product_id: str
    description: str
    raw: str

    @property
    def usb_id(self) -> str:
        return f"{self.vendor_id}:{self.product_id}"


@dataclass(frozen=True)
class UsbDevice:
    path: Path
    vendor_id: str
    product_id: str
    busnum: int | None = None
    devnum: int | None = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def usb_id(self) -> str:
        return f"{self.vendor_id}:{self.product_id}"

    @property
    def dev_node(self) -> Path | None:
        if self.busnum is None or self.devnum is None:
            return None
        return Path("/dev/bus/usb") / f"{self.busnum:03d}" / f"{self.devnum:03d}"


def parse_usb_listing(text: str) -> tuple[UsbListingEntry, ...]:
    entries: list[UsbListingEntry] = []
    for line in text.splitlines():
        stripped = line.strip()
        match = _LSUSB_LINE_RE.match(stripped)
        if match is None:
            continue
        entries.append(
            UsbListingEntry(
                bus=int(match.group("bus")),
                device=int(match.group("device")),
                vendor_id=match.group("vendor").lower(),
                product_id=match.group("product").lower(),
                description=match.group("description").strip(),
                raw=stripped,
            )
        )
    return tuple(entries)


def is_bluetooth_entry(entry: UsbListingEntry) -> bool:
    if entry.usb_id in KNOWN_BLUETOOTH_IDS:
        return True
    if entry.vendor_id in KNOWN_BLUETOOTH_VENDORS:
        return True
    return "bluetooth" in entry.description.lower()


def find_bluetooth_entries(entries: tuple[UsbListingEntry, ...]) -> tuple[UsbListingEntry, ...]:
    return tuple(entry for entry in entries if is_bluetooth_entry(entry))


def find_entry(entries: tuple[UsbListingEntry, ...], usb_id: str) -> UsbListingEntry | None:
    wanted = usb_id.lower()
    for entry in entries:
        if entry.usb_id == wanted:
            return entry
    return None


def parse_uevent(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip()
    return values


def uevent_vendor_product(uevent: dict[str, str]) -> tuple[int, int] | None:
    """Decode ``PRODUCT=5ac/8294/...``; ids there drop leading zeros."""
    raw = uevent.get("PRODUCT")
    if not raw:
        return None
    match = _UEVENT_PRODUCT_RE.match(raw)
    if match is None:
        return None
    return int(match.group("vendor"), 16), int(match.group("product"), 16)


def usb_device_at(path: Path) -> UsbDevice | None:
    vendor = _read(path / "idVendor")
    product = _read(path / "idProduct")
    if not vendor or not product:
        return None
    return UsbDevice(
        path=path,
        vendor_id=vendor.lower(),
        product_id=product.lower(),
        busnum=_read_int(path / "busnum"),
        devnum=_read_int(path / "devnum"),
    )


def find_usb_ancestor(start: Path, *, stop: Path) -> UsbDevice | None:
    """Walk up from ``start`` until a directory with USB identity files appears."""
    current = start.resolve()
    boundary = stop.resolve()
    while current != boundary and current.parent != current:
        device = usb_device_at(current)
        if device is not None:
            return device
        current = current.parent
    return None


def find_power_ancestor(start: Path, *, stop: Path) -> Path | None:
    current = start.resolve()
    boundary = stop.resolve()
    while current != boundary and current.parent != current:
        if (current / "power").is_dir():
            return current
        current = current.parent
    return None


def iter_usb_devices(usb_devices_dir: Path) -> tuple[UsbDevice, ...]:
    if not usb_devices_dir.is_dir():
        return ()
    devices: list[UsbDevice] = []
    for entry in sorted(usb_devices_dir.iterdir()):
        device = usb_device_at(entry)
        if device is not None:
            devices.append(device)
    return tuple(devices)


def find_usb_device_by_id(usb_devices_dir: Path, vendor: int, product: int) -> UsbDevice | None:
    for device in iter_usb_devices(usb_devices_dir):
        if _hex(device.vendor_id) == vendor and _hex(device.product_id) == product:
            return device
    return None


def find_usb_device_by_address(usb_devices_dir: Path, bus: int, device_number: int) -> UsbDevice | None:
    for device in iter_usb_devices(usb_devices_dir):
        if device.busnum == bus and device.devnum == device_number:
            return device
    return None


def _hex(value: str) -> int | None:
    try:
        return int(value, 16)
    except ValueError:
        return None


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError:
        return None


def _read_int(path: Path) -> int | None:
    raw = _read(path)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
