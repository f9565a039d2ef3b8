"""Bluetooth firmware file discovery."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re

_BLUETOOTH_FIRMWARE_RE = re.compile(r"(\.hcd$|bluetooth|bt)", re.IGNORECASE)
_APPLE_BCM_FIRMWARE_RE = re.compile(r"(apple|05ac|8294|bcm)", re.IGNORECASE)


@dataclass(frozen=True)
class FirmwareScan:
    root: Path
    bluetooth_files: tuple[Path, ...] = ()
    apple_bcm_files: tuple[Path, ...] = ()

    @property
    def found(self) -> bool:
        return bool(self.bluetooth_files)


def scan_firmware(firmware_dir: str | Path) -> FirmwareScan:
    root = Path(firmware_dir)
    if not root.is_dir():
        return FirmwareScan(root=root)

    bluetooth_files: list[Path] = []
    for path in sorted(root.rglob("*")):
        if path.is_file() and _BLUETOOTH_FIRMWARE_RE.search(path.name):
            bluetooth_files.append(path)
    apple_bcm = [path for path in bluetooth_files if _APPLE_BCM_FIRMWARE_RE.search(path.name)]
    return FirmwareScan(root=root, bluetooth_files=tuple(bluetooth_files), apple_bcm_files=tuple(apple_bcm))


def find_broadcom_firmware(firmware_dir: str | Path) -> tuple[tuple[Path, ...], Path | None]:
    """Return ``brcm/*.hcd`` files and the first Apple/Broadcom candidate among them."""
    brcm_dir = Path(firmware_dir) / "brcm"
    if not brcm_dir.is_dir():
        return (), None
    hcd_files = tuple(sorted(path for path in brcm_dir.rglob("*.hcd") if path.is_file()))
    candidate = next((path for path in hcd_files if _APPLE_BCM_FIRMWARE_RE.search(path.name)), None)
    return hcd_files, candidate
