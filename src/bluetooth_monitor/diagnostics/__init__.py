"""Diagnostic checks, health evaluation and installation verification."""

from .base import DiagnosticReport, DiagnosticSection, build_report
from .checks import check_functionality, check_hardware, check_modules, check_service
from .events import StatusLog
from .firmware import FirmwareScan, find_broadcom_firmware, scan_firmware
from .health import HealthEvaluator, detect_bcm_reset_failure
from .verify import verify_installation

__all__ = [
    "DiagnosticReport",
    "DiagnosticSection",
    "FirmwareScan",
    "HealthEvaluator",
    "StatusLog",
    "build_report",
    "check_functionality",
    "check_hardware",
    "check_modules",
    "check_service",
    "detect_bcm_reset_failure",
    "find_broadcom_firmware",
    "scan_firmware",
    "verify_installation",
]
