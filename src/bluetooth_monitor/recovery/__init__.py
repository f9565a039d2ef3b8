"""Recovery actions and the ladder that sequences them."""

from .base import RecoveryAction, RecoveryEnv
from .broadcom import fix_broadcom_reset
from .ladder import DEFAULT_ACTIONS, FULL_PLAN, RECOVERY_SUBSET, RecoveryLadder
from .modules import reload_modules
from .power import fix_power_management, udev_power_rule
from .service import restart_service
from .usb_reset import ResetMethod, power_cycle, reset_usb_device, wait_for_reenumeration

__all__ = [
    "DEFAULT_ACTIONS",
    "FULL_PLAN",
    "RECOVERY_SUBSET",
    "RecoveryAction",
    "RecoveryEnv",
    "RecoveryLadder",
    "ResetMethod",
    "fix_broadcom_reset",
    "fix_power_management",
    "power_cycle",
    "reload_modules",
    "reset_usb_device",
    "restart_service",
    "udev_power_rule",
    "wait_for_reenumeration",
]
