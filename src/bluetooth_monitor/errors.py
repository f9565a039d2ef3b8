"""Error taxonomy for stable module boundaries."""


class BluetoothMonitorError(Exception):
    """Base exception for bluetooth-monitor."""


class ConfigError(BluetoothMonitorError):
    """Raised when configuration is invalid or the log directory is unusable."""


class PrivilegeError(BluetoothMonitorError):
    """Raised when an action needs root or passwordless sudo and neither is available."""


class CommandError(BluetoothMonitorError):
    """Raised when a mutating action cannot find the external tool it needs."""


class RecoveryError(BluetoothMonitorError):
    """Raised for recovery ladder misuse (unknown steps, empty plans)."""


class SchedulerError(BluetoothMonitorError):
    """Raised for monitor loop and polling bound failures."""
