"""bluetooth_monitor package."""

from .config import (
    LoggingConfig,
    MonitorConfig,
    PathsConfig,
    RecoveryConfig,
    RuntimeConfig,
    config_to_dict,
    default_config,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
)
from .models import CheckName, CheckResult, CheckStatus, HealthReport, RecoveryStep, RecoverySummary

__all__ = [
    "CheckName",
    "CheckResult",
    "CheckStatus",
    "HealthReport",
    "LoggingConfig",
    "MonitorConfig",
    "PathsConfig",
    "RecoveryConfig",
    "RecoveryStep",
    "RecoverySummary",
    "RuntimeConfig",
    "config_to_dict",
    "default_config",
    "init_default_config",
    "load_runtime_config",
    "resolve_config_path",
]

__version__ = "1.1.0"
