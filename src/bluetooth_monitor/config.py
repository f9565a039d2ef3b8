"""Shared configuration contracts and validation helpers for bluetooth-monitor."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
import tomllib
from typing import Any

from platformdirs import user_config_dir, user_log_dir

from .errors import ConfigError

APP_NAME = "bluetooth-monitor"
CONFIG_ENV_VAR = "BLUETOOTH_MONITOR_CONFIG"
DEFAULT_CONFIG_FILENAME = "config.toml"

DEFAULT_CONFIG_TEMPLATE = """[monitor]
interval_seconds = 60
auto_recovery = true
verbose = false

[logging]
# log_dir = "/var/log/bluetooth-monitor"

[paths]
sysfs_root = "/sys"
firmware_dir = "/lib/firmware"
udev_rules_dir = "/etc/udev/rules.d"
install_root = "/"

[recovery]
functionality_timeout_seconds = 5
authorized_settle_seconds = 2
unbind_settle_seconds = 3
unbind_wait_seconds = 15
reset_utility_wait_seconds = 20
suspend_settle_seconds = 5
suspend_wait_seconds = 15
service_pause_seconds = 2
module_pause_seconds = 2
broadcom_settle_seconds = 5
verify_pause_seconds = 3
poll_interval_seconds = 1
progress_every_seconds = 5
"""


def _default_log_dir() -> Path:
    return Path(user_log_dir(APP_NAME, appauthor=False))


@dataclass(frozen=True)
class MonitorConfig:
    interval_seconds: int = 60
    auto_recovery: bool = True
    verbose: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    log_dir: Path = field(default_factory=_default_log_dir)


@dataclass(frozen=True)
class PathsConfig:
    sysfs_root: Path = Path("/sys")
    firmware_dir: Path = Path("/lib/firmware")
    udev_rules_dir: Path = Path("/etc/udev/rules.d")
    install_root: Path = Path("/")


@dataclass(frozen=True)
class RecoveryConfig:
    functionality_timeout_seconds: float = 5
    authorized_settle_seconds: float = 2
    unbind_settle_seconds: float = 3
    unbind_wait_seconds: float = 15
    reset_utility_wait_seconds: float = 20
    suspend_settle_seconds: float = 5
    suspend_wait_seconds: float = 15
    service_pause_seconds: float = 2
    module_pause_seconds: float = 2
    broadcom_settle_seconds: float = 5
    verify_pause_seconds: float = 3
    poll_interval_seconds: float = 1
    progress_every_seconds: float = 5


@dataclass(frozen=True)
class RuntimeConfig:
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    recovery: RecoveryConfig = field(default_factory=RecoveryConfig)


def default_config() -> RuntimeConfig:
    return RuntimeConfig()


def default_config_toml() -> str:
    return DEFAULT_CONFIG_TEMPLATE


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    if config_path:
        return Path(config_path).expanduser()

    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()

    config_dir = Path(user_config_dir(APP_NAME, appauthor=False))
    return config_dir / DEFAULT_CONFIG_FILENAME


def init_default_config(config_path: str | Path | None = None, force: bool = False) -> Path:
    path = resolve_config_path(config_path)
    if path.exists() and path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; expected a TOML file path (for example '{path / DEFAULT_CONFIG_FILENAME}')."
        )
    if path.exists() and not force:
        raise ConfigError(
            f"Config file already exists at '{path}'. Re-run with --force to overwrite."
        )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(default_config_toml(), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Could not write config file at '{path}': {exc}. "
            "Check path permissions or choose a writable location with `--path`."
        ) from exc
    return path


def load_runtime_config(config_path: str | Path | None = None, *, required: bool = True) -> RuntimeConfig:
    """Load config from TOML; with ``required=False`` a missing file yields defaults."""
    path = resolve_config_path(config_path)
    if not path.exists():
        if not required:
            return default_config()
        raise ConfigError(
            f"Config file not found at '{path}'. Run `bluetooth-monitor config init --path \"{path}\"` to generate defaults."
        )
    if path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; pass a file path ending in '{DEFAULT_CONFIG_FILENAME}'."
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Could not read config file '{path}': {exc}. "
            "Check file permissions and that the path points to a readable TOML file."
        ) from exc
    raw = _load_toml(text, path)
    return _parse_runtime_config(raw)


def config_to_dict(config: RuntimeConfig) -> dict[str, Any]:
    payload = asdict(config)
    for section in payload.values():
        for key, value in section.items():
            if isinstance(value, Path):
                section[key] = str(value)
    return payload


def _load_toml(text: str, path: Path) -> dict[str, Any]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Config file '{path}' contains invalid TOML: {exc}. "
            "Fix the syntax or regenerate defaults with `bluetooth-monitor config init --force`."
        ) from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must parse to a TOML table.")
    return data


def _parse_runtime_config(data: dict[str, Any]) -> RuntimeConfig:
    monitor_raw = _expect_table(data, "monitor", default={})
    logging_raw = _expect_table(data, "logging", default={})
    paths_raw = _expect_table(data, "paths", default={})
    recovery_raw = _expect_table(data, "recovery", default={})

    monitor_config = MonitorConfig(
        interval_seconds=_expect_positive_int(monitor_raw, "monitor.interval_seconds", default=60),
        auto_recovery=_expect_bool(monitor_raw, "monitor.auto_recovery", default=True),
        verbose=_expect_bool(monitor_raw, "monitor.verbose", default=False),
    )

    if "log_dir" in logging_raw:
        logging_config = LoggingConfig(log_dir=_expect_path(logging_raw, "logging.log_dir", default=None))
    else:
        logging_config = LoggingConfig()

    defaults = PathsConfig()
    paths_config = PathsConfig(
        sysfs_root=_expect_path(paths_raw, "paths.sysfs_root", default=defaults.sysfs_root),
        firmware_dir=_expect_path(paths_raw, "paths.firmware_dir", default=defaults.firmware_dir),
        udev_rules_dir=_expect_path(paths_raw, "paths.udev_rules_dir", default=defaults.udev_rules_dir),
        install_root=_expect_path(paths_raw, "paths.install_root", default=defaults.install_root),
    )

    recovery_defaults = asdict(RecoveryConfig())
    unknown = sorted(set(recovery_raw) - set(recovery_defaults))
    if unknown:
        raise ConfigError(f"Unknown keys in [recovery]: {', '.join(unknown)}.")
    recovery_config = RecoveryConfig(
        **{
            key: _expect_non_negative_number(recovery_raw, f"recovery.{key}", default=value)
            for key, value in recovery_defaults.items()
        }
    )
    if recovery_config.functionality_timeout_seconds <= 0:
        raise ConfigError("Invalid value for 'recovery.functionality_timeout_seconds': expected positive number.")
    if recovery_config.poll_interval_seconds <= 0:
        raise ConfigError("Invalid value for 'recovery.poll_interval_seconds': expected positive number.")
    if recovery_config.progress_every_seconds <= 0:
        raise ConfigError("Invalid value for 'recovery.progress_every_seconds': expected positive number.")

    return RuntimeConfig(
        monitor=monitor_config,
        logging=logging_config,
        paths=paths_config,
        recovery=recovery_config,
    )


def _expect_table(data: dict[str, Any], key: str, default: dict[str, Any]) -> dict[str, Any]:
    value = data.get(key, default)
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid [{key}] table: expected table, got {type(value).__name__}.")
    return value


def _expect_path(data: dict[str, Any], key: str, default: Path | None) -> Path:
    field_name = key.split(".")[-1]
    if field_name in data:
        value = data[field_name]
    else:
        if default is None:
            raise ConfigError(f"Missing required value '{key}'.")
        return default

    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"Invalid value for '{key}': expected non-empty path string.")
    return Path(value).expanduser()


def _expect_positive_int(data: dict[str, Any], key: str, default: int) -> int:
    field_name = key.split(".")[-1]
    value = data.get(field_name, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"Invalid value for '{key}': expected positive integer.")
    return value


def _expect_non_negative_number(data: dict[str, Any], key: str, default: float) -> float:
    field_name = key.split(".")[-1]
    value = data.get(field_name, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(f"Invalid value for '{key}': expected non-negative number.")
    return float(value)


def _expect_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    field_name = key.split(".")[-1]
    value = data.get(field_name, default)
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid value for '{key}': expected boolean true/false.")
    return value
