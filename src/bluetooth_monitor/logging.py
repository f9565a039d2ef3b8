"""Logging setup helpers for bluetooth-monitor."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

import typer

from .errors import ConfigError

LOGGER_NAME = "bluetooth_monitor"
RECOVERY_LOGGER_NAME = f"{LOGGER_NAME}.recovery"

VERBOSE = 15
RECOVERY = 25
logging.addLevelName(VERBOSE, "VERBOSE")
logging.addLevelName(RECOVERY, "RECOVERY")

EVENT_LOG_FILENAME = "bluetooth_monitor.log"
STATUS_LOG_FILENAME = "bluetooth_status.log"
RECOVERY_LOG_FILENAME = "bluetooth_recovery_actions.log"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_COLORS = {
    "ERROR": typer.colors.RED,
    "WARNING": typer.colors.YELLOW,
    "INFO": typer.colors.GREEN,
    "VERBOSE": typer.colors.BLUE,
    "RECOVERY": typer.colors.MAGENTA,
}

# Marks handlers installed by configure_logging so reconfiguration can replace them.
_HANDLER_MARK = "_bluetooth_monitor_handler"


@dataclass(frozen=True)
class LogPaths:
    log_dir: Path
    event_log: Path
    status_log: Path
    recovery_log: Path


class ConsoleFormatter(logging.Formatter):
    """Human-readable, severity-colored console lines."""

    def __init__(self, color: bool = True) -> None:
        super().__init__(datefmt=TIMESTAMP_FORMAT)
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        stamp = self.formatTime(record, self.datefmt)
        prefix = f"{record.levelname} [{stamp}]:"
        if self._color:
            prefix = typer.style(prefix, fg=_LEVEL_COLORS.get(record.levelname), bold=False)
        return f"{prefix} {record.getMessage()}"


def log_paths_for(log_dir: str | Path) -> LogPaths:
    root = Path(log_dir).expanduser()
    return LogPaths(
        log_dir=root,
        event_log=root / EVENT_LOG_FILENAME,
        status_log=root / STATUS_LOG_FILENAME,
        recovery_log=root / RECOVERY_LOG_FILENAME,
    )


def configure_logging(log_dir: str | Path, *, verbose: bool = False, console: bool = True) -> LogPaths:
    """Install event/recovery file handlers plus a colored console handler."""
    paths = log_paths_for(log_dir)
    try:
        paths.log_dir.mkdir(parents=True, exist_ok=True)
        for path in (paths.event_log, paths.status_log, paths.recovery_log):
            path.touch(exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Failed to create log directory at {paths.log_dir}: {exc}") from exc

    reset_logging()

    logger = get_logger()
    logger.setLevel(VERBOSE if verbose else logging.INFO)

    event_handler = logging.FileHandler(paths.event_log, encoding="utf-8")
    event_handler.setFormatter(
        logging.Formatter("[%(levelname)s] [%(asctime)s] %(message)s", datefmt=TIMESTAMP_FORMAT)
    )
    _install(logger, event_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(ConsoleFormatter())
        _install(logger, console_handler)

    recovery_handler = logging.FileHandler(paths.recovery_log, encoding="utf-8")
    recovery_handler.setLevel(RECOVERY)
    recovery_handler.setFormatter(logging.Formatter("[%(asctime)s] %(message)s", datefmt=TIMESTAMP_FORMAT))
    _install(get_recovery_logger(), recovery_handler)
    return paths


def reset_logging() -> None:
    for logger in (get_logger(), get_recovery_logger()):
        for handler in list(logger.handlers):
            if getattr(handler, _HANDLER_MARK, False):
                logger.removeHandler(handler)
                handler.close()


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or LOGGER_NAME)


def get_recovery_logger() -> logging.Logger:
    return logging.getLogger(RECOVERY_LOGGER_NAME)


def log_recovery(message: str, *args: object) -> None:
    get_recovery_logger().log(RECOVERY, message, *args)


def _install(logger: logging.Logger, handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_MARK, True)
    logger.addHandler(handler)
