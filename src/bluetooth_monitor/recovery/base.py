"""Recovery interfaces."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import time as time_module
from typing import Protocol

from bluetooth_monitor.config import PathsConfig, RecoveryConfig
from bluetooth_monitor.models import RecoveryActionResult
from bluetooth_monitor.system.host import BluetoothHost

SleepFn = Callable[[float], None]


@dataclass(frozen=True)
class RecoveryEnv:
    """Everything a recovery action may touch: the host, its timings and its paths."""

    host: BluetoothHost
    settings: RecoveryConfig = field(default_factory=RecoveryConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    sleep_fn: SleepFn = time_module.sleep

    def pause(self, seconds: float) -> None:
        if seconds > 0:
            self.sleep_fn(seconds)


class RecoveryAction(Protocol):
    def __call__(self, env: RecoveryEnv) -> RecoveryActionResult:
        """Attempt one remediation and report its outcome."""
