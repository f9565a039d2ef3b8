"""Build the runtime object graph from a RuntimeConfig."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import time as time_module

from bluetooth_monitor.config import RuntimeConfig
from bluetooth_monitor.diagnostics.events import StatusLog
from bluetooth_monitor.diagnostics.health import HealthEvaluator
from bluetooth_monitor.logging import LogPaths, configure_logging
from bluetooth_monitor.recovery.base import RecoveryEnv
from bluetooth_monitor.recovery.ladder import RecoveryLadder
from bluetooth_monitor.system.base import CommandRunner
from bluetooth_monitor.system.executor import EuidFn, PrivilegeGate, SubprocessRunner
from bluetooth_monitor.system.host import BluetoothHost

SleepFn = Callable[[float], None]


@dataclass(frozen=True)
class MonitorServices:
    config: RuntimeConfig
    log_paths: LogPaths
    host: BluetoothHost
    status_log: StatusLog
    evaluator: HealthEvaluator
    ladder: RecoveryLadder

    @property
    def env(self) -> RecoveryEnv:
        return self.ladder.env


def build_services(
    config: RuntimeConfig,
    *,
    runner: CommandRunner | None = None,
    euid_fn: EuidFn | None = None,
    sleep_fn: SleepFn | None = None,
    console: bool = True,
) -> MonitorServices:
    log_paths = configure_logging(config.logging.log_dir, verbose=config.monitor.verbose, console=console)
    resolved_runner = runner or SubprocessRunner()
    host = BluetoothHost(
        resolved_runner,
        sysfs_root=config.paths.sysfs_root,
        privilege=PrivilegeGate(resolved_runner, euid_fn=euid_fn),
    )
    status_log = StatusLog(log_paths.status_log)
    env = RecoveryEnv(
        host=host,
        settings=config.recovery,
        paths=config.paths,
        sleep_fn=sleep_fn or time_module.sleep,
    )
    return MonitorServices(
        config=config,
        log_paths=log_paths,
        host=host,
        status_log=status_log,
        evaluator=HealthEvaluator(host, config.recovery, status_log=status_log),
        ladder=RecoveryLadder(env),
    )
