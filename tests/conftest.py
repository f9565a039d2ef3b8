"""Shared fixtures: fake runner, fake sysfs, recorded sleeps."""

from __future__ import annotations

from pathlib import Path

import pytest

from bluetooth_monitor.config import PathsConfig, RecoveryConfig
from bluetooth_monitor.logging import LOGGER_NAME, VERBOSE, reset_logging
from bluetooth_monitor.recovery.base import RecoveryEnv
from bluetooth_monitor.system.executor import PrivilegeGate
from bluetooth_monitor.system.host import BluetoothHost
from bluetooth_monitor.testing import FakeCommandRunner, SleepRecorder, SysfsBuilder


@pytest.fixture(autouse=True)
def _reset_monitor_logging():
    yield
    reset_logging()


@pytest.fixture
def fake_runner() -> FakeCommandRunner:
    return FakeCommandRunner()


@pytest.fixture
def sysfs(tmp_path: Path) -> SysfsBuilder:
    return SysfsBuilder(tmp_path / "sys")


@pytest.fixture
def host(fake_runner: FakeCommandRunner, sysfs: SysfsBuilder) -> BluetoothHost:
    return BluetoothHost(
        fake_runner,
        sysfs_root=sysfs.root,
        privilege=PrivilegeGate(fake_runner, euid_fn=lambda: 0),
    )


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def paths(tmp_path: Path, sysfs: SysfsBuilder) -> PathsConfig:
    return PathsConfig(
        sysfs_root=sysfs.root,
        firmware_dir=tmp_path / "firmware",
        udev_rules_dir=tmp_path / "udev" / "rules.d",
        install_root=tmp_path / "root",
    )


@pytest.fixture
def env(host: BluetoothHost, paths: PathsConfig, sleeper: SleepRecorder) -> RecoveryEnv:
    return RecoveryEnv(host=host, settings=RecoveryConfig(), paths=paths, sleep_fn=sleeper)


@pytest.fixture
def verbose_caplog(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(VERBOSE, logger=LOGGER_NAME)
    return caplog
