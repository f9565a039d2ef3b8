"""Kernel module reload ordering and failure handling."""

from __future__ import annotations

import pytest

from bluetooth_monitor.errors import CommandError
from bluetooth_monitor.recovery.base import RecoveryEnv
from bluetooth_monitor.recovery.modules import reload_modules
from bluetooth_monitor.testing import FakeCommandRunner, SleepRecorder

LSMOD_BOTH = "Module                  Size  Used by\nbtusb 57344 0\nbluetooth 577536 1 btusb\n"


def test_unloads_dependents_first_and_loads_core_first(
    fake_runner: FakeCommandRunner, env: RecoveryEnv, sleeper: SleepRecorder
) -> None:
    fake_runner.script(["lsmod"], stdout=LSMOD_BOTH)
    fake_runner.script(["modprobe"])

    result = reload_modules(env)

    assert result.ok
    assert fake_runner.calls_matching("modprobe") == [
        ("modprobe", "-r", "btusb"),
        ("modprobe", "-r", "bluetooth"),
        ("modprobe", "bluetooth"),
        ("modprobe", "btusb"),
    ]
    assert sleeper.calls == [env.settings.module_pause_seconds]


def test_modules_not_loaded_are_only_loaded(fake_runner: FakeCommandRunner, env: RecoveryEnv) -> None:
    fake_runner.script(["lsmod"], stdout="Module                  Size  Used by\n")
    fake_runner.script(["modprobe"])

    assert reload_modules(env).ok
    assert not fake_runner.called("modprobe", "-r")


def test_unload_failure_is_not_fatal(fake_runner: FakeCommandRunner, env: RecoveryEnv) -> None:
    fake_runner.script(["lsmod"], stdout=LSMOD_BOTH)
    fake_runner.script(["modprobe"])
    fake_runner.script(["modprobe", "-r"], returncode=1, stderr="Module btusb is in use")
    assert reload_modules(env).ok


def test_load_failure_fails_the_action(fake_runner: FakeCommandRunner, env: RecoveryEnv) -> None:
    fake_runner.script(["modprobe"])
    fake_runner.script(["modprobe", "btusb"], returncode=1, stderr="FATAL: Module btusb not found")

    result = reload_modules(env)

    assert not result.ok
    assert result.detail == "modprobe btusb failed"


def test_missing_modprobe_raises(env: RecoveryEnv) -> None:
    with pytest.raises(CommandError, match="modprobe"):
        reload_modules(env)
