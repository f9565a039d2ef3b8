"""USB power management pinning and resume behavior."""

from __future__ import annotations

from pathlib import Path

import pytest

from bluetooth_monitor.errors import PrivilegeError
from bluetooth_monitor.models import RecoveryStep
from bluetooth_monitor.recovery.base import RecoveryEnv
from bluetooth_monitor.recovery.power import (
    UDEV_POWER_RULE_FILENAME,
    fix_power_management,
    power_managed_devices,
    udev_power_rule,
)
from bluetooth_monitor.system.executor import PrivilegeGate
from bluetooth_monitor.system.host import BluetoothHost
from bluetooth_monitor.testing import FakeCommandRunner, SysfsBuilder


def test_auto_power_control_is_pinned_on(sysfs: SysfsBuilder, env: RecoveryEnv, verbose_caplog) -> None:
    device_dir = sysfs.add_controller(power_control="auto")

    result = fix_power_management(env)

    assert result.ok
    assert result.step is RecoveryStep.POWER_MANAGEMENT
    assert (device_dir / "power" / "control").read_text(encoding="utf-8").strip() == "on"
    assert "Power control is now set to 'on'" in verbose_caplog.text


def test_udev_rule_written_and_reloaded_when_udevadm_present(
    sysfs: SysfsBuilder, fake_runner: FakeCommandRunner, env: RecoveryEnv
) -> None:
    sysfs.add_controller(power_control="auto")
    fake_runner.script(["udevadm"])

    assert fix_power_management(env).ok

    rule = env.paths.udev_rules_dir / UDEV_POWER_RULE_FILENAME
    assert rule.read_text(encoding="utf-8") == udev_power_rule("05ac", "8294")
    assert ("udevadm", "control", "--reload-rules") in fake_runner.calls


def test_no_udev_rule_without_udevadm(sysfs: SysfsBuilder, env: RecoveryEnv) -> None:
    sysfs.add_controller(power_control="auto")
    assert fix_power_management(env).ok
    assert not (env.paths.udev_rules_dir / UDEV_POWER_RULE_FILENAME).exists()


def test_already_on_counts_as_success(sysfs: SysfsBuilder, env: RecoveryEnv, verbose_caplog) -> None:
    sysfs.add_controller(power_control="on")
    assert fix_power_management(env).ok
    assert "Power management already disabled" in verbose_caplog.text


def test_unknown_power_state_fails(sysfs: SysfsBuilder, env: RecoveryEnv) -> None:
    sysfs.add_controller(power_control="disabled")
    assert not fix_power_management(env).ok


def test_suspended_device_is_resumed(sysfs: SysfsBuilder, env: RecoveryEnv) -> None:
    device_dir = sysfs.add_controller(power_control="on", runtime_status="suspended", runtime_suspended="1")
    assert fix_power_management(env).ok
    assert (device_dir / "power" / "runtime_suspended").read_text(encoding="utf-8") == "0"


def test_missing_resume_attribute_is_skipped(sysfs: SysfsBuilder, env: RecoveryEnv, verbose_caplog) -> None:
    device_dir = sysfs.add_controller(power_control="auto", runtime_status="suspended")

    result = fix_power_management(env)

    assert result.ok
    assert not (device_dir / "power" / "runtime_suspended").exists()
    assert "no runtime_suspended attribute" in verbose_caplog.text


def test_rejected_resume_write_keeps_pinned_result(
    monkeypatch: pytest.MonkeyPatch, sysfs: SysfsBuilder, env: RecoveryEnv
) -> None:
    device_dir = sysfs.add_controller(power_control="auto", runtime_status="suspended", runtime_suspended="1")
    original_write_text = Path.write_text

    def write_text(self: Path, *args: object, **kwargs: object) -> int:
        if self.name == "runtime_suspended":
            raise PermissionError(13, "Permission denied")
        return original_write_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "write_text", write_text)

    result = fix_power_management(env)

    assert result.ok
    assert result.detail == f"power/control=on for {device_dir.name}"
    assert (device_dir / "power" / "control").read_text(encoding="utf-8").strip() == "on"


def test_no_power_managed_devices_fails(env: RecoveryEnv) -> None:
    assert power_managed_devices(env) == ()
    result = fix_power_management(env)
    assert not result.ok
    assert "No Bluetooth USB devices" in result.detail


def test_shared_usb_parent_is_listed_once(sysfs: SysfsBuilder, env: RecoveryEnv) -> None:
    device_dir = sysfs.add_controller("hci0")
    (sysfs.class_bluetooth_dir / "hci1").mkdir()
    (sysfs.class_bluetooth_dir / "hci1" / "device").symlink_to(device_dir / "1-3:1.0")
    assert power_managed_devices(env) == (device_dir.resolve(),)


def test_unprivileged_caller_raises(sysfs: SysfsBuilder, paths) -> None:
    sysfs.add_controller()
    runner = FakeCommandRunner()
    host = BluetoothHost(runner, sysfs_root=sysfs.root, privilege=PrivilegeGate(runner, euid_fn=lambda: 1000))
    with pytest.raises(PrivilegeError, match="Cannot modify power management settings"):
        fix_power_management(RecoveryEnv(host=host, paths=paths))
