"""Health evaluation, status-log lines and the Broadcom signature detector."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import re

from bluetooth_monitor.config import RecoveryConfig
from bluetooth_monitor.diagnostics.events import StatusLog
from bluetooth_monitor.diagnostics.health import HealthEvaluator, detect_bcm_reset_failure
from bluetooth_monitor.models import CheckName, CheckStatus
from bluetooth_monitor.system.executor import PrivilegeGate
from bluetooth_monitor.system.host import BluetoothHost
from bluetooth_monitor.testing import FakeCommandRunner, SysfsBuilder, fixed_now

APPLE_LSUSB = "Bus 001 Device 003: ID 05ac:8294 Apple, Inc. Bluetooth USB Host Controller"


def _healthy(fake_runner: FakeCommandRunner, sysfs: SysfsBuilder) -> None:
    sysfs.add_module("bluetooth")
    sysfs.add_module("btusb")
    sysfs.add_controller()
    fake_runner.script(["systemctl", "is-active", "bluetooth"], stdout="active")
    fake_runner.script(["bluetoothctl", "show"], stdout="Controller 00:1A:7D:DA:71:13 (public)")


def test_evaluate_healthy_host(fake_runner: FakeCommandRunner, sysfs: SysfsBuilder, host: BluetoothHost) -> None:
    _healthy(fake_runner, sysfs)
    report = HealthEvaluator(host, RecoveryConfig()).evaluate()
    assert report.healthy
    assert not report.recovery_needed
    assert not report.bcm_reset_detected
    assert [check.name for check in report.checks] == [
        CheckName.MODULES,
        CheckName.HARDWARE,
        CheckName.SERVICE,
        CheckName.FUNCTIONALITY,
    ]


def test_evaluate_runs_every_check_even_when_all_fail(fake_runner: FakeCommandRunner, host: BluetoothHost) -> None:
    fake_runner.script(["lsmod"], stdout="Module Size Used by\n")
    fake_runner.script(["hciconfig"], returncode=1, stderr="No such device")
    fake_runner.script(["systemctl", "is-active", "bluetooth"], returncode=3, stdout="inactive")
    fake_runner.script(["bluetoothctl", "show"], stdout="No default controller available")

    report = HealthEvaluator(host, RecoveryConfig()).evaluate()
    assert [status for _name, status in report.verdicts()] == [CheckStatus.FAIL] * 4
    assert report.recovery_needed
    assert fake_runner.called("bluetoothctl", "show")


def test_unknown_checks_do_not_require_recovery(sysfs: SysfsBuilder, host: BluetoothHost) -> None:
    sysfs.add_module("bluetooth")
    sysfs.add_module("btusb")
    sysfs.add_controller()
    report = HealthEvaluator(host, RecoveryConfig()).evaluate()
    assert report.get(CheckName.SERVICE).status is CheckStatus.UNKNOWN
    assert report.get(CheckName.FUNCTIONALITY).status is CheckStatus.UNKNOWN
    assert not report.recovery_needed
    assert not report.healthy


def test_consecutive_evaluations_produce_identical_verdicts(
    fake_runner: FakeCommandRunner, sysfs: SysfsBuilder, host: BluetoothHost
) -> None:
    sysfs.add_module("bluetooth")
    fake_runner.script(["systemctl", "is-active", "bluetooth"], stdout="active")
    fake_runner.script(["bluetoothctl", "show"], stdout="No default controller available")
    evaluator = HealthEvaluator(host, RecoveryConfig())

    first = evaluator.evaluate()
    second = evaluator.evaluate()
    assert first.verdicts() == second.verdicts()
    assert first.recovery_needed and second.recovery_needed


def test_status_log_gets_one_line_per_check_and_a_summary(
    tmp_path: Path, fake_runner: FakeCommandRunner, sysfs: SysfsBuilder, host: BluetoothHost
) -> None:
    sysfs.add_module("bluetooth")
    sysfs.add_module("btusb")
    sysfs.add_controller()
    fake_runner.script(["systemctl", "is-active", "bluetooth"], returncode=3, stdout="inactive")
    fake_runner.script(["bluetoothctl", "show"], stdout="Controller 00:1A:7D:DA:71:13 (public)")
    status_log = StatusLog(tmp_path / "bluetooth_status.log")
    moment = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    HealthEvaluator(host, RecoveryConfig(), status_log=status_log, now_fn=fixed_now(moment)).evaluate()

    lines = status_log.path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 5
    stamp = r"\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\]"
    assert re.match(stamp + r" MODULES:OK ", lines[0])
    assert re.match(stamp + r" HARDWARE:OK present and detected", lines[1])
    assert re.match(stamp + r" SERVICE:FAIL ", lines[2])
    assert re.match(stamp + r" FUNCTIONALITY:OK Controller", lines[3])
    assert re.fullmatch(
        stamp + r" MODULES:OK HARDWARE:OK SERVICE:FAIL FUNCTIONALITY:OK recovery_needed=true bcm_reset=false",
        lines[4],
    )


def test_bcm_reset_detected_from_kernel_log(fake_runner: FakeCommandRunner, host: BluetoothHost) -> None:
    fake_runner.script(["dmesg"], stdout="[ 3.2] Bluetooth: hci0: BCM: Reset failed (-110)")
    assert detect_bcm_reset_failure(host)


def test_bcm_reset_detected_when_apple_controller_is_down(
    fake_runner: FakeCommandRunner, host: BluetoothHost
) -> None:
    fake_runner.script(["lsusb"], stdout=APPLE_LSUSB)
    fake_runner.script(["hciconfig", "-a"], stdout="hci0:\tType: Primary  Bus: USB\n\tDOWN")
    assert detect_bcm_reset_failure(host)


def test_bcm_reset_not_detected_when_apple_controller_runs(
    fake_runner: FakeCommandRunner, host: BluetoothHost
) -> None:
    fake_runner.script(["dmesg"], stdout="nothing interesting")
    fake_runner.script(["lsusb"], stdout=APPLE_LSUSB)
    fake_runner.script(["hciconfig", "-a"], stdout="hci0:\tType: Primary  Bus: USB\n\tUP RUNNING")
    assert not detect_bcm_reset_failure(host)


def test_bcm_kernel_log_heuristic_skipped_without_privilege(sysfs: SysfsBuilder) -> None:
    runner = FakeCommandRunner().script(["dmesg"], stdout="BCM: Reset failed")
    host = BluetoothHost(runner, sysfs_root=sysfs.root, privilege=PrivilegeGate(runner, euid_fn=lambda: 1000))
    assert not detect_bcm_reset_failure(host)
