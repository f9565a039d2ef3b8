"""The four diagnostic checks as functions of scripted host state."""

from __future__ import annotations

import logging

import pytest

from bluetooth_monitor.diagnostics.checks import (
    NO_HARDWARE_DETAIL,
    check_functionality,
    check_hardware,
    check_modules,
    check_service,
)
from bluetooth_monitor.models import CheckName, CheckStatus
from bluetooth_monitor.system.host import BluetoothHost
from bluetooth_monitor.testing import FakeCommandRunner, SysfsBuilder


def test_modules_ok_when_bluetooth_and_btusb_loaded(sysfs: SysfsBuilder, host: BluetoothHost) -> None:
    sysfs.add_module("bluetooth")
    sysfs.add_module("btusb")
    result = check_modules(host)
    assert result.name is CheckName.MODULES
    assert result.status is CheckStatus.OK


def test_modules_partial_state_fails(sysfs: SysfsBuilder, host: BluetoothHost) -> None:
    sysfs.add_module("bluetooth")
    result = check_modules(host)
    assert result.status is CheckStatus.FAIL
    assert "btusb" in result.detail


def test_modules_bound_btusb_driver_counts_as_loaded(sysfs: SysfsBuilder, host: BluetoothHost) -> None:
    sysfs.add_module("bluetooth")
    sysfs.add_controller(driver="btusb")
    assert check_modules(host).status is CheckStatus.OK


def test_modules_neither_loaded_fails(fake_runner: FakeCommandRunner, host: BluetoothHost) -> None:
    fake_runner.script(["lsmod"], stdout="Module                  Size  Used by\nsnd 1 0\n")
    result = check_modules(host)
    assert result.status is CheckStatus.FAIL
    assert "Neither" in result.detail


def test_modules_unknown_without_module_source(host: BluetoothHost) -> None:
    assert check_modules(host).status is CheckStatus.UNKNOWN


def test_hardware_ok_on_apple_bluetooth_listing(fake_runner: FakeCommandRunner, host: BluetoothHost) -> None:
    fake_runner.script(
        ["lsusb"],
        stdout="Bus 001 Device 003: ID 05ac:8294 Apple, Inc. Bluetooth USB Host Controller",
    )
    result = check_hardware(host)
    assert result.status is CheckStatus.OK
    assert "present and detected" in result.detail
    assert "05ac:8294" in result.detail


def test_hardware_fails_with_unrelated_vendor_and_no_hci_device(
    fake_runner: FakeCommandRunner, host: BluetoothHost
) -> None:
    fake_runner.script(["lsusb"], stdout="Bus 001 Device 005: ID 046d:c52b Logitech, Inc. Unifying Receiver")
    fake_runner.script(["hciconfig"], returncode=1, stderr="Can't get device info: No such device")
    result = check_hardware(host)
    assert result.status is CheckStatus.FAIL
    assert result.detail == NO_HARDWARE_DETAIL


def test_hardware_prefers_sysfs_controllers(
    fake_runner: FakeCommandRunner, sysfs: SysfsBuilder, host: BluetoothHost
) -> None:
    sysfs.add_controller()
    result = check_hardware(host)
    assert result.status is CheckStatus.OK
    assert "hci0" in result.detail
    assert fake_runner.calls == []


def test_hardware_accepts_hciconfig_output(fake_runner: FakeCommandRunner, host: BluetoothHost) -> None:
    fake_runner.script(["hciconfig"], stdout="hci0:\tType: Primary  Bus: USB\n\tDOWN")
    assert check_hardware(host).status is CheckStatus.OK


def test_service_ok_on_active_and_records_exact_invocation(
    fake_runner: FakeCommandRunner, host: BluetoothHost
) -> None:
    fake_runner.script(["systemctl", "is-active", "bluetooth"], stdout="active")
    result = check_service(host)
    assert result.status is CheckStatus.OK
    assert ("systemctl", "is-active", "bluetooth") in fake_runner.calls


def test_service_fails_when_inactive(fake_runner: FakeCommandRunner, host: BluetoothHost) -> None:
    fake_runner.script(["systemctl", "is-active", "bluetooth"], returncode=3, stdout="inactive")
    assert check_service(host).status is CheckStatus.FAIL


def test_service_falls_back_to_legacy_service_tool(fake_runner: FakeCommandRunner, host: BluetoothHost) -> None:
    fake_runner.script(["service", "bluetooth", "status"], stdout="bluetooth is running")
    assert check_service(host).status is CheckStatus.OK
    assert fake_runner.calls == [("service", "bluetooth", "status")]


def test_service_unknown_without_tools(host: BluetoothHost) -> None:
    assert check_service(host).status is CheckStatus.UNKNOWN


def test_functionality_ok_reports_controller_line(fake_runner: FakeCommandRunner, host: BluetoothHost) -> None:
    fake_runner.script(
        ["bluetoothctl", "show"],
        stdout="Controller 00:1A:7D:DA:71:13 (public)\n\tName: laptop\n\tPowered: yes",
    )
    result = check_functionality(host)
    assert result.status is CheckStatus.OK
    assert result.detail == "Controller 00:1A:7D:DA:71:13 (public)"


def test_functionality_fails_without_default_controller(
    fake_runner: FakeCommandRunner, host: BluetoothHost
) -> None:
    fake_runner.script(["bluetoothctl", "show"], stdout="No default controller available")
    assert check_functionality(host).status is CheckStatus.FAIL


def test_functionality_timeout_is_unknown_and_logged(
    fake_runner: FakeCommandRunner, host: BluetoothHost, caplog: pytest.LogCaptureFixture
) -> None:
    fake_runner.script(["bluetoothctl", "show"], timed_out=True)
    with caplog.at_level(logging.WARNING, logger="bluetooth_monitor"):
        result = check_functionality(host, timeout_seconds=5)
    assert result.status is CheckStatus.UNKNOWN
    assert "timed out" in caplog.text


def test_functionality_unknown_when_tool_missing(host: BluetoothHost) -> None:
    assert check_functionality(host).status is CheckStatus.UNKNOWN


def test_functionality_unexpected_output_fails_and_is_logged_verbatim(
    fake_runner: FakeCommandRunner, host: BluetoothHost, caplog: pytest.LogCaptureFixture
) -> None:
    fake_runner.script(["bluetoothctl", "show"], stdout="org.bluez.Error.NotReady")
    with caplog.at_level(logging.WARNING, logger="bluetooth_monitor"):
        result = check_functionality(host)
    assert result.status is CheckStatus.FAIL
    assert "org.bluez.Error.NotReady" in caplog.text
