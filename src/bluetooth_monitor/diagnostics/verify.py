"""Post-install verification of files, module parameters, services and device power state."""

from __future__ import annotations

from pathlib import Path

from bluetooth_monitor.config import RuntimeConfig, resolve_config_path
from bluetooth_monitor.diagnostics.base import DiagnosticReport, DiagnosticSection, build_report
from bluetooth_monitor.diagnostics.checks import check_functionality
from bluetooth_monitor.diagnostics.health import detect_bcm_reset_failure
from bluetooth_monitor.models import CheckStatus
from bluetooth_monitor.system.host import BluetoothHost

MONITOR_UNIT = "bluetooth-monitor"
UDEV_RULE_PATH = Path("etc/udev/rules.d/99-bluetooth-apple.rules")
MODPROBE_CONF_PATH = Path("etc/modprobe.d/bluetooth-apple.conf")
SYSTEMD_UNIT_PATH = Path("etc/systemd/system/bluetooth-monitor.service")

EXPECTED_BTUSB_PARAMETERS = {"reset": "Y", "enable_autosuspend": "N"}


def verify_installation(
    config: RuntimeConfig,
    host: BluetoothHost,
    *,
    config_path: str | Path | None = None,
    monitor_unit: str = MONITOR_UNIT,
) -> DiagnosticReport:
    sections = [
        _files_section(config, config_path),
        _module_parameters_section(host),
        _service_section(host, monitor_unit),
        _functionality_section(host, config),
        _usb_power_section(host),
        _bcm_reset_section(host),
    ]
    return build_report(sections)


def _files_section(config: RuntimeConfig, config_path: str | Path | None) -> DiagnosticSection:
    root = config.paths.install_root
    required = {
        "udev_rule": root / UDEV_RULE_PATH,
        "modprobe_conf": root / MODPROBE_CONF_PATH,
        "systemd_unit": root / SYSTEMD_UNIT_PATH,
    }
    details = {key: f"{path} ({'present' if path.is_file() else 'missing'})" for key, path in required.items()}
    monitor_config = resolve_config_path(config_path)
    details["monitor_config"] = (
        f"{monitor_config} ({'present' if monitor_config.is_file() else 'missing, defaults in use'})"
    )

    missing = [key for key, path in required.items() if not path.is_file()]
    if missing:
        return DiagnosticSection(
            name="files",
            ok=False,
            summary=f"Missing installed files: {', '.join(missing)}.",
            details=details,
        )
    return DiagnosticSection(name="files", ok=True, summary="All installed files are present.", details=details)


def _module_parameters_section(host: BluetoothHost) -> DiagnosticSection:
    parameters_dir = host.modules_dir / "btusb" / "parameters"
    if not parameters_dir.is_dir():
        return DiagnosticSection(
            name="module_parameters",
            ok=False,
            warning=True,
            summary="btusb module is not loaded; parameters cannot be verified.",
        )

    details: dict[str, str] = {}
    mismatched: list[str] = []
    for name, expected in EXPECTED_BTUSB_PARAMETERS.items():
        actual = host.read_attr(parameters_dir / name)
        details[name] = f"{actual if actual is not None else 'unavailable'} (expected {expected})"
        if actual != expected:
            mismatched.append(name)

    if mismatched:
        return DiagnosticSection(
            name="module_parameters",
            ok=False,
            summary=f"btusb parameters not applied: {', '.join(mismatched)}. Reboot or reload btusb.",
            details=details,
        )
    return DiagnosticSection(
        name="module_parameters",
        ok=True,
        summary="btusb parameters are correctly set.",
        details=details,
    )


def _service_section(host: BluetoothHost, unit: str) -> DiagnosticSection:
    active = host.service_active(unit)
    enabled = host.service_enabled(unit)
    if active is None or enabled is None:
        return DiagnosticSection(
            name="service",
            ok=False,
            warning=True,
            summary="systemctl not available; cannot verify the monitor service.",
        )
    details = {"active": str(active).lower(), "enabled": str(enabled).lower()}
    if active and enabled:
        return DiagnosticSection(name="service", ok=True, summary=f"{unit} is active and enabled.", details=details)
    return DiagnosticSection(
        name="service",
        ok=False,
        summary=f"{unit} is not {'enabled' if active else 'running'}.",
        details=details,
    )


def _functionality_section(host: BluetoothHost, config: RuntimeConfig) -> DiagnosticSection:
    result = check_functionality(host, timeout_seconds=config.recovery.functionality_timeout_seconds)
    return DiagnosticSection(
        name="functionality",
        ok=result.ok,
        warning=result.status is CheckStatus.UNKNOWN,
        summary=result.detail,
        details={"status": result.status.value},
    )


def _usb_power_section(host: BluetoothHost) -> DiagnosticSection:
    controllers = host.controllers()
    if not controllers:
        return DiagnosticSection(
            name="usb_power",
            ok=False,
            warning=True,
            summary="No Bluetooth controllers found in sysfs.",
        )

    details: dict[str, str] = {}
    for controller in controllers:
        device = host.usb_device_for(controller)
        if device is None:
            details[controller.name] = "no USB device"
            continue
        control = host.read_attr(device.path / "power" / "control")
        details[controller.name] = f"{device.usb_id} power/control={control or 'unavailable'}"

    not_on = [name for name, value in details.items() if not value.endswith("power/control=on")]
    if not_on:
        return DiagnosticSection(
            name="usb_power",
            ok=False,
            summary=f"USB power management is not pinned on for: {', '.join(not_on)}.",
            details=details,
        )
    return DiagnosticSection(
        name="usb_power",
        ok=True,
        summary="USB power management is disabled for all Bluetooth devices.",
        details=details,
    )


def _bcm_reset_section(host: BluetoothHost) -> DiagnosticSection:
    if detect_bcm_reset_failure(host):
        return DiagnosticSection(
            name="bcm_reset",
            ok=False,
            summary="Broadcom BCM reset failure signature detected.",
        )
    return DiagnosticSection(name="bcm_reset", ok=True, summary="No Broadcom BCM reset failure detected.")
