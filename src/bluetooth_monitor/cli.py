"""Typer CLI for bluetooth-monitor."""

from __future__ import annotations

from dataclasses import replace
import json
from pathlib import Path

import click
import typer
from typer.core import TyperCommand, TyperGroup

from . import __version__
from .config import (
    RuntimeConfig,
    config_to_dict,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
)
from .diagnostics.verify import verify_installation
from .errors import BluetoothMonitorError, ConfigError
from .logging import get_logger
from .modes import OperationMode, run_operation_mode
from .scheduler.watch import HealthCycle, determine_monitor_exit_code, run_monitor_loop
from .wiring import MonitorServices, build_services

logger = get_logger(__name__)


class _UnknownOptionMixin:
    """Report unrecognised flags as ``Unknown option: <flag>``."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.NoSuchOption as exc:
            raise click.UsageError(f"Unknown option: {exc.option_name}", ctx=ctx) from exc


class MonitorGroup(_UnknownOptionMixin, TyperGroup):
    pass


class MonitorCommand(_UnknownOptionMixin, TyperCommand):
    pass


app = typer.Typer(
    cls=MonitorGroup,
    help="Monitor the local Bluetooth stack and recover it when it fails.",
)
config_app = typer.Typer(cls=MonitorGroup, help="Config commands.")
app.add_typer(config_app, name="config")


@config_app.command("init", cls=MonitorCommand)
def config_init(
    ctx: typer.Context,
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    try:
        written_path = init_default_config(path or _global_config_path(ctx), force=force)
    except ConfigError as exc:
        typer.secho(f"Config init failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    typer.echo(f"Wrote default config to {written_path}")


@config_app.command("show", cls=MonitorCommand)
def config_show(
    ctx: typer.Context,
    path: str | None = typer.Option(
        None, "--path", help="Optional config TOML path (defaults to platform config dir)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Render resolved config as JSON."),
) -> None:
    selected = path or _global_config_path(ctx)
    resolved_path = resolve_config_path(selected)
    try:
        config = load_runtime_config(selected, required=False)
    except ConfigError as exc:
        typer.secho(f"Config show failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    payload = {
        "path": str(resolved_path),
        "exists": resolved_path.is_file(),
        "config": config_to_dict(config),
    }
    if as_json:
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    typer.echo(f"Resolved config path: {payload['path']}{'' if payload['exists'] else ' (not found, using defaults)'}")
    typer.echo(f"Check interval: {config.monitor.interval_seconds}s")
    typer.echo(f"Automatic recovery: {'enabled' if config.monitor.auto_recovery else 'disabled'}")
    typer.echo(f"Log directory: {config.logging.log_dir}")
    typer.echo(f"Sysfs root: {config.paths.sysfs_root}")


@app.command("verify", cls=MonitorCommand)
def verify(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Render verification report as JSON."),
) -> None:
    """Verify the installed udev rule, modprobe config, service and device state."""
    config_path = _global_config_path(ctx)
    try:
        config = _load_config(config_path)
        services = build_services(config, console=False)
        report = verify_installation(config, services.host, config_path=config_path)
    except BluetoothMonitorError as exc:
        typer.secho(f"Verify failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    sections = [
        {
            "name": section.name,
            "ok": section.ok,
            "warning": section.warning,
            "summary": section.summary,
            "details": section.details,
        }
        for section in report.sections
    ]
    if as_json:
        typer.echo(
            json.dumps(
                {"ok": report.ok, "checks": list(report.checks), "details": report.details, "sections": sections},
                indent=2,
                sort_keys=True,
            )
        )
    else:
        typer.echo("Installation verification")
        typer.echo(f"Status: {'ok' if report.ok else 'fail'}")
        for section in sections:
            marker = "PASS" if section["ok"] else ("WARN" if section["warning"] else "FAIL")
            typer.echo(f"[{marker}] {section['name']}: {section['summary']}")
            for key, value in section["details"].items():
                typer.echo(f"  {key}: {value}")

    if not report.ok:
        raise typer.Exit(1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version information and exit."),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable verbose output."),
    once: bool = typer.Option(False, "-o", "--once", help="Run one health cycle and exit."),
    interval: int | None = typer.Option(
        None, "-i", "--interval", min=1, help="Seconds between checks (default 60)."
    ),
    auto_recovery: bool | None = typer.Option(
        None,
        "--auto-recovery/--no-auto-recovery",
        help="Run recovery actions automatically when issues are detected (default on).",
    ),
    log_dir: Path | None = typer.Option(None, "-l", "--log-dir", help="Directory for log files."),
    config_path: str | None = typer.Option(
        None, "--config", help="Config TOML path (defaults to platform config dir)."
    ),
    detect_only: bool = typer.Option(False, "--detect-only", help="Only detect Bluetooth hardware."),
    check_service: bool = typer.Option(False, "--check-service", help="Check the Bluetooth service state."),
    restart_service: bool = typer.Option(False, "--restart-service", help="Restart the Bluetooth service."),
    power_management: bool = typer.Option(
        False, "--power-management", help="Pin USB power management of the adapter to on."
    ),
    check_state: bool = typer.Option(False, "--check-state", help="Run one full health evaluation."),
    recovery: bool = typer.Option(
        False, "--recovery", help="Run power management, USB reset and service restart."
    ),
    full_recovery: bool = typer.Option(False, "--full-recovery", help="Run the complete recovery ladder."),
) -> None:
    ctx.obj = {"config_path": config_path}
    if version:
        typer.echo(f"Bluetooth Monitor version {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is not None:
        return

    requested = [
        mode
        for enabled, mode in (
            (detect_only, OperationMode.DETECT_ONLY),
            (check_service, OperationMode.CHECK_SERVICE),
            (restart_service, OperationMode.RESTART_SERVICE),
            (power_management, OperationMode.POWER_MANAGEMENT),
            (check_state, OperationMode.CHECK_STATE),
            (recovery, OperationMode.RECOVERY),
            (full_recovery, OperationMode.FULL_RECOVERY),
        )
        if enabled
    ]
    if len(requested) > 1:
        flags = ", ".join(f"--{mode.value}" for mode in requested)
        raise click.UsageError(f"Options {flags} are mutually exclusive.", ctx=ctx)
    mode = requested[0] if requested else OperationMode.MONITOR

    try:
        config = _apply_overrides(
            _load_config(config_path),
            verbose=verbose,
            interval=interval,
            auto_recovery=auto_recovery,
            log_dir=log_dir,
        )
        services = build_services(config)
        if mode is OperationMode.MONITOR:
            exit_code = _run_monitor(services, once=once)
        else:
            result = run_operation_mode(mode, services)
            typer.echo(result.message)
            exit_code = int(result.exit_code)
    except BluetoothMonitorError as exc:
        typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2) from exc

    raise typer.Exit(exit_code)


def run() -> None:
    app()


def _run_monitor(services: MonitorServices, *, once: bool) -> int:
    config = services.config
    logger.info("Starting Bluetooth Monitor v%s", __version__)
    logger.info("Check interval: %ss", config.monitor.interval_seconds)
    logger.info("Automatic recovery: %s", "enabled" if config.monitor.auto_recovery else "disabled")
    logger.info("Log directory: %s", services.log_paths.log_dir)

    cycle = HealthCycle(
        services.evaluator,
        services.ladder,
        auto_recovery=config.monitor.auto_recovery,
        confirm_fn=_confirm,
    )
    result = run_monitor_loop(
        cycle,
        interval_seconds=config.monitor.interval_seconds,
        max_cycles=1 if once else None,
        sleep_fn=services.env.sleep_fn,
    )
    return int(determine_monitor_exit_code(result))


def _confirm(prompt: str) -> bool:
    try:
        return typer.confirm(prompt, default=False)
    except click.exceptions.Abort:
        return False


def _load_config(config_path: str | None) -> RuntimeConfig:
    # An explicit --config must exist; the default location falls back to built-in defaults.
    return load_runtime_config(config_path, required=config_path is not None)


def _apply_overrides(
    config: RuntimeConfig,
    *,
    verbose: bool,
    interval: int | None,
    auto_recovery: bool | None,
    log_dir: Path | None,
) -> RuntimeConfig:
    monitor = config.monitor
    if verbose:
        monitor = replace(monitor, verbose=True)
    if interval is not None:
        monitor = replace(monitor, interval_seconds=interval)
    if auto_recovery is not None:
        monitor = replace(monitor, auto_recovery=auto_recovery)
    logging_config = config.logging
    if log_dir is not None:
        logging_config = replace(logging_config, log_dir=log_dir.expanduser())
    return replace(config, monitor=monitor, logging=logging_config)


def _global_config_path(ctx: typer.Context | None) -> str | None:
    if ctx is None:
        return None
    root = ctx.find_root()
    if isinstance(root.obj, dict):
        return root.obj.get("config_path")
    return None
