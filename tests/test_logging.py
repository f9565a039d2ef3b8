"""Log file layout, custom levels and handler replacement."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from bluetooth_monitor.errors import ConfigError
from bluetooth_monitor.logging import (
    RECOVERY,
    VERBOSE,
    configure_logging,
    get_logger,
    get_recovery_logger,
    log_recovery,
)


def test_configure_logging_creates_all_three_log_files(tmp_path: Path) -> None:
    paths = configure_logging(tmp_path / "logs", console=False)
    assert paths.event_log.name == "bluetooth_monitor.log"
    assert paths.status_log.name == "bluetooth_status.log"
    assert paths.recovery_log.name == "bluetooth_recovery_actions.log"
    for path in (paths.event_log, paths.status_log, paths.recovery_log):
        assert path.is_file()


def test_event_log_lines_carry_level_and_timestamp(tmp_path: Path) -> None:
    paths = configure_logging(tmp_path, console=False)
    get_logger("bluetooth_monitor.test").warning("adapter missing")

    line = paths.event_log.read_text(encoding="utf-8").strip()
    assert re.fullmatch(r"\[WARNING\] \[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] adapter missing", line)


def test_recovery_messages_reach_recovery_and_event_logs(tmp_path: Path) -> None:
    paths = configure_logging(tmp_path, console=False)
    log_recovery("USB reset via %s", "authorized flag")
    get_logger().info("not a recovery message")

    recovery_text = paths.recovery_log.read_text(encoding="utf-8")
    assert re.search(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] USB reset via authorized flag$", recovery_text, re.M)
    assert "not a recovery message" not in recovery_text
    assert "[RECOVERY]" in paths.event_log.read_text(encoding="utf-8")


def test_verbose_level_is_filtered_unless_enabled(tmp_path: Path) -> None:
    paths = configure_logging(tmp_path, console=False)
    get_logger().log(VERBOSE, "hidden detail")
    assert "hidden detail" not in paths.event_log.read_text(encoding="utf-8")

    configure_logging(tmp_path, verbose=True, console=False)
    get_logger().log(VERBOSE, "shown detail")
    assert "[VERBOSE]" in paths.event_log.read_text(encoding="utf-8")


def test_reconfiguring_replaces_installed_handlers(tmp_path: Path) -> None:
    configure_logging(tmp_path / "a", console=True)
    configure_logging(tmp_path / "b", console=True)
    assert len(get_logger().handlers) == 2
    assert len(get_recovery_logger().handlers) == 1
    assert get_recovery_logger().handlers[0].level == RECOVERY


def test_unwritable_log_dir_raises_config_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    with pytest.raises(ConfigError, match="Failed to create log directory"):
        configure_logging(blocker / "logs", console=False)
