"""Append-only status-line log for health evaluations."""

from __future__ import annotations

from pathlib import Path

from bluetooth_monitor.logging import TIMESTAMP_FORMAT
from bluetooth_monitor.models import HealthReport


class StatusLog:
    """Append one timestamped line per check plus a summary line per evaluation."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def append_report(self, report: HealthReport) -> list[str]:
        stamp = report.checked_at.astimezone().strftime(TIMESTAMP_FORMAT)
        lines = [f"[{stamp}] {check.tag} {check.detail}".rstrip() for check in report.checks]
        lines.append(f"[{stamp}] {report.summary_line()}")
        self._write(lines)
        return lines

    def _write(self, lines: list[str]) -> None:
        with self._path.open("a", encoding="utf-8") as stream:
            for line in lines:
                stream.write(line)
                stream.write("\n")
