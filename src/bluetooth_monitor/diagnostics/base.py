"""Diagnostics interfaces."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DiagnosticSection:
    name: str
    ok: bool
    summary: str
    details: dict[str, str] = field(default_factory=dict)
    warning: bool = False


@dataclass(frozen=True)
class DiagnosticReport:
    ok: bool
    checks: tuple[str, ...] = ()
    details: dict[str, str] = field(default_factory=dict)
    sections: tuple[DiagnosticSection, ...] = ()


def build_report(sections: list[DiagnosticSection]) -> DiagnosticReport:
    """Warning sections are reported but never fail the overall report."""
    failed = [section.name for section in sections if not section.ok and not section.warning]
    warned = [section.name for section in sections if not section.ok and section.warning]
    details = {}
    if failed:
        details["failed_sections"] = ",".join(failed)
    if warned:
        details["warning_sections"] = ",".join(warned)
    return DiagnosticReport(
        ok=not failed,
        checks=tuple(section.name for section in sections),
        details=details,
        sections=tuple(sections),
    )
