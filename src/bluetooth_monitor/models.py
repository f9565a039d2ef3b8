"""Data model contracts for cross-module use."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class CheckName(str, Enum):
    MODULES = "modules"
    HARDWARE = "hardware"
    SERVICE = "service"
    FUNCTIONALITY = "functionality"


class CheckStatus(str, Enum):
    OK = "ok"
    FAIL = "fail"
    UNKNOWN = "unknown"


class ActionOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


class RecoveryStep(str, Enum):
    BROADCOM_FIX = "broadcom_fix"
    POWER_MANAGEMENT = "power_management"
    USB_RESET = "usb_reset"
    SERVICE_RESTART = "service_restart"
    MODULE_RELOAD = "module_reload"

    @property
    def label(self) -> str:
        return _STEP_LABELS[self]


_STEP_LABELS = {
    RecoveryStep.BROADCOM_FIX: "BCM reset fix",
    RecoveryStep.POWER_MANAGEMENT: "Power management fix",
    RecoveryStep.USB_RESET: "USB device reset",
    RecoveryStep.SERVICE_RESTART: "Service restart",
    RecoveryStep.MODULE_RELOAD: "Kernel modules reload",
}


@dataclass(frozen=True)
class CheckResult:
    name: CheckName
    status: CheckStatus
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is CheckStatus.OK

    @property
    def tag(self) -> str:
        return f"{self.name.value.upper()}:{self.status.value.upper()}"


@dataclass(frozen=True)
class HealthReport:
    checks: tuple[CheckResult, ...]
    bcm_reset_detected: bool = False
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def recovery_needed(self) -> bool:
        return any(check.status is CheckStatus.FAIL for check in self.checks)

    @property
    def healthy(self) -> bool:
        return all(check.ok for check in self.checks)

    def get(self, name: CheckName) -> CheckResult | None:
        for check in self.checks:
            if check.name is name:
                return check
        return None

    def verdicts(self) -> tuple[tuple[CheckName, CheckStatus], ...]:
        return tuple((check.name, check.status) for check in self.checks)

    def summary_line(self) -> str:
        tags = " ".join(check.tag for check in self.checks)
        return (
            f"{tags} recovery_needed={str(self.recovery_needed).lower()} "
            f"bcm_reset={str(self.bcm_reset_detected).lower()}"
        )


@dataclass(frozen=True)
class RecoveryActionResult:
    step: RecoveryStep
    outcome: ActionOutcome
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is ActionOutcome.SUCCESS


@dataclass(frozen=True)
class RecoverySummary:
    outcomes: tuple[RecoveryActionResult, ...] = ()

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def ok(self) -> bool:
        return self.succeeded > 0

    def outcome_for(self, step: RecoveryStep) -> RecoveryActionResult | None:
        for outcome in self.outcomes:
            if outcome.step is step:
                return outcome
        return None


def success(step: RecoveryStep, detail: str = "") -> RecoveryActionResult:
    return RecoveryActionResult(step=step, outcome=ActionOutcome.SUCCESS, detail=detail)


def failure(step: RecoveryStep, detail: str = "") -> RecoveryActionResult:
    return RecoveryActionResult(step=step, outcome=ActionOutcome.FAILURE, detail=detail)
