"""Subprocess-backed command runner and privilege gate."""

from __future__ import annotations

from collections.abc import Callable, Sequence
import os
import shutil
import subprocess

from bluetooth_monitor.errors import PrivilegeError
from bluetooth_monitor.logging import VERBOSE, get_logger
from bluetooth_monitor.system.base import (
    MISSING_RETURN_CODE,
    TIMEOUT_RETURN_CODE,
    CommandResult,
    CommandRunner,
)

EuidFn = Callable[[], int]

logger = get_logger(__name__)


class SubprocessRunner:
    """Run external commands, folding missing binaries and timeouts into results."""

    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        input_text: str | None = None,
    ) -> CommandResult:
        command = tuple(argv)
        logger.log(VERBOSE, "Executing: %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                input=input_text,
                text=True,
                capture_output=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError:
            return CommandResult(argv=command, returncode=MISSING_RETURN_CODE, missing=True)
        except subprocess.TimeoutExpired as exc:
            return CommandResult(
                argv=command,
                returncode=TIMEOUT_RETURN_CODE,
                stdout=_decode(exc.stdout),
                stderr=_decode(exc.stderr),
                timed_out=True,
            )

        return CommandResult(
            argv=command,
            returncode=completed.returncode,
            stdout=(completed.stdout or "").strip(),
            stderr=(completed.stderr or "").strip(),
        )

    def which(self, name: str) -> bool:
        return shutil.which(name) is not None


class PrivilegeGate:
    """Decide how (and whether) a privileged command may run."""

    def __init__(self, runner: CommandRunner, *, euid_fn: EuidFn | None = None) -> None:
        self._runner = runner
        self._euid_fn = euid_fn or os.geteuid

    @property
    def is_root(self) -> bool:
        return self._euid_fn() == 0

    @property
    def has_passwordless_sudo(self) -> bool:
        if not self._runner.which("sudo"):
            return False
        return self._runner.run(["sudo", "-n", "true"]).ok

    @property
    def available(self) -> bool:
        return self.is_root or self.has_passwordless_sudo

    def wrap(self, argv: Sequence[str]) -> list[str]:
        if self.is_root:
            return list(argv)
        if self.has_passwordless_sudo:
            return ["sudo", "-n", *argv]
        raise PrivilegeError(
            f"'{' '.join(argv)}' requires root privileges. Run as root or configure passwordless sudo."
        )

    def require(self, action: str) -> None:
        if not self.available:
            raise PrivilegeError(f"Cannot {action} without root privileges.")


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").strip()
    return value.strip()
