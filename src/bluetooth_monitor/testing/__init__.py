"""Test-only utilities for deterministic host, clock and sleep behaviour."""

from .fakes import FakeCommandRunner, SysfsBuilder
from .time_control import SleepRecorder, fixed_now

__all__ = [
    "FakeCommandRunner",
    "SleepRecorder",
    "SysfsBuilder",
    "fixed_now",
]
