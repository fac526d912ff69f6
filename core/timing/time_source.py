"""Millisecond clocks used by the stopwatch engine.

Every component that needs "now" receives a ``TimeSource`` instead of
calling ``time.time()`` itself, so tests can drive the clock by hand.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

NS_PER_MS = 1_000_000


@runtime_checkable
class TimeSource(Protocol):
    def now(self) -> int:
        """Current time as integer Unix milliseconds."""
        ...


class SystemTimeSource:
    """Wall clock in integer milliseconds since the Unix epoch."""

    def now(self) -> int:
        return time.time_ns() // NS_PER_MS


class ManualTimeSource:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)

    def now(self) -> int:
        return self._now

    def set(self, ms: int) -> None:
        self._now = int(ms)

    def advance(self, ms: int) -> int:
        self._now += int(ms)
        return self._now


__all__ = ["TimeSource", "SystemTimeSource", "ManualTimeSource", "NS_PER_MS"]
