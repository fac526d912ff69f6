"""Exception hierarchy for the stopwatch subsystem.

User-triggered commands report expected failures through result objects;
these exceptions are reserved for invariant violations (malformed state,
corrupted snapshots) and for storage backends, whose callers recover
locally.
"""

from __future__ import annotations

from typing import Iterable, List


class StopwatchError(Exception):
    """Base class for every error raised by the stopwatch packages."""


class ValidationError(StopwatchError):
    """A ``TimerState`` (or something claiming to be one) is malformed."""

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: List[str] = list(errors)
        super().__init__(f"Invalid TimerState: {'; '.join(self.errors)}")


class PreconditionError(StopwatchError):
    """An operation was attempted against a state that does not allow it."""


class DebounceRejection(StopwatchError):
    """A lap was requested inside the debounce window of the previous one."""

    def __init__(self, elapsed_ms: int, window_ms: int) -> None:
        self.elapsed_ms = elapsed_ms
        self.window_ms = window_ms
        super().__init__(
            f"Lap debounce active: {elapsed_ms} ms since last lap "
            f"(minimum {window_ms} ms)"
        )


class StorageError(StopwatchError):
    """Durable storage is unavailable or failed to read/write."""


__all__ = [
    "StopwatchError",
    "ValidationError",
    "PreconditionError",
    "DebounceRejection",
    "StorageError",
]
