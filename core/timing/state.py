"""Canonical timer state and its validator.

``TimerState`` is the single record the engine reads and writes. It is
immutable; every command produces a fresh instance. The JSON shape used by
persistence and the HTTP surface keeps the camelCase keys ``startTime``,
``isRunning``, ``laps`` and ``elapsedTime``.

Validation rules:

1. ``startTime`` is ``None`` or a non-negative integer (Unix ms)
2. ``startTime`` is not more than the skew tolerance ahead of "now"
3. ``isRunning`` is a boolean
4. ``laps`` is a sequence of integers (Unix ms), strictly ascending
5. ``elapsedTime``, when given, is a non-negative integer
6. ``isRunning=True`` requires ``startTime``
7. recorded laps require ``startTime`` and none may precede it
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from core.errors import ValidationError
from core.timing.time_source import SystemTimeSource

CLOCK_SKEW_TOLERANCE_MS = 60_000


@dataclass(frozen=True)
class TimerState:
    start_time: Optional[int] = None
    is_running: bool = False
    laps: Tuple[int, ...] = field(default_factory=tuple)
    elapsed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startTime": self.start_time,
            "isRunning": self.is_running,
            "laps": list(self.laps),
            "elapsedTime": self.elapsed,
        }


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.is_valid


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_timer_state(
    state: Union[TimerState, Mapping[str, Any], Any],
    *,
    now_ms: Optional[int] = None,
    skew_tolerance_ms: int = CLOCK_SKEW_TOLERANCE_MS,
) -> ValidationResult:
    """Check ``state`` against every rule and collect all violations."""

    if isinstance(state, TimerState):
        state = state.to_dict()
    if not isinstance(state, Mapping):
        return ValidationResult(False, ["State must be an object"])

    errors: List[str] = []
    start_time = state.get("startTime")
    is_running = state.get("isRunning")
    laps = state.get("laps")

    if start_time is not None and not _is_int(start_time):
        errors.append("startTime must be null or an integer (Unix timestamp in ms)")
    if _is_int(start_time):
        if start_time < 0:
            errors.append("startTime must be non-negative")
        now = SystemTimeSource().now() if now_ms is None else now_ms
        if start_time > now + skew_tolerance_ms:
            errors.append("startTime appears to be in the future (possible clock skew)")

    if not isinstance(is_running, bool):
        errors.append("isRunning must be a boolean")

    if isinstance(laps, (str, bytes)) or not isinstance(laps, Sequence):
        errors.append("laps must be an array")
    else:
        for i, lap in enumerate(laps):
            if not _is_int(lap):
                errors.append(f"laps[{i}] must be an integer (Unix timestamp in ms)")
        for i in range(1, len(laps)):
            prev, cur = laps[i - 1], laps[i]
            if _is_int(prev) and _is_int(cur) and cur <= prev:
                errors.append(
                    f"laps must be strictly ascending by timestamp (laps[{i}] <= laps[{i - 1}])"
                )
        if laps and start_time is None:
            errors.append("laps require a startTime to measure from")
        elif _is_int(start_time) and any(_is_int(lap) and lap < start_time for lap in laps):
            errors.append("laps must not precede startTime")

    if "elapsedTime" in state:
        elapsed = state["elapsedTime"]
        if not _is_int(elapsed):
            errors.append("elapsedTime must be an integer (ms)")
        elif elapsed < 0:
            errors.append("elapsedTime must be non-negative")

    if is_running is True and start_time is None:
        errors.append("If isRunning=true, startTime must not be null")

    return ValidationResult(not errors, errors)


def create_timer_state(
    initial: Optional[Mapping[str, Any]] = None,
    *,
    now_ms: Optional[int] = None,
    skew_tolerance_ms: int = CLOCK_SKEW_TOLERANCE_MS,
) -> TimerState:
    """Build a ``TimerState`` from a (partial) camelCase mapping.

    Missing keys take the reset-state defaults. Raises ``ValidationError``
    carrying every violated rule when the merged result is invalid.
    """

    initial = initial or {}
    merged = {
        "startTime": initial.get("startTime"),
        "isRunning": initial.get("isRunning", False),
        "laps": initial.get("laps", []),
        "elapsedTime": initial.get("elapsedTime", 0),
    }
    result = validate_timer_state(merged, now_ms=now_ms, skew_tolerance_ms=skew_tolerance_ms)
    if not result.is_valid:
        raise ValidationError(result.errors)
    return TimerState(
        start_time=merged["startTime"],
        is_running=merged["isRunning"],
        laps=tuple(merged["laps"]),
        elapsed=merged["elapsedTime"],
    )


def create_default_state() -> TimerState:
    return TimerState()


def is_reset_state(state: Optional[TimerState]) -> bool:
    return (
        state is not None
        and state.start_time is None
        and not state.is_running
        and not state.laps
        and state.elapsed == 0
    )


def is_running_state(state: Optional[TimerState]) -> bool:
    return state is not None and state.is_running and state.start_time is not None


def has_laps(state: Optional[TimerState]) -> bool:
    return state is not None and len(state.laps) > 0


def get_lap_count(state: Optional[TimerState]) -> int:
    return len(state.laps) if state is not None else 0


def clone_timer_state(state: TimerState, *, now_ms: Optional[int] = None) -> TimerState:
    """Re-validate ``state`` and return an equal, independent copy."""

    return create_timer_state(state.to_dict(), now_ms=now_ms)


def elapsed_ms(state: TimerState, now_ms: int) -> int:
    """Displayable total: live while running, frozen once stopped."""

    if state.is_running and state.start_time is not None:
        return max(0, now_ms - state.start_time)
    return state.elapsed


__all__ = [
    "CLOCK_SKEW_TOLERANCE_MS",
    "TimerState",
    "ValidationResult",
    "validate_timer_state",
    "create_timer_state",
    "create_default_state",
    "is_reset_state",
    "is_running_state",
    "has_laps",
    "get_lap_count",
    "clone_timer_state",
    "elapsed_ms",
]
