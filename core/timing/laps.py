"""Lap derivation and the two time formatting contracts.

Two formatters coexist on purpose and are not interchangeable:

* ``format_clock_time`` -> ``HH:MM:SS``. Hours are zero-padded to two
  digits and never capped (``100:00:00`` after 100 hours). Used for lap
  lists and exports of long sessions.
* ``format_display_time`` -> ``MM:SS.mmm`` (or ``MM:SS.hh`` with
  ``digits=2``). Minutes are not capped. Used for the live counter and the
  short export rows.

Both clamp negative or non-numeric input to zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from core.errors import PreconditionError
from core.timing.state import TimerState


def _as_ms(milliseconds: Any) -> int:
    if isinstance(milliseconds, bool) or not isinstance(milliseconds, (int, float)):
        return 0
    if milliseconds != milliseconds or milliseconds < 0:  # NaN or negative
        return 0
    return int(milliseconds)


def format_clock_time(milliseconds: Any) -> str:
    """Format ``milliseconds`` as ``HH:MM:SS`` with no cap on hours.

    >>> format_clock_time(3661000)
    '01:01:01'
    >>> format_clock_time(360000000)
    '100:00:00'
    """

    total_seconds = _as_ms(milliseconds) // 1000
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def format_display_time(milliseconds: Any, digits: int = 3) -> str:
    """Format ``milliseconds`` as ``MM:SS.mmm`` (``digits=3``) or ``MM:SS.hh``.

    >>> format_display_time(65123)
    '01:05.123'
    >>> format_display_time(0, digits=2)
    '00:00.00'
    """

    if digits not in (2, 3):
        raise ValueError("digits must be 2 or 3")
    ms = _as_ms(milliseconds)
    minutes, rem = divmod(ms, 60_000)
    seconds, fraction = divmod(rem, 1000)
    if digits == 2:
        return f"{minutes:02d}:{seconds:02d}.{fraction // 10:02d}"
    return f"{minutes:02d}:{seconds:02d}.{fraction:03d}"


@dataclass(frozen=True)
class LapRecord:
    """Display-ready view of one lap. Derived on demand, never persisted."""

    lap_number: int
    recorded_at: int
    absolute_elapsed: int
    lap_duration: int
    absolute_elapsed_display: str
    lap_duration_display: str

    @property
    def lap_duration_live(self) -> str:
        return format_display_time(self.lap_duration)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lapNumber": self.lap_number,
            "recordedAtTimestamp": self.recorded_at,
            "absoluteElapsedTime": self.absolute_elapsed,
            "lapDuration": self.lap_duration,
            "absoluteElapsedTimeDisplay": self.absolute_elapsed_display,
            "lapDurationDisplay": self.lap_duration_display,
        }


def derive_lap_records(state: TimerState) -> List[LapRecord]:
    """Turn the absolute lap timestamps of ``state`` into ``LapRecord``s.

    The first lap's duration equals its absolute elapsed time; later laps
    measure from the previous lap. Raises ``PreconditionError`` when laps
    exist without a start time.
    """

    if not state.laps:
        return []
    if state.start_time is None:
        raise PreconditionError("Cannot derive laps: startTime is null but laps are recorded")

    records: List[LapRecord] = []
    previous = state.start_time
    for index, recorded_at in enumerate(state.laps):
        absolute = recorded_at - state.start_time
        duration = recorded_at - previous
        records.append(
            LapRecord(
                lap_number=index + 1,
                recorded_at=recorded_at,
                absolute_elapsed=absolute,
                lap_duration=duration,
                absolute_elapsed_display=format_clock_time(absolute),
                lap_duration_display=format_clock_time(duration),
            )
        )
        previous = recorded_at
    return records


__all__ = ["LapRecord", "derive_lap_records", "format_clock_time", "format_display_time"]
