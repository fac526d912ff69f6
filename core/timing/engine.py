"""Stopwatch command engine.

The engine is stateless with respect to timing: each command takes a
``TimerState`` and returns an ``EngineResult`` holding either the next
state or a failure message. Laps are stored as absolute timestamps; lap
durations are derived on read (see ``core.timing.laps``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from core.timing.state import TimerState
from core.timing.time_source import SystemTimeSource, TimeSource

logger = logging.getLogger(__name__)

ALREADY_RUNNING = "Already running"
NOT_RUNNING = "Not running"
LAP_NOT_AFTER_PREVIOUS = "Lap timestamp must be after the previous lap"


class SnapshotStore(Protocol):
    def clear(self) -> None: ...


@dataclass(frozen=True)
class EngineResult:
    success: bool
    state: TimerState
    error: Optional[str] = None

    @classmethod
    def ok(cls, state: TimerState) -> "EngineResult":
        return cls(True, state)

    @classmethod
    def fail(cls, state: TimerState, error: str) -> "EngineResult":
        return cls(False, state, error)


class StopwatchEngine:
    """Apply start/stop/lap/reset to a ``TimerState``.

    ``persistence`` is optional; when given, ``reset`` clears its snapshot.
    A failed command returns the input state untouched.
    """

    def __init__(
        self,
        time_source: Optional[TimeSource] = None,
        persistence: Optional[SnapshotStore] = None,
    ) -> None:
        self.time_source = time_source or SystemTimeSource()
        self.persistence = persistence

    def _now(self, time: Optional[TimeSource]) -> int:
        return (time or self.time_source).now()

    def start(self, state: TimerState, time: Optional[TimeSource] = None) -> EngineResult:
        if state.is_running:
            return EngineResult.fail(state, ALREADY_RUNNING)
        now = self._now(time)
        return EngineResult.ok(TimerState(start_time=now, is_running=True, laps=(), elapsed=0))

    def stop(self, state: TimerState, time: Optional[TimeSource] = None) -> EngineResult:
        if not state.is_running or state.start_time is None:
            return EngineResult.fail(state, NOT_RUNNING)
        elapsed = max(0, self._now(time) - state.start_time)
        # start_time stays as the anchor for lap derivation
        return EngineResult.ok(
            TimerState(start_time=state.start_time, is_running=False, laps=state.laps, elapsed=elapsed)
        )

    def lap(self, state: TimerState, time: Optional[TimeSource] = None) -> EngineResult:
        if not state.is_running or state.start_time is None:
            return EngineResult.fail(state, NOT_RUNNING)
        now = self._now(time)
        if state.laps and now <= state.laps[-1]:
            return EngineResult.fail(state, LAP_NOT_AFTER_PREVIOUS)
        return EngineResult.ok(
            TimerState(
                start_time=state.start_time,
                is_running=True,
                laps=state.laps + (now,),
                elapsed=state.elapsed,
            )
        )

    def reset(self, state: TimerState, time: Optional[TimeSource] = None) -> EngineResult:
        if state.is_running:
            logger.debug("reset while running; no lap recorded for the implicit stop")
        if self.persistence is not None:
            self.persistence.clear()
        return EngineResult.ok(TimerState())


__all__ = [
    "ALREADY_RUNNING",
    "NOT_RUNNING",
    "LAP_NOT_AFTER_PREVIOUS",
    "EngineResult",
    "StopwatchEngine",
]
