"""Caller-facing stopwatch controller.

``StopwatchUI`` owns the live ``TimerState`` of one session and is the only
thing that mutates it. Phases::

    Idle --start--> Running --stop--> Stopped --start--> Running
    Running --lap--> Running            (debounced)
    any --reset--> Idle

Every accepted command persists the new state (reset clears the snapshot
instead), re-renders and dispatches a named ``StopwatchEvent``. Expected
failures come back as ``CommandResult(success=False, error=...)``.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from config.settings import StopwatchSettings, get_settings
from core.errors import DebounceRejection, PreconditionError
from core.events import EVENT_NAMES, StopwatchEvent
from core.timing.engine import ALREADY_RUNNING, NOT_RUNNING, StopwatchEngine
from core.timing.laps import LapRecord, derive_lap_records, format_display_time
from core.timing.state import TimerState, elapsed_ms
from core.timing.time_source import ManualTimeSource, SystemTimeSource, TimeSource
from export.exporter import COMMA, TAB, Columns, export_filename, export_to_file, to_table
from storage.backends import MemoryStore
from storage.persistence import PersistenceAdapter
from ui.ticker import RefreshTicker

logger = logging.getLogger(__name__)

RenderSink = Callable[[str, List[str]], None]
EventHandler = Callable[[StopwatchEvent], None]

ALL_EVENTS = "*"


class Phase(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class CommandResult:
    success: bool
    error: Optional[str] = None
    state: Optional[TimerState] = None
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success}
        if self.error is not None:
            out["error"] = self.error
        out.update(self.payload)
        if self.state is not None:
            out["state"] = self.state.to_dict()
        return out


def format_lap_line(record: LapRecord) -> str:
    return (
        f"Lap {record.lap_number}: {record.absolute_elapsed_display} "
        f"(Duration: {record.lap_duration_display})"
    )


class StopwatchUI:
    def __init__(
        self,
        persistence: Optional[PersistenceAdapter] = None,
        time_source: Optional[TimeSource] = None,
        render: Optional[RenderSink] = None,
        settings: Optional[StopwatchSettings] = None,
        export_dir: Optional[Path] = None,
        auto_refresh: bool = True,
    ) -> None:
        self.settings = settings or get_settings()
        self.time_source = time_source or SystemTimeSource()
        self.persistence = persistence or PersistenceAdapter(
            MemoryStore(),
            key=self.settings.storage_key,
            time_source=self.time_source,
            skew_tolerance_ms=self.settings.clock_skew_ms,
        )
        self.engine = StopwatchEngine(self.time_source, self.persistence)
        self.render_sink = render
        self._render_lock = threading.RLock()
        self.export_dir = export_dir
        self.lap_debounce_ms = self.settings.lap_debounce_ms
        self.last_lap_ms: Optional[int] = None
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._ticker: Optional[RefreshTicker] = (
            RefreshTicker(self.settings.refresh_interval_ms, self.refresh) if auto_refresh else None
        )

        self.state = self.persistence.load()
        if self.state.is_running:
            self._start_ticker()
        self.render()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def phase(self) -> Phase:
        if self.state.is_running:
            return Phase.RUNNING
        if self.state.start_time is not None or self.state.laps or self.state.elapsed:
            return Phase.STOPPED
        return Phase.IDLE

    @property
    def ticking(self) -> bool:
        return self._ticker is not None and self._ticker.active

    def elapsed_ms(self) -> int:
        return elapsed_ms(self.state, self.time_source.now())

    def lap_records(self) -> List[LapRecord]:
        return derive_lap_records(self.state)

    def snapshot(self) -> Dict[str, Any]:
        elapsed = self.elapsed_ms()
        return {
            "phase": self.phase.value,
            "state": self.state.to_dict(),
            "elapsed": elapsed,
            "elapsedDisplay": format_display_time(elapsed),
            "laps": [r.to_dict() for r in self.lap_records()],
        }

    def render(self) -> None:
        if self.render_sink is None:
            return
        lines = [format_lap_line(r) for r in self.lap_records()]
        # the refresh ticker renders from its own thread
        with self._render_lock:
            try:
                self.render_sink(format_display_time(self.elapsed_ms()), lines)
            except Exception:
                logger.exception("render callback failed")

    def refresh(self) -> None:
        """Display tick. Never mutates state."""
        if self.state.is_running:
            self.render()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def subscribe(self, name: str, handler: EventHandler) -> Callable[[], None]:
        if name != ALL_EVENTS and name not in EVENT_NAMES:
            raise ValueError(f"unknown event: {name!r}")
        self._subscribers[name].append(handler)
        return lambda: self.unsubscribe(name, handler)

    def unsubscribe(self, name: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def dispatch(self, name: str, data: Optional[Dict[str, Any]] = None) -> StopwatchEvent:
        event = StopwatchEvent(name=name, ts_ms=self.time_source.now(), data=data or {})
        for handler in list(self._subscribers[name]) + list(self._subscribers[ALL_EVENTS]):
            try:
                handler(event)
            except Exception:
                logger.exception("subscriber for %s failed", name)
        return event

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def _commit(self, state: TimerState) -> None:
        self.state = state
        self.persistence.save(state)

    def _start_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.start()

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()

    def _check_debounce(self, now: int) -> None:
        if self.last_lap_ms is None:
            return
        since = now - self.last_lap_ms
        if since < self.lap_debounce_ms:
            raise DebounceRejection(since, self.lap_debounce_ms)

    def _fail(self, error: str) -> CommandResult:
        logger.debug("command rejected: %s", error)
        return CommandResult(False, error=error, state=self.state)

    def start(self) -> CommandResult:
        if self.phase is Phase.RUNNING:
            return self._fail(ALREADY_RUNNING)
        result = self.engine.start(self.state)
        if not result.success:
            return self._fail(result.error or ALREADY_RUNNING)
        self._commit(result.state)
        self.last_lap_ms = None
        self._start_ticker()
        self.render()
        self.dispatch("timer:start", {"startTime": result.state.start_time})
        return CommandResult(True, state=self.state, payload={"startTime": result.state.start_time})

    def stop(self) -> CommandResult:
        if self.phase is not Phase.RUNNING:
            return self._fail(NOT_RUNNING)
        result = self.engine.stop(self.state)
        if not result.success:
            return self._fail(result.error or NOT_RUNNING)
        self._commit(result.state)
        self._stop_ticker()
        self.render()
        payload = {
            "elapsedTime": result.state.elapsed,
            "elapsedDisplay": format_display_time(result.state.elapsed),
        }
        self.dispatch("timer:stop", payload)
        return CommandResult(True, state=self.state, payload=payload)

    def lap(self) -> CommandResult:
        if self.phase is not Phase.RUNNING:
            return self._fail(NOT_RUNNING)
        now = self.time_source.now()
        try:
            self._check_debounce(now)
        except DebounceRejection as exc:
            return self._fail(str(exc))
        result = self.engine.lap(self.state, ManualTimeSource(now))
        if not result.success:
            return self._fail(result.error or NOT_RUNNING)
        self.last_lap_ms = now
        self._commit(result.state)
        self.render()
        record = self.lap_records()[-1]
        payload = {
            "newLap": now,
            "lapNumber": record.lap_number,
            "absoluteElapsedTime": record.absolute_elapsed,
            "lapDuration": record.lap_duration,
        }
        self.dispatch("lap:recorded", payload)
        return CommandResult(True, state=self.state, payload=payload)

    def reset(self) -> CommandResult:
        was_running = self.state.is_running
        result = self.engine.reset(self.state)
        self.state = result.state
        self.last_lap_ms = None
        self._stop_ticker()
        self.render()
        self.dispatch("timer:reset", {"wasRunning": was_running})
        return CommandResult(True, state=self.state)

    def export_csv(self, delimiter: str = COMMA, columns: Columns = "short") -> CommandResult:
        """Export the lap table; writes a file when ``export_dir`` is set."""
        try:
            records = self.lap_records()
        except PreconditionError as exc:
            return self._fail(str(exc))
        now = self.time_source.now()
        if self.export_dir is not None:
            exported = export_to_file(
                records, self.export_dir, prefix=self.settings.export_prefix, now_ms=now, columns=columns
            )
            if not exported.success:
                return self._fail(exported.error or "export failed")
            filename, csv_data = exported.filename, exported.csv_data
            path = str(exported.path)
        else:
            if delimiter not in (COMMA, TAB):
                return self._fail("delimiter must be ',' or '\\t'")
            filename = export_filename(self.settings.export_prefix, now)
            csv_data = to_table(records, delimiter=delimiter, columns=columns)
            path = None
        payload = {"filename": filename, "csvData": csv_data, "path": path}
        self.dispatch("csv:exported", {"filename": filename, "lapCount": len(records), "path": path})
        return CommandResult(True, state=self.state, payload=payload)

    def close(self) -> None:
        self._stop_ticker()


__all__ = ["Phase", "CommandResult", "StopwatchUI", "format_lap_line", "RenderSink"]
