from core.timing.engine import ALREADY_RUNNING, NOT_RUNNING, EngineResult, StopwatchEngine
from core.timing.laps import LapRecord, derive_lap_records, format_clock_time, format_display_time
from core.timing.state import TimerState, ValidationResult, create_timer_state, validate_timer_state
from core.timing.time_source import ManualTimeSource, SystemTimeSource, TimeSource

__all__ = [
    "ALREADY_RUNNING",
    "NOT_RUNNING",
    "EngineResult",
    "StopwatchEngine",
    "LapRecord",
    "derive_lap_records",
    "format_clock_time",
    "format_display_time",
    "TimerState",
    "ValidationResult",
    "create_timer_state",
    "validate_timer_state",
    "ManualTimeSource",
    "SystemTimeSource",
    "TimeSource",
]
