from core.timing.engine import (
    ALREADY_RUNNING,
    LAP_NOT_AFTER_PREVIOUS,
    NOT_RUNNING,
    StopwatchEngine,
)
from core.timing.state import TimerState, is_reset_state, validate_timer_state


class _Clearable:
    def __init__(self):
        self.cleared = 0

    def clear(self):
        self.cleared += 1


def test_start_sets_start_time_and_clears_laps(clock):
    engine = StopwatchEngine(clock)
    previous = TimerState(clock.now() - 5000, False, (clock.now() - 4000,), 5000)

    result = engine.start(previous)

    assert result.success
    assert result.state == TimerState(clock.now(), True, (), 0)


def test_start_while_running_fails_and_keeps_state(clock):
    engine = StopwatchEngine(clock)
    running = engine.start(TimerState()).state

    result = engine.start(running)

    assert not result.success
    assert result.error == ALREADY_RUNNING
    assert result.state is running


def test_stop_freezes_elapsed_and_keeps_anchor(clock):
    engine = StopwatchEngine(clock)
    running = engine.start(TimerState()).state
    clock.advance(2500)

    result = engine.stop(running)

    assert result.success
    assert result.state.is_running is False
    assert result.state.elapsed == 2500
    assert result.state.start_time == running.start_time


def test_stop_twice_fails_and_leaves_elapsed(clock):
    engine = StopwatchEngine(clock)
    running = engine.start(TimerState()).state
    clock.advance(1000)
    stopped = engine.stop(running).state
    clock.advance(1000)

    again = engine.stop(stopped)

    assert not again.success
    assert again.error == NOT_RUNNING
    assert again.state.elapsed == 1000


def test_lap_appends_absolute_timestamps(clock):
    engine = StopwatchEngine(clock)
    state = engine.start(TimerState()).state
    clock.advance(600)
    state = engine.lap(state).state
    clock.advance(600)
    state = engine.lap(state).state

    assert state.laps == (state.start_time + 600, state.start_time + 1200)
    assert validate_timer_state(state, now_ms=clock.now()).is_valid


def test_lap_requires_running(clock):
    result = StopwatchEngine(clock).lap(TimerState())
    assert not result.success
    assert result.error == NOT_RUNNING


def test_lap_at_same_instant_as_previous_is_refused(clock):
    engine = StopwatchEngine(clock)
    state = engine.lap(engine.start(TimerState()).state).state

    result = engine.lap(state)

    assert not result.success
    assert result.error == LAP_NOT_AFTER_PREVIOUS
    assert len(result.state.laps) == 1


def test_explicit_time_source_overrides_default(clock):
    from core.timing.time_source import ManualTimeSource

    engine = StopwatchEngine(clock)
    result = engine.start(TimerState(), ManualTimeSource(42))
    assert result.state.start_time == 42


def test_reset_while_running_clears_everything_and_snapshot(clock):
    persistence = _Clearable()
    engine = StopwatchEngine(clock, persistence)
    state = engine.start(TimerState()).state
    clock.advance(300)
    state = engine.lap(state).state

    result = engine.reset(state)

    assert result.success
    assert is_reset_state(result.state)
    assert persistence.cleared == 1


def test_reset_from_idle_succeeds(clock):
    result = StopwatchEngine(clock).reset(TimerState())
    assert result.success
    assert result.state == TimerState()
