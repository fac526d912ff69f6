import json
import logging

import pytest

from core.errors import StorageError, ValidationError
from core.timing.state import TimerState
from storage.backends import JsonFileStore, MemoryStore
from storage.persistence import STORAGE_KEY, PersistenceAdapter, parse_snapshot

T0 = 1_700_000_000_000


class _FlakyStore(MemoryStore):
    """Reads work, writes fail."""

    def set_item(self, key, value):
        raise StorageError("quota exceeded")


def test_save_then_load_round_trips(persistence, store):
    state = TimerState(T0 - 3000, False, (T0 - 2000, T0 - 1000), 3000)

    assert persistence.save(state) is True
    assert json.loads(store.get_item(STORAGE_KEY)) == {
        "version": 1,
        "startTime": T0 - 3000,
        "isRunning": False,
        "laps": [T0 - 2000, T0 - 1000],
        "elapsedTime": 3000,
    }
    assert persistence.load() == state


def test_missing_snapshot_loads_reset_state(persistence):
    assert persistence.load() == TimerState()


def test_corrupted_snapshot_loads_reset_state(persistence, store, caplog):
    store.set_item(STORAGE_KEY, "{not json")
    with caplog.at_level(logging.WARNING):
        assert persistence.load() == TimerState()
    assert "corrupted" in caplog.text


def test_invalid_snapshot_contents_load_reset_state(persistence, store):
    store.set_item(STORAGE_KEY, json.dumps({"version": 1, "startTime": None, "isRunning": True, "laps": []}))
    assert persistence.load() == TimerState()


def test_parse_snapshot_raises_validation_error():
    with pytest.raises(ValidationError):
        parse_snapshot("[1, 2]")
    with pytest.raises(ValidationError):
        parse_snapshot(json.dumps({"version": 7}))
    with pytest.raises(ValidationError) as excinfo:
        parse_snapshot(json.dumps({"startTime": "x", "isRunning": False, "laps": []}), now_ms=T0)
    assert "startTime" in str(excinfo.value)


def test_future_start_time_in_snapshot_is_discarded(persistence, store):
    store.set_item(
        STORAGE_KEY,
        json.dumps({"version": 1, "startTime": T0 + 120_000, "isRunning": True, "laps": [], "elapsedTime": 0}),
    )
    assert persistence.load() == TimerState()


def test_unversioned_full_state_is_accepted(persistence, store):
    store.set_item(STORAGE_KEY, json.dumps({"startTime": T0 - 10, "isRunning": True, "laps": [T0 - 5]}))
    assert persistence.load() == TimerState(T0 - 10, True, (T0 - 5,), 0)


def test_legacy_laps_elapsed_shape_keeps_only_elapsed(persistence, store, caplog):
    legacy = {"laps": [{"lapNumber": 1, "elapsedTime": 1000, "timestamp": 1000000}], "elapsedTime": 1000}
    store.set_item(STORAGE_KEY, json.dumps(legacy))
    with caplog.at_level(logging.WARNING):
        assert persistence.load() == TimerState(elapsed=1000)
    assert "legacy" in caplog.text


def test_unavailable_storage_degrades_silently(clock, caplog):
    adapter = PersistenceAdapter(MemoryStore(available=False), time_source=clock)
    with caplog.at_level(logging.WARNING):
        assert adapter.load() == TimerState()
        assert adapter.save(TimerState(T0, True, ())) is False
        adapter.clear()
    assert adapter.available is False
    assert "Session-only mode" in caplog.text


def test_write_failure_stops_further_writes(clock):
    store = _FlakyStore()
    adapter = PersistenceAdapter(store, time_source=clock)

    assert adapter.save(TimerState(T0, True, ())) is False
    assert adapter.available is False
    assert adapter.save(TimerState()) is False


def test_clear_removes_snapshot(persistence, store):
    persistence.save(TimerState(T0, True, ()))
    persistence.clear()
    assert STORAGE_KEY not in store
    assert persistence.load() == TimerState()


def test_file_store_round_trip(tmp_path, clock):
    adapter = PersistenceAdapter(JsonFileStore(tmp_path / "state"), time_source=clock)
    state = TimerState(T0 - 100, True, (T0 - 50,))

    adapter.save(state)

    assert (tmp_path / "state" / f"{STORAGE_KEY}.json").exists()
    assert PersistenceAdapter(JsonFileStore(tmp_path / "state"), time_source=clock).load() == state
    adapter.clear()
    assert not (tmp_path / "state" / f"{STORAGE_KEY}.json").exists()


class _FailNextWriteStore(MemoryStore):
    """Fails exactly one write once armed."""

    def __init__(self):
        super().__init__()
        self.fail_next = False

    def set_item(self, key, value):
        if self.fail_next:
            self.fail_next = False
            raise StorageError("disk full")
        super().set_item(key, value)


def test_clear_still_removes_snapshot_after_failed_write(clock):
    store = _FailNextWriteStore()
    adapter = PersistenceAdapter(store, time_source=clock)
    assert adapter.save(TimerState(T0 - 100, True, ())) is True

    store.fail_next = True
    assert adapter.save(TimerState(T0 - 100, True, (T0 - 50,))) is False
    assert adapter.available is False

    adapter.clear()

    assert STORAGE_KEY not in store
    assert PersistenceAdapter(store, time_source=clock).load() == TimerState()


def test_laps_without_start_time_snapshot_loads_reset_state(persistence, store, caplog):
    store.set_item(STORAGE_KEY, json.dumps({"startTime": None, "isRunning": False, "laps": [5]}))
    with caplog.at_level(logging.WARNING):
        assert persistence.load() == TimerState()
    assert "corrupted" in caplog.text
