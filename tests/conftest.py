import pytest

from config.settings import StopwatchSettings
from core.timing.time_source import ManualTimeSource
from storage.backends import MemoryStore
from storage.persistence import PersistenceAdapter
from ui.state_machine import StopwatchUI

T0 = 1_700_000_000_000


@pytest.fixture
def clock():
    return ManualTimeSource(T0)


@pytest.fixture
def settings():
    return StopwatchSettings(
        lap_debounce_ms=100,
        refresh_interval_ms=10,
        clock_skew_ms=60_000,
        storage_key="stopwatchState",
        export_prefix="stopwatch_export",
        export_delimiter="\t",
        log_level="INFO",
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def persistence(store, clock):
    return PersistenceAdapter(store, time_source=clock)


@pytest.fixture
def make_ui(persistence, clock, settings):
    """Build a StopwatchUI on the shared store/clock; closes it afterwards."""
    created = []

    def _make(**kwargs):
        kwargs.setdefault("persistence", persistence)
        kwargs.setdefault("time_source", clock)
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("auto_refresh", False)
        ui = StopwatchUI(**kwargs)
        created.append(ui)
        return ui

    yield _make
    for ui in created:
        ui.close()


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Point paths/settings at tmp_path and drop the cached singletons."""
    import config.paths as paths_mod
    import config.settings as settings_mod

    monkeypatch.setenv("LAPWATCH_DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.setenv("LAPWATCH_LOGS_ROOT", str(tmp_path / "logs"))
    monkeypatch.setattr(paths_mod, "_paths_singleton", None)
    monkeypatch.setattr(settings_mod, "_settings_singleton", None)
    return tmp_path
