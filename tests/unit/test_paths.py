# tests/unit/test_paths.py
import pytest

import config.paths as paths_mod


@pytest.fixture(autouse=True)
def _reset_singleton(monkeypatch):
    monkeypatch.setattr(paths_mod, "_paths_singleton", None)


def test_env_overrides_take_precedence(monkeypatch, tmp_path):
    data = tmp_path / "data_root"
    logs = tmp_path / "logs_root"

    monkeypatch.setenv("LAPWATCH_DATA_ROOT", str(data))
    monkeypatch.setenv("LAPWATCH_LOGS_ROOT", str(logs))

    p = paths_mod.get_paths(force_refresh=True)

    assert p.data_root == data
    assert p.logs_root == logs
    # ensure_all() is called inside get_paths()
    assert p.state_root.is_dir()
    assert p.exports_root.is_dir()
    assert p.events_log.parent.is_dir()
    assert p.events_log == data / "events" / "events.jsonl"


def test_get_paths_is_cached(monkeypatch, tmp_path):
    monkeypatch.setenv("LAPWATCH_DATA_ROOT", str(tmp_path / "a"))
    monkeypatch.setenv("LAPWATCH_LOGS_ROOT", str(tmp_path / "logs"))
    first = paths_mod.get_paths()

    monkeypatch.setenv("LAPWATCH_DATA_ROOT", str(tmp_path / "b"))
    assert paths_mod.get_paths() is first
    assert paths_mod.get_paths(force_refresh=True).data_root == tmp_path / "b"


def test_invalid_data_root_raises_on_ensure(monkeypatch, tmp_path):
    """
    If LAPWATCH_DATA_ROOT points to a *file*, directory creation fails
    inside get_paths(force_refresh=True).
    """
    bad_data_file = tmp_path / "not_a_dir.txt"
    bad_data_file.write_text("hi", encoding="utf-8")

    monkeypatch.setenv("LAPWATCH_DATA_ROOT", str(bad_data_file))
    monkeypatch.setenv("LAPWATCH_LOGS_ROOT", str(tmp_path / "logs"))

    with pytest.raises(OSError):
        paths_mod.get_paths(force_refresh=True)


def test_verify_writeable_positive(monkeypatch, tmp_path):
    monkeypatch.setenv("LAPWATCH_DATA_ROOT", str(tmp_path / "data"))
    monkeypatch.setenv("LAPWATCH_LOGS_ROOT", str(tmp_path / "logs"))

    p = paths_mod.get_paths(force_refresh=True)
    p.verify_writeable()
    assert not (p.data_root / ".write_test").exists()
