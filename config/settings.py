
from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_delimiter() -> str:
    raw = os.getenv("LAPWATCH_EXPORT_DELIMITER", "\\t")
    return {"\\t": "\t", "tab": "\t", "csv": ",", "comma": ","}.get(raw, raw)


class StopwatchSettings(BaseModel):
    lap_debounce_ms: int = Field(default_factory=lambda: _env_int("LAPWATCH_LAP_DEBOUNCE_MS", 100), ge=0)
    refresh_interval_ms: int = Field(default_factory=lambda: _env_int("LAPWATCH_REFRESH_INTERVAL_MS", 10), gt=0)
    clock_skew_ms: int = Field(default_factory=lambda: _env_int("LAPWATCH_CLOCK_SKEW_MS", 60_000), ge=0)
    storage_key: str = Field(default_factory=lambda: os.getenv("LAPWATCH_STORAGE_KEY", "stopwatchState"))
    export_prefix: str = Field(default_factory=lambda: os.getenv("LAPWATCH_EXPORT_PREFIX", "stopwatch_export"))
    export_delimiter: str = Field(default_factory=_env_delimiter, validate_default=True)
    log_level: str = Field(default_factory=lambda: os.getenv("LAPWATCH_LOG_LEVEL", "INFO"))

    @field_validator("export_delimiter")
    @classmethod
    def check_export_delimiter(cls, value: str) -> str:
        if value not in ("\t", ","):
            raise ValueError("export_delimiter must be a tab or a comma")
        return value


_settings_singleton: Optional[StopwatchSettings] = None


def get_settings(force_refresh: bool = False) -> StopwatchSettings:
    """Return cached settings, re-reading the environment on ``force_refresh``."""
    global _settings_singleton
    if force_refresh or _settings_singleton is None:
        _settings_singleton = StopwatchSettings()
    return _settings_singleton
