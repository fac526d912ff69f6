# config/paths.py
"""
Centralized, cross-platform path management for lapwatch.

Design goals
- Single source of truth for persisted state, exports, event log and logs
- Honors these env vars:
    LAPWATCH_DATA_ROOT, LAPWATCH_LOGS_ROOT
- Sensible OS defaults when env vars are not provided
- Safe directory creation with writeability checks
"""

from __future__ import annotations

import errno
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# ---------- OS defaults (used only if env vars not set) ----------

def _platform_default_base() -> Path:
    """
    Returns an OS-specific base directory for user data:
    - Windows: %LOCALAPPDATA%/Lapwatch
    - macOS:   ~/Library/Application Support/Lapwatch
    - Linux:   ~/.local/share/lapwatch
    """
    if sys.platform.startswith("win"):
        base = os.getenv("LOCALAPPDATA") or os.getenv("APPDATA") or str(Path.home() / "AppData" / "Local")
        return Path(base) / "Lapwatch"
    elif sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Lapwatch"
    else:
        return Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share")) / "lapwatch"


def _env_or_default_data_root() -> Path:
    return Path(os.getenv("LAPWATCH_DATA_ROOT", _platform_default_base() / "data"))


def _env_or_default_logs_root() -> Path:
    return Path(os.getenv("LAPWATCH_LOGS_ROOT", _platform_default_base() / "logs"))


# ---------- Core dataclass ----------

@dataclass(frozen=True)
class Paths:
    """
    Canonical path container for lapwatch.

    Most callers should obtain a cached instance via get_paths().
    """
    data_root: Path
    logs_root: Path

    @staticmethod
    def from_env() -> "Paths":
        return Paths(_env_or_default_data_root(), _env_or_default_logs_root())

    # ----- standard layout helpers -----

    @property
    def state_root(self) -> Path:
        # JsonFileStore keeps one <key>.json per storage key here
        return self.data_root / "state"

    @property
    def exports_root(self) -> Path:
        return self.data_root / "exports"

    @property
    def events_log(self) -> Path:
        return self.data_root / "events" / "events.jsonl"

    @property
    def app_log(self) -> Path:
        return self.logs_root / "lapwatch.log"

    # ----- setup / validation -----

    def ensure_all(self) -> None:
        """
        Create every directory the CLI and HTTP app write into.
        """
        for p in [
            self.data_root,
            self.logs_root,
            self.state_root,
            self.exports_root,
            self.events_log.parent,
        ]:
            p.mkdir(parents=True, exist_ok=True)

    def verify_writeable(self) -> None:
        """
        Raise OSError if critical roots are not writeable.
        """
        for p in [self.data_root, self.logs_root]:
            try:
                p.mkdir(parents=True, exist_ok=True)
                test = p / ".write_test"
                test.write_text("ok", encoding="utf-8")
                test.unlink(missing_ok=True)
            except OSError as e:
                raise OSError(errno.EACCES, f"Not writeable: {p}") from e


# ---------- Cached access ----------

_paths_singleton: Optional[Paths] = None

def get_paths(force_refresh: bool = False) -> Paths:
    """
    Return a cached Paths instance with its directories created.
    """
    global _paths_singleton
    if force_refresh or _paths_singleton is None:
        _paths_singleton = Paths.from_env()
        _paths_singleton.ensure_all()
    return _paths_singleton


# ---------- CLI sanity check ----------

if __name__ == "__main__":
    p = get_paths(force_refresh=True)
    try:
        p.verify_writeable()
    except OSError as e:
        print(f"[WARN] Writeability check failed: {e}")

    print("Data root:    ", p.data_root)
    print("Logs root:    ", p.logs_root)
    print("State root:   ", p.state_root)
    print("Exports root: ", p.exports_root)
    print("Event log:    ", p.events_log)
