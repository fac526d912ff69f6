from __future__ import annotations
import json
from pathlib import Path
from typing import IO, Any, Mapping
from threading import Lock


class JsonlWriter:
    """
    Append-only JSONL writer for the stopwatch event log, with periodic flush.
    Thread-safe within a process; the refresh ticker never writes here.
    """
    def __init__(self, out_path: Path, flush_every: int = 1):
        ensure_dir(out_path.parent)
        self.path = out_path
        self._f: IO[str] = out_path.open("a", encoding="utf-8")
        self._n = 0
        self._flush_every = max(1, flush_every)
        self._lock = Lock()

    def write(self, obj: Mapping[str, Any]) -> None:
        line = json.dumps(obj, ensure_ascii=False)
        with self._lock:
            self._f.write(line + "\n")
            self._n += 1
            if self._n % self._flush_every == 0:
                self._f.flush()

    @property
    def closed(self) -> bool:
        return self._f.closed

    def close(self):
        with self._lock:
            if self._f.closed:
                return
            try:
                self._f.flush()
            finally:
                self._f.close()


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)
