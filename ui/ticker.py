"""Fixed-interval display refresh."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RefreshTicker:
    """Call ``callback`` every ``interval_ms`` on a daemon thread.

    The callback only reads state and renders it. ``cancel`` is idempotent
    and safe to call before ``start``.
    """

    def __init__(self, interval_ms: int, callback: Callable[[], None]) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.interval_ms = interval_ms
        self.callback = callback
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.active:
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop_event,), daemon=True)
        self._thread.start()

    def _run(self, stop_event: threading.Event) -> None:
        interval = self.interval_ms / 1000
        while not stop_event.wait(interval):
            try:
                self.callback()
            except Exception:
                logger.exception("refresh tick failed; ticker stopped")
                return

    def cancel(self) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
