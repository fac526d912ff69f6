"""Durable snapshot of the timer state.

Schema (version 1), stored as JSON under a single key::

    {"version": 1, "startTime": int|null, "isRunning": bool,
     "laps": [int, ...], "elapsedTime": int}

Older unversioned payloads are migrated on load. Storage failures are
logged and never propagate: after the first failed write the adapter stops
writing for the rest of the session. Clearing is still attempted so a
reset never leaves an older snapshot behind.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.errors import StorageError, ValidationError
from core.timing.state import CLOCK_SKEW_TOLERANCE_MS, TimerState, create_timer_state
from core.timing.time_source import SystemTimeSource, TimeSource
from storage.backends import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "stopwatchState"
SNAPSHOT_VERSION = 1


class PersistedSnapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: Literal[1] = SNAPSHOT_VERSION
    start_time: Optional[int] = Field(default=None, alias="startTime")
    is_running: bool = Field(default=False, alias="isRunning")
    laps: List[int] = Field(default_factory=list)
    elapsed: int = Field(default=0, alias="elapsedTime")

    @classmethod
    def from_state(cls, state: TimerState) -> "PersistedSnapshot":
        return cls(
            start_time=state.start_time,
            is_running=state.is_running,
            laps=list(state.laps),
            elapsed=state.elapsed,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


def migrate_snapshot(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Bring any known snapshot shape to the version 1 camelCase mapping."""

    version = payload.get("version")
    if version is not None and version != SNAPSHOT_VERSION:
        raise ValidationError([f"unsupported snapshot version: {version!r}"])
    if version == SNAPSHOT_VERSION or "startTime" in payload or "isRunning" in payload:
        return {k: payload[k] for k in ("startTime", "isRunning", "laps", "elapsedTime") if k in payload}
    # legacy {laps, elapsedTime}: relative lap entries cannot be anchored without a start time
    if payload.get("laps"):
        logger.warning("dropping %d legacy lap entries without a start time", len(payload["laps"]))
    return {"elapsedTime": payload.get("elapsedTime", 0)}


def parse_snapshot(
    raw: str,
    *,
    now_ms: Optional[int] = None,
    skew_tolerance_ms: int = CLOCK_SKEW_TOLERANCE_MS,
) -> TimerState:
    """Decode a stored snapshot. Raises ``ValidationError`` on bad data."""

    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise ValidationError([f"snapshot is not valid JSON: {exc}"]) from exc
    if not isinstance(payload, dict):
        raise ValidationError(["snapshot must be a JSON object"])
    return create_timer_state(migrate_snapshot(payload), now_ms=now_ms, skew_tolerance_ms=skew_tolerance_ms)


class PersistenceAdapter:
    def __init__(
        self,
        store: KeyValueStore,
        key: str = STORAGE_KEY,
        time_source: Optional[TimeSource] = None,
        skew_tolerance_ms: int = CLOCK_SKEW_TOLERANCE_MS,
    ) -> None:
        self.store = store
        self.key = key
        self.time_source = time_source or SystemTimeSource()
        self.skew_tolerance_ms = skew_tolerance_ms
        self.available = True

    def _disable(self, action: str, exc: StorageError) -> None:
        logger.warning("Session-only mode: failed to %s timer state (%s)", action, exc)
        self.available = False

    def save(self, state: TimerState) -> bool:
        """Write ``state``; returns False when nothing was persisted."""
        if not self.available:
            return False
        try:
            self.store.set_item(self.key, PersistedSnapshot.from_state(state).to_json())
        except StorageError as exc:
            self._disable("persist", exc)
            return False
        return True

    def load(self) -> TimerState:
        """Return the stored state, or the reset state on any problem."""
        try:
            raw = self.store.get_item(self.key)
        except StorageError as exc:
            self._disable("restore", exc)
            return TimerState()
        if raw is None:
            return TimerState()
        try:
            state = parse_snapshot(raw, now_ms=self.time_source.now(), skew_tolerance_ms=self.skew_tolerance_ms)
        except ValidationError as exc:
            logger.warning("Discarding corrupted timer snapshot: %s", exc)
            return TimerState()
        if state.is_running:
            logger.info("Session resumed: timer state recovered from checkpoint")
        return state

    def clear(self) -> None:
        """Remove the snapshot. Attempted even in session-only mode."""
        try:
            self.store.remove_item(self.key)
        except StorageError as exc:
            self._disable("clear", exc)


__all__ = [
    "STORAGE_KEY",
    "SNAPSHOT_VERSION",
    "PersistedSnapshot",
    "PersistenceAdapter",
    "migrate_snapshot",
    "parse_snapshot",
]
