"""Event models dispatched by the stopwatch state machine."""

from __future__ import annotations

from typing import Any, Dict, Literal

import time

import ulid
from pydantic import BaseModel, ConfigDict, Field

EventName = Literal["timer:start", "timer:stop", "lap:recorded", "timer:reset", "csv:exported"]

EVENT_NAMES = ("timer:start", "timer:stop", "lap:recorded", "timer:reset", "csv:exported")


def now_ts_ms() -> int:
    """Return the current timestamp in milliseconds."""

    return int(time.time() * 1000)


def new_event_id() -> str:
    """Generate a ULID based identifier for events."""

    return str(ulid.new())


class StopwatchEvent(BaseModel):
    """Named transition notification carrying its timing payload."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(default_factory=new_event_id)
    ts_ms: int = Field(default_factory=now_ts_ms)
    name: EventName
    data: Dict[str, Any] = Field(default_factory=dict)


def event_dump(event: StopwatchEvent) -> Dict[str, Any]:
    """Return a JSON-ready ``dict`` for ``event``."""

    return event.model_dump(mode="json")


__all__ = ["EventName", "EVENT_NAMES", "StopwatchEvent", "event_dump", "now_ts_ms", "new_event_id"]
