
from __future__ import annotations
from contextlib import asynccontextmanager
from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, PlainTextResponse
from pathlib import Path
from typing import List, Literal, Optional
import asyncio, json

from config.paths import get_paths
from config.settings import get_settings
from core.events import event_dump
from export.exporter import COMMA, TAB, to_table
from storage.backends import JsonFileStore
from storage.event_writer import JsonlWriter
from storage.persistence import PersistenceAdapter
from ui.state_machine import CommandResult, StopwatchUI


def _default_ui() -> StopwatchUI:
    settings = get_settings()
    paths = get_paths()
    persistence = PersistenceAdapter(
        JsonFileStore(paths.state_root),
        key=settings.storage_key,
        skew_tolerance_ms=settings.clock_skew_ms,
    )
    # clients poll GET /stopwatch; no server-side refresh tick
    return StopwatchUI(persistence, settings=settings, export_dir=paths.exports_root, auto_refresh=False)


def _respond(result: CommandResult) -> JSONResponse:
    return JSONResponse(status_code=200 if result.success else 409, content=result.to_dict())


def create_app(ui: Optional[StopwatchUI] = None, events_log: Optional[Path] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if app.state.writer is not None:
            app.state.writer.close()
        if app.state.stopwatch is not None:
            app.state.stopwatch.close()

    app = FastAPI(title="Lapwatch UI API", lifespan=lifespan)
    app.state.stopwatch = ui
    app.state.events_log = events_log
    app.state.writer = None

    def events_path() -> Path:
        if app.state.events_log is None:
            app.state.events_log = get_paths().events_log
        return Path(app.state.events_log)

    def stopwatch() -> StopwatchUI:
        if app.state.stopwatch is None:
            app.state.stopwatch = _default_ui()
        if app.state.writer is None:
            writer = JsonlWriter(events_path())
            app.state.writer = writer
            app.state.stopwatch.subscribe("*", lambda event: writer.write(event_dump(event)))
        return app.state.stopwatch

    @app.get("/stopwatch")
    def get_stopwatch():
        return stopwatch().snapshot()

    @app.post("/stopwatch/start")
    def start():
        return _respond(stopwatch().start())

    @app.post("/stopwatch/stop")
    def stop():
        return _respond(stopwatch().stop())

    @app.post("/stopwatch/lap")
    def lap():
        return _respond(stopwatch().lap())

    @app.post("/stopwatch/reset")
    def reset():
        return _respond(stopwatch().reset())

    @app.get("/stopwatch/laps.txt", response_class=PlainTextResponse)
    def laps_table(
        delimiter: Optional[Literal["tab", "csv"]] = None,
        columns: Literal["short", "full"] = "short",
    ):
        ui = stopwatch()
        if delimiter is None:
            sep = ui.settings.export_delimiter
        else:
            sep = COMMA if delimiter == "csv" else TAB
        return to_table(ui.lap_records(), delimiter=sep, columns=columns)

    @app.post("/stopwatch/export")
    def export(columns: Literal["short", "full"] = "short"):
        return _respond(stopwatch().export_csv(columns=columns))

    @app.get("/events")
    def get_events(limit: int = Query(200, ge=1)):
        stopwatch()
        f = events_path()
        if not f.exists():
            return {"events": []}
        # tail last N lines
        lines: List[str] = f.read_text(encoding="utf-8").splitlines()[-limit:]
        events = [json.loads(x) for x in lines if x.strip()]
        return {"events": events}

    @app.websocket("/ws/events")
    async def ws_events(ws: WebSocket):
        await ws.accept()
        stopwatch()
        f = events_path()
        last_size = f.stat().st_size if f.exists() else 0
        try:
            while True:
                await asyncio.sleep(0.5)
                if not f.exists():
                    continue
                cur = f.stat().st_size
                if cur > last_size:
                    with open(f, "r", encoding="utf-8") as fh:
                        fh.seek(last_size)
                        chunk = fh.read()
                        for line in chunk.splitlines():
                            if line.strip():
                                await ws.send_text(line)
                    last_size = cur
        except WebSocketDisconnect:
            return

    return app


app = create_app()
