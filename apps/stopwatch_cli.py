from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

import typer

from config.paths import get_paths
from config.settings import get_settings
from core.events import event_dump
from core.log import setup_logger
from export.exporter import COMMA, TAB, to_table
from storage.backends import JsonFileStore
from storage.event_writer import JsonlWriter
from storage.persistence import PersistenceAdapter
from ui.state_machine import CommandResult, RenderSink, StopwatchUI, format_lap_line

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Stopwatch with laps, persisted between runs.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also log to stderr"),
) -> None:
    """Each command loads the saved timer state, applies itself and saves it again."""

    settings = get_settings()
    paths = get_paths()
    setup_logger("", level="DEBUG" if verbose else settings.log_level, log_file=paths.app_log, stream=verbose)


@contextmanager
def _session(render: RenderSink | None = None, auto_refresh: bool = False) -> Iterator[StopwatchUI]:
    settings = get_settings()
    paths = get_paths()
    persistence = PersistenceAdapter(
        JsonFileStore(paths.state_root),
        key=settings.storage_key,
        skew_tolerance_ms=settings.clock_skew_ms,
    )
    writer = JsonlWriter(paths.events_log)
    ui = StopwatchUI(
        persistence,
        render=render,
        settings=settings,
        export_dir=paths.exports_root,
        auto_refresh=auto_refresh,
    )
    ui.subscribe("*", lambda event: writer.write(event_dump(event)))
    try:
        yield ui
    finally:
        ui.close()
        writer.close()


def _report(result: CommandResult, message: str = "") -> None:
    if not result.success:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    if message:
        typer.echo(message)


@app.command()
def start() -> None:
    """Start a new timing session (clears previous laps)."""
    with _session() as ui:
        _report(ui.start(), "Stopwatch started.")


@app.command()
def stop() -> None:
    """Stop the running session and keep its total."""
    with _session() as ui:
        result = ui.stop()
        _report(result, f"Stopwatch stopped at {result.payload.get('elapsedDisplay')}.")


@app.command()
def lap() -> None:
    """Record a lap at the current time."""
    with _session() as ui:
        result = ui.lap()
        if result.success:
            record = ui.lap_records()[-1]
            _report(result, format_lap_line(record))
        else:
            _report(result)


@app.command()
def reset() -> None:
    """Clear the session, running or not."""
    with _session() as ui:
        _report(ui.reset(), "Stopwatch reset.")


@app.command()
def status() -> None:
    """Show phase, elapsed time and lap count."""
    with _session() as ui:
        snap = ui.snapshot()
        typer.echo(f"Phase:   {snap['phase']}")
        typer.echo(f"Elapsed: {snap['elapsedDisplay']}")
        typer.echo(f"Laps:    {len(snap['laps'])}")


@app.command()
def laps(
    csv: Optional[bool] = typer.Option(
        None, "--csv/--tab", help="Delimiter override (default: LAPWATCH_EXPORT_DELIMITER)"
    ),
    full: bool = typer.Option(False, "--full", help="Include absolute elapsed time column"),
) -> None:
    """Print the lap table."""
    with _session() as ui:
        delimiter = ui.settings.export_delimiter if csv is None else (COMMA if csv else TAB)
        table = to_table(ui.lap_records(), delimiter=delimiter, columns="full" if full else "short")
        typer.echo(table, nl=False)


@app.command()
def export(
    full: bool = typer.Option(False, "--full", help="Include absolute elapsed time column"),
) -> None:
    """Write the lap table to a CSV file in the exports directory."""
    with _session() as ui:
        result = ui.export_csv(columns="full" if full else "short")
        _report(result, f"Exported {result.payload.get('filename')} -> {result.payload.get('path')}")


@app.command()
def watch() -> None:
    """Redraw the running timer until Ctrl+C (the timer keeps running)."""

    def _draw(elapsed: str, lap_lines: List[str]) -> None:
        suffix = f"  [{len(lap_lines)} laps]" if lap_lines else ""
        typer.echo(f"\r{elapsed}{suffix}", nl=False)

    stop_event = threading.Event()

    def _stop(*_object: object) -> None:
        stop_event.set()

    with _session(render=_draw, auto_refresh=True) as ui:
        if not ui.state.is_running:
            typer.echo("")
            typer.echo("Error: Not running", err=True)
            raise typer.Exit(code=1)
        signal.signal(signal.SIGINT, _stop)
        signal.signal(signal.SIGTERM, _stop)
        while not stop_event.is_set() and ui.state.is_running:
            stop_event.wait(0.25)
    typer.echo("")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
) -> None:
    """Serve the HTTP command surface."""
    import uvicorn

    uvicorn.run("apps.ui_api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
