"""Delimited text export of lap records.

Two row shapes are supported:

* ``short`` -- ``Lap<d>Time``: lap index and the lap duration as ``MM:SS.mmm``
* ``full``  -- ``Lap Number<d>Absolute Elapsed Time<d>Lap Duration`` with
  ``HH:MM:SS`` values

Each line, header included, is LF-terminated.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional, Sequence, Tuple

from core.timing.laps import LapRecord, format_display_time
from core.timing.time_source import SystemTimeSource

logger = logging.getLogger(__name__)

Columns = Literal["short", "full"]

TAB = "\t"
COMMA = ","
DEFAULT_PREFIX = "stopwatch_export"

HEADERS = {
    "short": ("Lap", "Time"),
    "full": ("Lap Number", "Absolute Elapsed Time", "Lap Duration"),
}


@dataclass(frozen=True)
class ExportRow:
    lap_number: int
    absolute_elapsed_display: Optional[str]
    lap_duration_display: str

    def cells(self) -> Tuple[str, ...]:
        if self.absolute_elapsed_display is None:
            return (str(self.lap_number), self.lap_duration_display)
        return (str(self.lap_number), self.absolute_elapsed_display, self.lap_duration_display)


@dataclass(frozen=True)
class ExportResult:
    success: bool
    filename: Optional[str] = None
    csv_data: Optional[str] = None
    path: Optional[Path] = None
    error: Optional[str] = None


def to_rows(records: Sequence[LapRecord], columns: Columns = "short") -> List[ExportRow]:
    if columns == "short":
        return [ExportRow(r.lap_number, None, format_display_time(r.lap_duration)) for r in records]
    if columns == "full":
        return [
            ExportRow(r.lap_number, r.absolute_elapsed_display, r.lap_duration_display)
            for r in records
        ]
    raise ValueError(f"unknown column layout: {columns!r}")


def to_table(
    records: Sequence[LapRecord],
    delimiter: str = TAB,
    columns: Columns = "short",
) -> str:
    """Render a header row plus one row per lap, joined by ``delimiter``."""

    if delimiter not in (TAB, COMMA):
        raise ValueError("delimiter must be ',' or '\\t'")
    rows = to_rows(records, columns)
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    writer.writerow(HEADERS[columns])
    writer.writerows(row.cells() for row in rows)
    return buf.getvalue()


def export_filename(prefix: str, unix_ms: int) -> str:
    return f"{prefix}_{unix_ms}.csv"


def export_to_file(
    records: Sequence[LapRecord],
    directory: Path,
    prefix: str = DEFAULT_PREFIX,
    now_ms: Optional[int] = None,
    columns: Columns = "short",
) -> ExportResult:
    """Write the CSV export into ``directory``. Never raises."""

    now_ms = SystemTimeSource().now() if now_ms is None else now_ms
    filename = export_filename(prefix, now_ms)
    try:
        csv_data = to_table(records, delimiter=COMMA, columns=columns)
        path = Path(directory) / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(csv_data, encoding="utf-8", newline="")
    except (OSError, ValueError) as exc:
        logger.error("Error exporting to CSV: %s", exc)
        return ExportResult(False, filename=filename, error=str(exc))
    return ExportResult(True, filename=filename, csv_data=csv_data, path=path)


__all__ = [
    "ExportRow",
    "ExportResult",
    "to_rows",
    "to_table",
    "export_filename",
    "export_to_file",
    "TAB",
    "COMMA",
    "HEADERS",
]
