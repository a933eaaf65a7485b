"""CSV output helpers for sheet exports."""

# Module responsibilities:
# - Serialize rows as a header line plus fully quoted value lines.
# - Render cells so that re-parsing the CSV yields the same scalars.

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from .schema import CellValue
from .utils.log import get_logger

logger = get_logger("csv_writer")


def cell_text(value: CellValue) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def rows_to_csv(columns: Sequence[str], rows: Iterable[Mapping[str, CellValue]]) -> str:
    """Return CSV text: minimal-quoted header, then every value quoted."""

    header = io.StringIO()
    csv.writer(header, lineterminator="\n").writerow(list(columns))
    body = io.StringIO()
    writer = csv.writer(body, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([cell_text(row.get(column)) for column in columns])
    return header.getvalue() + body.getvalue()


def write_csv(path: Path, columns: Sequence[str], rows: Iterable[Mapping[str, CellValue]]) -> Path:
    """Write rows to *path* as UTF-8 CSV and return the path."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(rows_to_csv(columns, rows), encoding="utf-8", newline="")
    logger.info("CSV written", extra={"path": str(path)})
    return path
