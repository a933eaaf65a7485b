"""`awms_io` top-level package exports the workbook parsing and CSV helpers."""

# Module responsibilities:
# - Re-export the parser, CSV writer and sheet schema so consumers have a stable API surface.

from __future__ import annotations

from .csv_writer import rows_to_csv, write_csv
from .schema import CellValue, RowRecord, SheetData
from .workbook_reader import parse_workbook

__all__ = [
    "CellValue",
    "RowRecord",
    "SheetData",
    "parse_workbook",
    "rows_to_csv",
    "write_csv",
]

__version__ = "0.1.0"
