"""Workbook parsing for uploaded spreadsheets."""

# Module responsibilities:
# - Turn raw upload bytes into ordered SheetData (one per worksheet) without touching disk.
# - Give every row of a sheet the same header key set, filling missing cells with None.
# - Reject anything that is not an OOXML workbook or delimited text with ParseError.

from __future__ import annotations

import csv
import io
import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence

from openpyxl import load_workbook

from awms.core.errors import ParseError

from .schema import CellValue, RowRecord, SheetData
from .utils.log import get_logger

logger = get_logger("workbook_reader")

ZIP_SIGNATURE = b"PK\x03\x04"
OLE2_SIGNATURE = b"\xd0\xcf\x11\xe0"
CSV_SHEET_NAME = "Sheet1"
EMPTY_HEADER = "__EMPTY"
TEXT_SUFFIXES = (".csv", ".txt", ".tsv")

_INT_RE = re.compile(r"^[+-]?(0|[1-9]\d*)$")
_FLOAT_RE = re.compile(r"^[+-]?((0|[1-9]\d*)(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def parse_workbook(data: bytes, filename: Optional[str] = None) -> List[SheetData]:
    """Parse workbook bytes into sheets, in workbook order.

    Args:
        data: Full file content.
        filename: Original name, used only to recognize delimited text uploads.

    Returns:
        One SheetData per worksheet.

    Raises:
        ParseError: When the bytes are not a readable spreadsheet container.
    """

    if not data:
        raise ParseError("File is empty")

    if data[:4] == ZIP_SIGNATURE:
        sheets = _parse_ooxml(data)
    elif data[:4] == OLE2_SIGNATURE:
        raise ParseError("Legacy binary .xls workbooks are not supported; save as .xlsx")
    else:
        sheets = [_parse_delimited(_decode_text(data, filename))]

    logger.info(
        "Parsed workbook %s: %s",
        filename or "<bytes>",
        ", ".join(f"{sheet.name}({sheet.row_count})" for sheet in sheets) or "no sheets",
    )
    return sheets


def build_sheet(name: str, raw_rows: Iterable[Sequence[Any]]) -> SheetData:
    """Build a SheetData using the first non-blank row as header."""

    materialized = [list(row or ()) for row in raw_rows]
    width = _used_width(materialized)
    header: Optional[List[str]] = None
    rows: List[RowRecord] = []
    for values in materialized:
        if _is_blank(values):
            continue
        if header is None:
            header = _make_header(values[:width], width)
            continue
        record: RowRecord = {}
        for idx, column in enumerate(header):
            record[column] = normalize_cell(values[idx]) if idx < len(values) else None
        rows.append(record)
    return SheetData(name=name, columns=header or [], rows=rows)


def normalize_cell(value: Any) -> CellValue:
    """Map an openpyxl cell value onto the JSON scalar set."""

    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    text = str(value)
    return text if text != "" else None


def coerce_text(value: str) -> CellValue:
    """Infer a scalar from a delimited-text cell.

    Matching is exact: padded text such as `` 5 `` stays a string.
    """

    if value == "":
        return None
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value):
        return float(value)
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return value


# Helpers ----------------------------------------------------------------------


def _parse_ooxml(data: bytes) -> List[SheetData]:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:  # noqa: BLE001 - openpyxl raises many types for corrupt input
        raise ParseError(f"Not a readable spreadsheet: {exc}") from exc
    try:
        return [build_sheet(ws.title, ws.iter_rows(values_only=True)) for ws in workbook.worksheets]
    except Exception as exc:  # noqa: BLE001 - corrupt sheet XML surfaces lazily
        raise ParseError(f"Failed to read worksheet data: {exc}") from exc
    finally:
        workbook.close()


def _decode_text(data: bytes, filename: Optional[str]) -> str:
    if b"\x00" in data[:4096]:
        raise ParseError("Binary content is not a recognizable spreadsheet")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        if filename and filename.lower().endswith(TEXT_SUFFIXES):
            return data.decode("latin-1")
        raise ParseError("Content is neither a workbook nor UTF-8 delimited text") from exc


def _parse_delimited(text: str) -> SheetData:
    first_line = text.split("\n", 1)[0]
    if "," in first_line:
        delimiter = ","
    elif "\t" in first_line:
        delimiter = "\t"
    elif ";" in first_line:
        delimiter = ";"
    else:
        delimiter = ","
    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        raw_rows = [[coerce_text(cell) for cell in row] for row in reader]
    except csv.Error as exc:
        raise ParseError(f"Malformed delimited text: {exc}") from exc
    return build_sheet(CSV_SHEET_NAME, raw_rows)


def _is_blank(values: Sequence[Any]) -> bool:
    return all(value is None or (isinstance(value, str) and not value.strip()) for value in values)


def _used_width(rows: Sequence[Sequence[Any]]) -> int:
    width = 0
    for values in rows:
        for idx in range(len(values) - 1, -1, -1):
            value = values[idx]
            if value is not None and not (isinstance(value, str) and not value.strip()):
                width = max(width, idx + 1)
                break
    return width


def _make_header(values: Sequence[Any], width: int) -> List[str]:
    header: List[str] = []
    used: set[str] = set()
    seen: dict[str, int] = {}
    for idx in range(width):
        cell = normalize_cell(values[idx]) if idx < len(values) else None
        base = str(cell).strip() if cell is not None else ""
        base = base or EMPTY_HEADER
        count = seen.get(base, 0)
        name = base if count == 0 else f"{base}_{count}"
        while name in used:
            count += 1
            name = f"{base}_{count}"
        seen[base] = count + 1
        used.add(name)
        header.append(name)
    return header
