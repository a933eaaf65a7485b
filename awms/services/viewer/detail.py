"""Detail view over one stored workbook: sheet selection, search, paging, CSV export."""

from __future__ import annotations

import json
import math
from pathlib import Path

import pandas as pd

from awms.config import DEFAULT_PAGE_SIZE
from awms.core.errors import ExportError
from awms_io.csv_writer import rows_to_csv, write_csv
from awms_io.schema import RowRecord, SheetData
from awms_persist.schemas.filerec import FileRecord


def row_matches(row: RowRecord, query: str) -> bool:
    """True iff the lower-cased compact JSON form of *row* contains *query*."""

    needle = query.strip().lower()
    if not needle:
        return True
    text = json.dumps(row, ensure_ascii=False, separators=(",", ":"), default=str)
    return needle in text.lower()


def page_count(total: int, page_size: int) -> int:
    return max(1, math.ceil(total / page_size))


class DetailView:
    """Transient view state for one opened record.

    State: selected sheet index, query, page size and page (1-based). Changing
    the sheet resets query and page; changing the query or page size resets
    the page; next/prev stay within ``[1, page_count]``.
    """

    def __init__(self, record: FileRecord, *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.record = record
        self.sheet_index = 0
        self.query = ""
        self.page_size = page_size
        self.page = 1
        self._filtered: list[RowRecord] = list(self.sheet.rows) if record.sheets else []

    # State ----------------------------------------------------------------------

    @property
    def sheet(self) -> SheetData:
        if not self.record.sheets:
            return SheetData(name="")
        return self.record.sheets[self.sheet_index]

    @property
    def columns(self) -> list[str]:
        return list(self.sheet.columns)

    @property
    def filtered(self) -> list[RowRecord]:
        """Copies of the matching rows; the stored record is never mutated."""

        return [dict(row) for row in self._filtered]

    @property
    def filtered_count(self) -> int:
        return len(self._filtered)

    @property
    def page_count(self) -> int:
        return page_count(len(self._filtered), self.page_size)

    # Events ---------------------------------------------------------------------

    def select_sheet(self, index: int) -> None:
        if not 0 <= index < len(self.record.sheets):
            raise IndexError(f"sheet index {index} out of range for {self.record.filename}")
        self.sheet_index = index
        self.query = ""
        self._filtered = list(self.sheet.rows)
        self.page = 1

    def select_sheet_by_name(self, name: str) -> None:
        for index, sheet in enumerate(self.record.sheets):
            if sheet.name == name:
                self.select_sheet(index)
                return
        raise KeyError(f"sheet '{name}' not found in {self.record.filename}")

    def set_filter(self, query: str) -> None:
        self.query = query.strip()
        self._filtered = [row for row in self.sheet.rows if row_matches(row, self.query)]
        self.page = 1

    def set_page_size(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.page_size = page_size
        self.page = 1

    def next_page(self) -> int:
        self.page = min(self.page + 1, self.page_count)
        return self.page

    def prev_page(self) -> int:
        self.page = max(self.page - 1, 1)
        return self.page

    def go_to_page(self, page: int) -> int:
        self.page = min(max(page, 1), self.page_count)
        return self.page

    # Views ----------------------------------------------------------------------

    def page_rows(self, page: int | None = None) -> list[RowRecord]:
        current = self.page if page is None else min(max(page, 1), self.page_count)
        start = (current - 1) * self.page_size
        return [dict(row) for row in self._filtered[start : start + self.page_size]]

    def pages(self) -> list[list[RowRecord]]:
        return [self.page_rows(number) for number in range(1, self.page_count + 1)]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._filtered, columns=self.columns)

    # Export ---------------------------------------------------------------------

    @property
    def csv_filename(self) -> str:
        return f"{self.record.filename}-{self.sheet.name}.csv"

    def export_csv(self) -> str:
        """Filtered rows of the selected sheet as CSV, ignoring pagination."""

        if not self._filtered:
            raise ExportError("No rows to export")
        return rows_to_csv(self.columns, self._filtered)

    def export_csv_to(self, directory: Path) -> Path:
        if not self._filtered:
            raise ExportError("No rows to export")
        return write_csv(Path(directory) / self.csv_filename, self.columns, self._filtered)
