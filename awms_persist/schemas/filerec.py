"""
RESPONSIBILITIES
- Define the FileRecord persisted once per successful upload-and-parse.
- Convert between the record and the row layout of the files table.
PROCESS OVERVIEW
1. The ingestion pipeline builds a FileRecord without id.
2. FileRecordStore.add() assigns the id; with_id() returns the committed copy.
3. from_row() rebuilds records (sheets decoded from JSON) for readers.
"""

from __future__ import annotations

import json
import sqlite3
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable, MutableMapping

from awms_io.schema import SheetData


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class FileRecord:
    filename: str
    sheets: tuple[SheetData, ...]
    original_bytes: bytes
    uploaded_at: int = field(default_factory=now_ms)
    id: int | None = None

    @classmethod
    def build(
        cls,
        filename: str,
        sheets: Iterable[SheetData],
        original_bytes: bytes,
        *,
        uploaded_at: int | None = None,
    ) -> "FileRecord":
        return cls(
            filename=filename,
            sheets=tuple(sheets),
            original_bytes=bytes(original_bytes),
            uploaded_at=uploaded_at if uploaded_at is not None else now_ms(),
        )

    @property
    def sheet_names(self) -> list[str]:
        return [sheet.name for sheet in self.sheets]

    @property
    def uploaded_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.uploaded_at / 1000, tz=timezone.utc)

    def with_id(self, record_id: int) -> "FileRecord":
        return replace(self, id=record_id)

    def sheets_json(self) -> str:
        return json.dumps([sheet.to_dict() for sheet in self.sheets], ensure_ascii=False)

    def to_dict(self) -> MutableMapping[str, object]:
        """Metadata view (no blob) for listings and logs."""

        return {
            "id": self.id,
            "filename": self.filename,
            "uploaded_at": self.uploaded_at,
            "sheets": [{"name": sheet.name, "rows": sheet.row_count} for sheet in self.sheets],
            "size": len(self.original_bytes),
        }

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "FileRecord":
        sheets = tuple(SheetData.from_dict(item) for item in json.loads(row["sheets"]))
        return cls(
            id=int(row["id"]),
            filename=str(row["filename"]),
            uploaded_at=int(row["uploaded_at"]),
            sheets=sheets,
            original_bytes=bytes(row["original_bytes"]),
        )
