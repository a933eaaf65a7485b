"""List presentation over the local record store plus bulk ZIP export."""

from __future__ import annotations

import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path, PurePath

import pandas as pd

from awms.config import DEFAULT_PAGE_SIZE
from awms.core.errors import ExportError, RecordNotFoundError
from awms.core.logger import get_logger
from awms_persist.schemas.filerec import FileRecord
from awms_persist.stores.file_store import FileRecordStore

from .detail import DetailView

LOGGER = get_logger()

ARCHIVE_NAME = "awms-files.zip"
SUMMARY_COLUMNS: tuple[str, ...] = ("id", "filename", "uploaded_at", "sheets", "size")


@dataclass(frozen=True)
class RecordSummary:
    id: int
    filename: str
    uploaded_at: datetime
    sheet_count: int
    size: int

    @classmethod
    def from_record(cls, record: FileRecord) -> "RecordSummary":
        return cls(
            id=int(record.id or 0),
            filename=record.filename,
            uploaded_at=record.uploaded_at_datetime,
            sheet_count=len(record.sheets),
            size=len(record.original_bytes),
        )

    @property
    def label(self) -> str:
        stamp = self.uploaded_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        return f"#{self.id} {self.filename}  Uploaded: {stamp} | Sheets: {self.sheet_count}"


class RecordBrowser:
    """Reads the store on demand; mutates it only through delete()."""

    def __init__(self, store: FileRecordStore, *, page_size: int = DEFAULT_PAGE_SIZE, logger=None) -> None:
        self.store = store
        self.page_size = page_size
        self.logger = logger or LOGGER
        self._records: list[FileRecord] = []

    def reload(self) -> list[FileRecord]:
        self._records = self.store.get_all()
        return list(self._records)

    @property
    def records(self) -> list[FileRecord]:
        return list(self._records)

    def list_records(self) -> list[RecordSummary]:
        return [RecordSummary.from_record(record) for record in self.reload()]

    def to_frame(self) -> pd.DataFrame:
        summaries = self.list_records()
        if not summaries:
            return pd.DataFrame(columns=list(SUMMARY_COLUMNS))
        return pd.DataFrame(
            [
                {
                    "id": item.id,
                    "filename": item.filename,
                    "uploaded_at": item.uploaded_at,
                    "sheets": item.sheet_count,
                    "size": item.size,
                }
                for item in summaries
            ],
            columns=list(SUMMARY_COLUMNS),
        )

    def open_detail(self, record_id: int) -> DetailView:
        record = self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return DetailView(record, page_size=self.page_size)

    def delete(self, record_id: int) -> list[FileRecord]:
        self.store.delete(record_id)
        return self.reload()

    def download(self, record_id: int, dest_dir: Path) -> Path:
        """Write the original bytes of a record under its original filename."""

        record = self.store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        target = dest_dir / _safe_name(record.filename)
        target.write_bytes(record.original_bytes)
        self.logger.info("Downloaded #%d to %s", record_id, target)
        return target

    def export_archive(self, dest: Path) -> Path:
        """Zip every record's original bytes; *dest* may be a directory or a .zip path."""

        records = self.reload()
        if not records:
            raise ExportError("No files to export")
        dest = Path(dest)
        target = dest / ARCHIVE_NAME if dest.suffix.lower() != ".zip" else dest
        target.parent.mkdir(parents=True, exist_ok=True)
        used: set[str] = set()
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for record in records:
                name = _unique_name(_safe_name(record.filename), used)
                archive.writestr(name, record.original_bytes)
        self.logger.info("Exported %d stored files to %s", len(records), target)
        return target


def _safe_name(filename: str) -> str:
    name = PurePath(filename.replace("\\", "/")).name
    return name or "file"


def _unique_name(name: str, used: set[str]) -> str:
    candidate = name
    counter = 1
    stem, dot, suffix = name.rpartition(".")
    while candidate in used:
        candidate = f"{stem} ({counter}).{suffix}" if dot and stem else f"{name} ({counter})"
        counter += 1
    used.add(candidate)
    return candidate
