"""
RESPONSIBILITIES
- Manage the SQLite-backed local record store for uploaded workbooks.
- Persist parsed sheets and the original bytes together, one transaction per record.
- Assign never-reused ascending identifiers and serve read-only copies to viewers.
PROCESS OVERVIEW
1. init_store() opens ~/AWMS/store/awms.db and creates the files table.
2. add() inserts one FileRecord and returns the id assigned by SQLite AUTOINCREMENT.
3. get_all()/get() decode records in ascending id order.
4. delete() removes a record if present; clear() empties the collection.
5. healthcheck() verifies permissions, schema and lock availability.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from pathlib import Path

from awms.core.errors import RecordNotFoundError
from awms_persist.schemas.filerec import FileRecord
from awms_persist.stores.base_store import (
    BaseStore,
    PersistHealth,
    StoreError,
    StoreInitializationError,
    StoreValidationError,
)
from awms_persist.utils.log import get_logger
from awms_persist.utils.paths import ensure_structure, store_file_path
from awms_persist.utils.sqlite_io import database_lock, open_connection, transaction

DATABASE_FILE = "awms.db"
FILES_TABLE = "files"

_FILES_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {FILES_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT NOT NULL,
    uploaded_at INTEGER NOT NULL,
    sheets TEXT NOT NULL,
    original_bytes BLOB NOT NULL
)
"""


class FileRecordStore(BaseStore):
    """Durable store of FileRecords keyed by an auto-assigned integer id."""

    def __init__(
        self,
        root: Path | str | None = None,
        *,
        path: Path | str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        resolved_root = Path(root).expanduser().resolve() if root else None
        super().__init__(logger=logger or get_logger("file_store"))
        self._root = resolved_root
        self.path = Path(path).expanduser().resolve() if path else store_file_path(DATABASE_FILE, self._root)

    # BaseStore API -----------------------------------------------------------------

    def init_store(self) -> Path:
        if self.is_open:
            return self.path
        self.logger.debug("Opening file store at %s", self.path)
        connection = open_connection(self.path)
        try:
            with transaction(connection, self.path):
                connection.execute(_FILES_SCHEMA)
        except StoreError as exc:
            connection.close()
            raise StoreInitializationError(str(exc)) from exc
        self._connection = connection
        return self.path

    def add(self, record: FileRecord) -> int:
        """Persist *record* (any caller-supplied id is ignored) and return the new id."""

        if not record.filename.strip():
            raise StoreValidationError("filename is required")
        payload = (
            record.filename,
            int(record.uploaded_at),
            record.sheets_json(),
            sqlite3.Binary(record.original_bytes),
        )
        with transaction(self.connection, self.path) as conn:
            cursor = conn.execute(
                f"INSERT INTO {FILES_TABLE} (filename, uploaded_at, sheets, original_bytes) VALUES (?, ?, ?, ?)",
                payload,
            )
            record_id = int(cursor.lastrowid)
        self.logger.info(
            "Stored %s as #%d (%d sheets, %d bytes)",
            record.filename,
            record_id,
            len(record.sheets),
            len(record.original_bytes),
        )
        return record_id

    def get_all(self) -> list[FileRecord]:
        with transaction(self.connection, self.path) as conn:
            rows = conn.execute(f"SELECT * FROM {FILES_TABLE} ORDER BY id").fetchall()
        return [FileRecord.from_row(row) for row in rows]

    def get(self, record_id: int) -> FileRecord | None:
        with transaction(self.connection, self.path) as conn:
            row = conn.execute(f"SELECT * FROM {FILES_TABLE} WHERE id = ?", (int(record_id),)).fetchone()
        return FileRecord.from_row(row) if row is not None else None

    def require(self, record_id: int) -> FileRecord:
        record = self.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def delete(self, record_id: int) -> None:
        with transaction(self.connection, self.path) as conn:
            cursor = conn.execute(f"DELETE FROM {FILES_TABLE} WHERE id = ?", (int(record_id),))
        if cursor.rowcount:
            self.logger.info("Deleted stored file #%d", record_id)
        else:
            self.logger.debug("Delete of #%d skipped: not present", record_id)

    def clear(self) -> None:
        with transaction(self.connection, self.path) as conn:
            conn.execute(f"DELETE FROM {FILES_TABLE}")
        self.logger.info("Cleared all stored files")

    def count(self) -> int:
        with transaction(self.connection, self.path) as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM {FILES_TABLE}").fetchone()
        return int(row[0])

    def healthcheck(self) -> PersistHealth:
        issues: list[str] = []
        dependencies = {"sqlite3": bool(sqlite3.sqlite_version)}
        writable_paths: dict[str, bool] = {}
        locked: list[str] = []
        counts: dict[str, int] = {}

        try:
            ensure_structure(self._root)
        except OSError as exc:
            issues.append(f"Failed to ensure root directories: {exc}")

        target_dir = self.path.parent
        target_dir.mkdir(parents=True, exist_ok=True)
        writable_paths[str(target_dir)] = os.access(target_dir, os.W_OK | os.X_OK)

        was_open = self.is_open
        try:
            self.init_store()
            counts[FILES_TABLE] = self.count()
        except StoreError as exc:
            issues.append(str(exc))
        finally:
            if not was_open:
                self.close()
        try:
            with database_lock(self.path):
                pass
        except StoreError as exc:
            locked.append(str(self.path))
            issues.append(f"Lock acquisition failed: {exc}")

        return PersistHealth(
            dependencies=dependencies,
            writable_paths=writable_paths,
            locked_paths=locked,
            issues=issues,
            record_counts=counts,
        )


# Convenience facade ---------------------------------------------------------------


def init_file_store(root: Path | None = None) -> Path:
    store = FileRecordStore(root)
    try:
        return store.init_store()
    finally:
        store.close()
