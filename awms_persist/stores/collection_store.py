"""
RESPONSIBILITIES
- Keep offline copies of employees, tasks and performance documents.
- Share the awms.db file with the file store; one autoincrement table per collection.
PROCESS OVERVIEW
1. init_store() creates the three collection tables if missing.
2. add() stores a JSON document and returns its id.
3. get_all() returns documents with their id merged in, ascending id.
4. delete()/clear() remove documents; unknown ids are ignored.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from awms_persist.stores.base_store import (
    BaseStore,
    PersistHealth,
    StoreError,
    StoreInitializationError,
    StoreValidationError,
)
from awms_persist.stores.file_store import DATABASE_FILE
from awms_persist.utils.log import get_logger
from awms_persist.utils.paths import store_file_path
from awms_persist.utils.sqlite_io import open_connection, transaction

COLLECTIONS: tuple[str, ...] = ("employees", "tasks", "performance")


class CollectionStore(BaseStore):
    """Offline document collections keyed by auto-assigned integer ids."""

    def __init__(
        self,
        root: Path | str | None = None,
        *,
        path: Path | str | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        resolved_root = Path(root).expanduser().resolve() if root else None
        super().__init__(logger=logger or get_logger("collection_store"))
        self._root = resolved_root
        self.path = Path(path).expanduser().resolve() if path else store_file_path(DATABASE_FILE, self._root)

    def init_store(self) -> Path:
        if self.is_open:
            return self.path
        connection = open_connection(self.path)
        try:
            with transaction(connection, self.path):
                for name in COLLECTIONS:
                    connection.execute(
                        f"CREATE TABLE IF NOT EXISTS {name} ("
                        "id INTEGER PRIMARY KEY AUTOINCREMENT, document TEXT NOT NULL)"
                    )
        except StoreError as exc:
            connection.close()
            raise StoreInitializationError(str(exc)) from exc
        self._connection = connection
        return self.path

    def add(self, collection: str, document: Mapping[str, Any]) -> int:
        table = self._table(collection)
        payload = {key: value for key, value in document.items() if key != "id"}
        try:
            encoded = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StoreValidationError(f"{collection} document is not JSON serializable: {exc}") from exc
        with transaction(self.connection, self.path) as conn:
            cursor = conn.execute(f"INSERT INTO {table} (document) VALUES (?)", (encoded,))
            doc_id = int(cursor.lastrowid)
        self.logger.info("Stored %s document #%d", collection, doc_id)
        return doc_id

    def get_all(self, collection: str) -> list[dict[str, Any]]:
        table = self._table(collection)
        with transaction(self.connection, self.path) as conn:
            rows = conn.execute(f"SELECT id, document FROM {table} ORDER BY id").fetchall()
        documents: list[dict[str, Any]] = []
        for row in rows:
            document = json.loads(row["document"])
            document["id"] = int(row["id"])
            documents.append(document)
        return documents

    def delete(self, collection: str, doc_id: int) -> None:
        table = self._table(collection)
        with transaction(self.connection, self.path) as conn:
            conn.execute(f"DELETE FROM {table} WHERE id = ?", (int(doc_id),))

    def clear(self, collection: str) -> None:
        table = self._table(collection)
        with transaction(self.connection, self.path) as conn:
            conn.execute(f"DELETE FROM {table}")
        self.logger.info("Cleared %s collection", collection)

    def healthcheck(self) -> PersistHealth:
        issues: list[str] = []
        counts: dict[str, int] = {}
        was_open = self.is_open
        try:
            self.init_store()
            for name in COLLECTIONS:
                counts[name] = len(self.get_all(name))
        except StoreError as exc:
            issues.append(str(exc))
        finally:
            if not was_open:
                self.close()
        target_dir = self.path.parent
        return PersistHealth(
            dependencies={"sqlite3": True},
            writable_paths={str(target_dir): target_dir.exists() and os.access(target_dir, os.W_OK)},
            locked_paths=[],
            issues=issues,
            record_counts=counts,
        )

    @staticmethod
    def _table(collection: str) -> str:
        if collection not in COLLECTIONS:
            raise StoreValidationError(
                f"Unknown collection '{collection}'; expected one of {', '.join(COLLECTIONS)}"
            )
        return collection
