"""
RESPONSIBILITIES
- Open SQLite connections for the local stores.
- Serialize transactions per database file with an in-process lock.
- Translate sqlite3 failures into StoreError so nothing partial stays visible.
PROCESS OVERVIEW
1. open_connection() creates the parent directory and connects in autocommit mode.
2. transaction() acquires the per-file lock, runs BEGIN IMMEDIATE, commits or rolls back.
3. database_lock() probes lock availability for health checks.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from awms_persist.stores.base_store import StoreError, StoreInitializationError, StoreLockedError

LOCK_TIMEOUT_SEC = 10
BUSY_TIMEOUT_SEC = 5.0

_IN_PROCESS_LOCKS: dict[Path, threading.RLock] = {}
_LOCK_REGISTRY_GUARD = threading.Lock()


def _acquire_inprocess_lock(path: Path) -> threading.RLock:
    with _LOCK_REGISTRY_GUARD:
        lock = _IN_PROCESS_LOCKS.get(path)
        if lock is None:
            lock = threading.RLock()
            _IN_PROCESS_LOCKS[path] = lock
        return lock


def open_connection(path: Path) -> sqlite3.Connection:
    """Connect to the database at *path*; transactions are managed explicitly."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(
            path,
            timeout=BUSY_TIMEOUT_SEC,
            isolation_level=None,
            check_same_thread=False,
        )
    except (OSError, sqlite3.Error) as exc:
        raise StoreInitializationError(f"Cannot open store {path}: {exc}") from exc
    connection.row_factory = sqlite3.Row
    return connection


@contextmanager
def database_lock(path: Path) -> Iterator[None]:
    """Hold the in-process lock guarding *path*."""

    lock = _acquire_inprocess_lock(path.resolve())
    if not lock.acquire(timeout=LOCK_TIMEOUT_SEC):
        raise StoreLockedError(f"Timeout acquiring in-process lock for {path}")
    try:
        yield
    finally:
        lock.release()


@contextmanager
def transaction(connection: sqlite3.Connection, path: Path) -> Iterator[sqlite3.Connection]:
    """Run one write transaction; any sqlite3 error rolls it back as StoreError."""

    with database_lock(path):
        try:
            connection.execute("BEGIN IMMEDIATE")
            yield connection
            connection.execute("COMMIT")
        except sqlite3.Error as exc:
            _rollback(connection)
            raise StoreError(f"Transaction rejected for {path.name}: {exc}") from exc
        except BaseException:
            _rollback(connection)
            raise


def _rollback(connection: sqlite3.Connection) -> None:
    if connection.in_transaction:
        connection.execute("ROLLBACK")
