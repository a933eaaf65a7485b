"""
RESPONSIBILITIES
- Define shared interfaces and exceptions for SQLite-backed stores.
- Outline the init/add/get_all/delete/clear/healthcheck workflow used by concrete stores.
- Own the connection handle so callers get explicit init/teardown.
PROCESS OVERVIEW
1. init_store -> resolve target path, open the connection and create the schema.
2. add -> persist one record inside a single transaction and return its id.
3. get_all -> read every record back in ascending id order.
4. delete/clear -> remove records; deleting a missing id is not an error.
5. healthcheck -> verify directory write access, schema and lock availability.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from awms.core.errors import (
    StoreError,
    StoreInitializationError,
    StoreValidationError,
)


class StoreLockedError(StoreError):
    """Raised when the store lock cannot be acquired in time."""


@dataclass(slots=True)
class PersistHealth:
    """Structured report produced by health checks."""

    dependencies: dict[str, bool]
    writable_paths: dict[str, bool]
    locked_paths: list[str]
    issues: list[str] = field(default_factory=list)
    record_counts: dict[str, int] = field(default_factory=dict)

    def is_healthy(self) -> bool:
        """Return True when no issues are observed."""

        return not self.issues and all(self.dependencies.values()) and all(
            self.writable_paths.values()
        )


class BaseStore(ABC):
    """Abstract class shared by concrete SQLite-backed stores."""

    path: Path

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._connection: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise StoreInitializationError(
                f"{self.__class__.__name__} used before init_store(): {self.path}"
            )
        return self._connection

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    @abstractmethod
    def init_store(self) -> Path:
        """Open the database and ensure the schema exists, returning its path."""

    @abstractmethod
    def healthcheck(self) -> "PersistHealth":
        """Run diagnostics for the store and return a structured report."""

    def close(self) -> None:
        """Close the connection; the store may be re-initialized afterwards."""

        if self._connection is not None:
            self._connection.close()
            self._connection = None
            self.logger.debug("Closed store connection %s", self.path)

    def __enter__(self):
        self.init_store()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = [
    "BaseStore",
    "PersistHealth",
    "StoreError",
    "StoreInitializationError",
    "StoreLockedError",
    "StoreValidationError",
]
