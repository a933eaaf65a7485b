"""
Persistence facade exposing the SQLite-backed local stores.
"""

from .schemas.filerec import FileRecord
from .stores.base_store import PersistHealth
from .stores.collection_store import COLLECTIONS, CollectionStore
from .stores.file_store import FileRecordStore, init_file_store

__all__ = [
    "COLLECTIONS",
    "CollectionStore",
    "FileRecord",
    "FileRecordStore",
    "PersistHealth",
    "init_file_store",
]
