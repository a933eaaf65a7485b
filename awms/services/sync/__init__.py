"""Remote mirror of uploaded workbooks."""

from .remote import RemoteSync, SyncResult

__all__ = [
    "RemoteSync",
    "SyncResult",
]
