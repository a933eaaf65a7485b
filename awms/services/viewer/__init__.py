"""Viewer over stored workbooks: record list, detail paging/search, exports."""

from .browser import RecordBrowser, RecordSummary
from .detail import DetailView, page_count, row_matches

__all__ = [
    "DetailView",
    "RecordBrowser",
    "RecordSummary",
    "page_count",
    "row_matches",
]
