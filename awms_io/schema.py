"""Shared schemas for parsed workbook data."""

# Module responsibilities:
# - Define the scalar cell type and the per-sheet row container.
# - Keep the JSON form explicit so stores can persist sheets as text.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

CellValue = Optional[Union[str, int, float, bool]]
RowRecord = Dict[str, CellValue]


@dataclass(frozen=True)
class SheetData:
    """One worksheet: name, header order and rows sharing the same key set."""

    name: str
    columns: List[str] = field(default_factory=list)
    rows: List[RowRecord] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "columns": list(self.columns), "rows": [dict(row) for row in self.rows]}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SheetData":
        rows = [dict(row) for row in payload.get("rows") or []]
        columns = list(payload.get("columns") or (list(rows[0].keys()) if rows else []))
        return cls(name=str(payload["name"]), columns=columns, rows=rows)
