"""
RESPONSIBILITIES
- Lay out the AWMS data root: store/ for awms.db, exports/ for CSV and ZIP
  output, logs/ for app.log.
PROCESS OVERVIEW
1. ensure_structure() expands the root (default ~/AWMS) and creates the three directories.
2. store_file_path() / exports_dir() return locations inside that layout.
"""

from __future__ import annotations

import os
from pathlib import Path

LAYOUT: tuple[str, ...] = ("store", "exports", "logs")


def ensure_structure(root: str | os.PathLike[str] | None = None) -> dict[str, Path]:
    """Create the data root layout and return ``{name: directory}``."""

    base = (Path(root) if root is not None else Path.home() / "AWMS").expanduser().resolve()
    directories = {name: base / name for name in LAYOUT}
    for directory in directories.values():
        directory.mkdir(parents=True, exist_ok=True)
    return directories


def store_file_path(filename: str, root: str | os.PathLike[str] | None = None) -> Path:
    return ensure_structure(root)["store"] / filename


def exports_dir(root: str | os.PathLike[str] | None = None) -> Path:
    """Directory that receives CSV and ZIP exports when no target is given."""

    return ensure_structure(root)["exports"]
