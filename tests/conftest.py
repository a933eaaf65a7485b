from __future__ import annotations

import faulthandler
import io
import os
import socket
import sys
import tempfile
import threading
import traceback
from pathlib import Path
from types import FrameType
from typing import Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Module-level loggers resolve ~/AWMS/logs at import time.
os.environ["HOME"] = tempfile.mkdtemp(prefix="awms-home-")
for _name in ("AWMS_CONFIG", "AWMS_ROOT", "AWMS_SERVER_URL", "AWMS_SYNC_ENABLED", "AWMS_SYNC_ENDPOINT"):
    os.environ.pop(_name, None)

faulthandler.enable()  # Ensure crashes emit tracebacks.
socket.setdefaulttimeout(10)

from openpyxl import Workbook

from awms.core.logger import reset_logger
from awms_persist.stores.file_store import FileRecordStore


def _snapshot_thread_stacks() -> Dict[int, str]:
    frames: Dict[int, FrameType] = sys._current_frames()  # type: ignore[attr-defined]
    stacks: Dict[int, str] = {}
    for ident, frame in frames.items():
        stacks[ident] = "".join(traceback.format_stack(frame))
    return stacks


@pytest.fixture(autouse=True, scope="session")
def _thread_diagnostics() -> None:
    """Dump live non-daemon threads at the end of the test session."""

    yield

    stacks = _snapshot_thread_stacks()
    lingering: list[threading.Thread] = []
    for thread in threading.enumerate():
        if thread.daemon or thread is threading.current_thread():
            continue
        thread.join(timeout=2)
        if thread.is_alive():
            lingering.append(thread)

    if lingering:
        print("\n[pytest] lingering threads detected:", file=sys.stderr)
        for thread in lingering:
            stack = stacks.get(thread.ident, "<no stack>\n")
            print(
                f"- Thread {thread.name} (ident={thread.ident}) still alive after tests", file=sys.stderr
            )
            print(stack, file=sys.stderr)


@pytest.fixture(autouse=True)
def _fresh_logger() -> None:
    """Drop handlers a CLI invocation pointed at its own root or captured stdout."""

    yield
    reset_logger()


def build_xlsx(sheets: dict[str, list[list[object]]]) -> bytes:
    """Return xlsx bytes with one worksheet per entry, in insertion order."""

    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(title=name)
        for row in rows:
            worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def xlsx_factory():
    return build_xlsx


@pytest.fixture
def store(tmp_path: Path):
    file_store = FileRecordStore(tmp_path / "persist")
    file_store.init_store()
    yield file_store
    file_store.close()
