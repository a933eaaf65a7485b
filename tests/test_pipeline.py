from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
import requests

from awms.config import SyncConfig
from awms.core.errors import ParseError, ReadError, StoreError
from awms.core.pipeline import IngestionPipeline, read_source
from awms.services.sync import RemoteSync
from awms_persist.stores.file_store import FileRecordStore


@dataclass
class MockResponse:
    status_code: int = 200
    json_data: dict[str, Any] | None = None

    def json(self) -> dict[str, Any]:
        if self.json_data is None:
            raise ValueError("JSON body not set")
        return self.json_data


class FakeSession:
    def __init__(self, response: MockResponse | None = None, error: Exception | None = None) -> None:
        self.headers: dict[str, str] = {}
        self._response = response or MockResponse()
        self._error = error
        self.posts: list[tuple[str, dict[str, Any]]] = []

    def post(self, url: str, **kwargs: Any) -> MockResponse:
        self.posts.append((url, kwargs))
        if self._error is not None:
            raise self._error
        return self._response

    def close(self) -> None:
        pass


def _pipeline(store: FileRecordStore, session: FakeSession | None = None) -> IngestionPipeline:
    remote = RemoteSync(session=session) if session is not None else None
    return IngestionPipeline(store, remote_sync=remote, clock=lambda: 1_700_000_000_000)


def test_ingest_persists_sheets_and_bytes(store: FileRecordStore, xlsx_factory) -> None:
    data = xlsx_factory({"A": [["Name"], ["Al"]], "B": [["Task"], ["Audit"], ["Review"]]})

    result = _pipeline(store).ingest_file(("roster.xlsx", data))

    assert result.status_message == f"Saved locally as #{result.record_id}. Sheets: A, B"
    assert result.row_counts == {"A": 1, "B": 2}
    assert result.sync is None
    (record,) = store.get_all()
    assert record.id == result.record_id
    assert record.original_bytes == data
    assert record.uploaded_at == 1_700_000_000_000


def test_parse_failure_leaves_store_untouched(store: FileRecordStore) -> None:
    session = FakeSession()

    with pytest.raises(ParseError):
        _pipeline(store, session).ingest(("broken.xlsx", b"PK\x03\x04garbage"), SyncConfig(enabled=True))

    assert store.count() == 0
    assert session.posts == []


def test_missing_file_raises_read_error(store: FileRecordStore, tmp_path: Path) -> None:
    with pytest.raises(ReadError):
        _pipeline(store).ingest(tmp_path / "nope.xlsx")

    assert store.count() == 0


def test_record_survives_sync_failure(store: FileRecordStore, xlsx_factory) -> None:
    session = FakeSession(error=requests.ConnectionError("connection refused"))
    data = xlsx_factory({"A": [["Name"], ["Al"]]})

    result = _pipeline(store, session).ingest_file(("roster.xlsx", data), SyncConfig(enabled=True))

    assert store.get(result.record_id) is not None
    assert result.sync is not None and not result.sync.ok
    assert "Server upload error" in (result.sync_warning or "")
    assert len(session.posts) == 1


def test_sync_posts_original_bytes_to_default_endpoint(store: FileRecordStore, xlsx_factory) -> None:
    session = FakeSession(MockResponse(200, {"message": "File uploaded successfully"}))
    data = xlsx_factory({"A": [["Name"], ["Al"]]})

    result = _pipeline(store, session).ingest_file(
        ("roster.xlsx", data), SyncConfig(enabled=True, endpoint="", timeout_sec=3)
    )

    assert result.sync is not None and result.sync.ok
    assert result.sync_warning is None
    url, kwargs = session.posts[0]
    assert url == "http://localhost:3000/upload"
    assert kwargs["timeout"] == 3
    filename, body, _mime = kwargs["files"]["file"]
    assert filename == "roster.xlsx"
    assert body == data


def test_disabled_sync_sends_nothing(store: FileRecordStore, xlsx_factory) -> None:
    session = FakeSession()
    data = xlsx_factory({"A": [["Name"], ["Al"]]})

    _pipeline(store, session).ingest(("roster.xlsx", data), SyncConfig(enabled=False, endpoint="/upload"))

    assert session.posts == []
    assert store.count() == 1


def test_progress_callback_reports_stages(store: FileRecordStore, xlsx_factory) -> None:
    stages: list[str] = []
    session = FakeSession()
    data = xlsx_factory({"A": [["Name"], ["Al"]]})

    _pipeline(store, session).ingest(
        ("roster.xlsx", data), SyncConfig(enabled=True), progress_cb=lambda stage, _detail: stages.append(stage)
    )

    assert stages == ["1/4 read", "2/4 parse", "3/4 store", "4/4 sync"]


def test_read_source_accepts_paths_and_streams(tmp_path: Path) -> None:
    target = tmp_path / "people.csv"
    target.write_bytes(b"Name\nAl\n")

    assert read_source(target) == ("people.csv", b"Name\nAl\n")
    assert read_source(str(target)) == ("people.csv", b"Name\nAl\n")

    stream = io.BytesIO(b"abc")
    stream.name = "/tmp/upload/data.csv"
    assert read_source(stream) == ("data.csv", b"abc")

    with pytest.raises(ReadError):
        read_source(io.StringIO("text"))


def test_store_rejection_propagates_and_skips_sync(store: FileRecordStore, xlsx_factory) -> None:
    store.connection.execute(
        "CREATE TRIGGER reject_files BEFORE INSERT ON files BEGIN SELECT RAISE(ABORT, 'disk full'); END"
    )
    session = FakeSession()

    with pytest.raises(StoreError):
        _pipeline(store, session).ingest(("roster.xlsx", xlsx_factory({"A": [["Name"], ["Al"]]})), SyncConfig(enabled=True))

    assert store.count() == 0
    assert session.posts == []
