from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Union

from awms.config import DEFAULT_SERVER_URL, SyncConfig
from awms.services.sync import RemoteSync, SyncResult
from awms_io.workbook_reader import parse_workbook
from awms_persist.schemas.filerec import FileRecord, now_ms
from awms_persist.stores.file_store import FileRecordStore

from .errors import ReadError
from .logger import get_logger


ProgressCB = Callable[[str, str], None]
Source = Union[str, Path, tuple[str, bytes], BinaryIO]


@dataclass
class IngestResult:
    record_id: int
    filename: str
    sheet_names: list[str]
    uploaded_at: int
    sync: SyncResult | None = None
    row_counts: dict[str, int] = field(default_factory=dict)

    @property
    def status_message(self) -> str:
        return f"Saved locally as #{self.record_id}. Sheets: {', '.join(self.sheet_names)}"

    @property
    def sync_warning(self) -> str | None:
        if self.sync is None or self.sync.ok:
            return None
        return self.sync.message


class IngestionPipeline:
    """Coordinates Read -> Parse -> Persist -> (optional) Mirror for one upload.

    The store add is the commit point: once it returns, the record stays even
    if the mirror step fails afterwards.
    """

    def __init__(
        self,
        store: FileRecordStore,
        *,
        remote_sync: RemoteSync | None = None,
        server_url: str = DEFAULT_SERVER_URL,
        clock: Callable[[], int] = now_ms,
        logger=None,
    ) -> None:
        self.store = store
        self.remote_sync = remote_sync
        self.server_url = server_url
        self.clock = clock
        self.logger = logger or get_logger()

    def ingest(
        self,
        source: Source,
        sync_config: SyncConfig | None = None,
        progress_cb: ProgressCB | None = None,
    ) -> int:
        """Ingest *source* and return the committed record id."""

        return self.ingest_file(source, sync_config, progress_cb).record_id

    def ingest_file(
        self,
        source: Source,
        sync_config: SyncConfig | None = None,
        progress_cb: ProgressCB | None = None,
    ) -> IngestResult:
        def progress(stage: str, detail: str = "") -> None:
            if progress_cb:
                progress_cb(stage, detail)
            self.logger.info("%s - %s", stage, detail)

        # 1. Read
        filename, data = read_source(source)
        progress("1/4 read", f"{filename} ({len(data)} bytes)")

        # 2. Parse; ParseError leaves the store untouched
        progress("2/4 parse", "Parsing file...")
        sheets = parse_workbook(data, filename)
        uploaded_at = self.clock()

        # 3. Persist
        record = FileRecord.build(filename, sheets, data, uploaded_at=uploaded_at)
        record_id = self.store.add(record)
        result = IngestResult(
            record_id=record_id,
            filename=filename,
            sheet_names=record.sheet_names,
            uploaded_at=uploaded_at,
            row_counts={sheet.name: sheet.row_count for sheet in sheets},
        )
        progress("3/4 store", result.status_message)

        # 4. Mirror
        if sync_config is not None and sync_config.enabled:
            endpoint = sync_config.resolve_endpoint(self.server_url)
            progress("4/4 sync", f"POST {endpoint}")
            remote = self._remote(sync_config)
            result.sync = remote.sync(filename, data, endpoint, timeout_sec=sync_config.timeout_sec)
            if not result.sync.ok:
                self.logger.warning("Record #%d kept local-only: %s", record_id, result.sync.message)
        return result

    def _remote(self, sync_config: SyncConfig) -> RemoteSync:
        if self.remote_sync is None:
            self.remote_sync = RemoteSync(timeout_sec=sync_config.timeout_sec, logger=self.logger)
        return self.remote_sync


def read_source(source: Source) -> tuple[str, bytes]:
    """Return (filename, full content) for a path, (name, bytes) pair or binary file object."""

    if isinstance(source, tuple):
        name, data = source
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise ReadError(f"Unreadable content for {name}: expected bytes")
        return str(name), bytes(data)

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            return path.name, path.read_bytes()
        except OSError as exc:
            raise ReadError(f"Cannot read {path}: {exc}") from exc

    name = Path(str(getattr(source, "name", "upload.bin"))).name
    try:
        data = source.read()
    except (OSError, ValueError) as exc:
        raise ReadError(f"Cannot read {name}: {exc}") from exc
    if not isinstance(data, (bytes, bytearray)):
        raise ReadError(f"Cannot read {name}: stream is not binary")
    return name, bytes(data)
