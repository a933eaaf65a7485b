"""Best-effort mirroring of uploaded workbooks to the AWMS server."""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from typing import Any

import requests
from requests.exceptions import RequestException, Timeout

from awms.config import DEFAULT_TIMEOUT
from awms.core.errors import SyncWarning
from awms.core.logger import get_logger

LOGGER = get_logger()

USER_AGENT = "AWMS-Sync/1.0"
FORM_FIELD = "file"


@dataclass(slots=True)
class SyncResult:
    """Outcome of one mirror attempt; ``warning`` is set when it failed."""

    ok: bool
    endpoint: str
    status_code: int | None = None
    warning: SyncWarning | None = None
    payload: dict[str, Any] | None = None

    @property
    def message(self) -> str:
        if self.ok:
            return f"Server upload ok ({self.endpoint})"
        return str(self.warning) if self.warning else f"Server upload failed ({self.endpoint})"


class RemoteSync:
    """Single-shot multipart POST of the original bytes; never retries."""

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> None:
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        self._timeout = timeout_sec
        self._logger = logger or LOGGER

    def sync(self, filename: str, data: bytes, endpoint: str, *, timeout_sec: float | None = None) -> SyncResult:
        """POST *data* as form field ``file``; failures come back as a warning result."""

        mime = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        try:
            response = self._session.post(
                endpoint,
                files={FORM_FIELD: (filename, data, mime)},
                timeout=timeout_sec or self._timeout,
            )
        except Timeout as exc:
            return self._warn(endpoint, filename, SyncWarning(f"Server upload timed out: {endpoint}"), exc)
        except RequestException as exc:
            return self._warn(
                endpoint, filename, SyncWarning(f"Server upload error: {type(exc).__name__}: {exc}"), exc
            )

        status = response.status_code
        if not 200 <= status < 300:
            warning = SyncWarning(f"Server upload failed with HTTP {status}", status_code=status)
            return self._warn(endpoint, filename, warning, None, status_code=status)

        payload = _safe_json(response)
        self._logger.info("sync.upload ok endpoint=%s file=%s status=%d", endpoint, filename, status)
        return SyncResult(ok=True, endpoint=endpoint, status_code=status, payload=payload)

    def close(self) -> None:
        self._session.close()

    def _warn(
        self,
        endpoint: str,
        filename: str,
        warning: SyncWarning,
        exc: BaseException | None,
        *,
        status_code: int | None = None,
    ) -> SyncResult:
        self._logger.warning(
            "sync.upload failed endpoint=%s file=%s reason=%s",
            endpoint,
            filename,
            warning,
            exc_info=exc,
        )
        return SyncResult(ok=False, endpoint=endpoint, status_code=status_code, warning=warning)


def _safe_json(response: requests.Response) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
