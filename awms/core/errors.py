"""Custom exceptions used across AWMS."""


class AwmsError(Exception):
    """Base error for the application."""


class ConfigError(AwmsError):
    """Configuration related error."""


class ReadError(AwmsError):
    """Raised when an uploaded source cannot be read."""


class ParseError(AwmsError):
    """Raised when bytes are not a recognizable spreadsheet container."""


class StoreError(AwmsError):
    """Base exception type for persistence-layer failures."""


class StoreInitializationError(StoreError):
    """Raised when a store is used before init or cannot be initialized."""


class StoreValidationError(StoreError):
    """Raised when input data fails validation rules."""


class RecordNotFoundError(StoreError):
    """Raised when a requested record id is not in the store."""

    def __init__(self, record_id: int) -> None:
        super().__init__(f"Stored file #{record_id} not found")
        self.record_id = record_id


class SyncWarning(AwmsError):
    """Remote mirror failed; the local record is unaffected."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExportError(AwmsError):
    """Raised when there is nothing to export."""


class RemoteRequestError(AwmsError):
    """Raised for failed calls against the remote REST collections."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
