"""Configuration helpers for AWMS runtime files.

Loads ``awms.yaml`` (or the file named by ``AWMS_CONFIG``) and applies
environment overrides on top, so a deployment can point the local store and
the optional server mirror somewhere else without editing files.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urljoin

import yaml
from dotenv import load_dotenv

from awms.core.errors import ConfigError


CONFIG_ENV = "AWMS_CONFIG"
DEFAULT_CONFIG_NAME = "awms.yaml"
DEFAULT_SERVER_URL = "http://localhost:3000"
DEFAULT_UPLOAD_PATH = "/upload"
DEFAULT_HEALTH_PATH = "/health"
DEFAULT_TIMEOUT = 10.0
DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_PAGE_SIZE = 10
PAGE_SIZE_CHOICES: tuple[int, ...] = (10, 20, 50, 100)

ROOT_ENV = "AWMS_ROOT"
SERVER_URL_ENV = "AWMS_SERVER_URL"
SYNC_ENABLED_ENV = "AWMS_SYNC_ENABLED"
SYNC_ENDPOINT_ENV = "AWMS_SYNC_ENDPOINT"
SYNC_TIMEOUT_ENV = "AWMS_SYNC_TIMEOUT_SEC"
PAGE_SIZE_ENV = "AWMS_PAGE_SIZE"

_TRUE_TOKENS = {"1", "true", "yes", "on"}
_FALSE_TOKENS = {"0", "false", "no", "off", ""}


@dataclass(slots=True)
class SyncConfig:
    """Remote mirror settings; ``enabled=False`` is distinct from a blank endpoint."""

    enabled: bool = False
    endpoint: str | None = None
    timeout_sec: float = DEFAULT_TIMEOUT

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "SyncConfig":
        if not data:
            return cls()
        endpoint = data.get("endpoint")
        return cls(
            enabled=_parse_bool(data.get("enabled", False), "sync.enabled"),
            endpoint=str(endpoint) if endpoint is not None else None,
            timeout_sec=_parse_float(data.get("timeout_sec", DEFAULT_TIMEOUT), "sync.timeout_sec"),
        )

    def resolve_endpoint(self, server_url: str = DEFAULT_SERVER_URL) -> str | None:
        """Return the absolute upload URL, or None when sync is disabled.

        A blank endpoint falls back to ``/upload``; relative endpoints are
        joined onto *server_url*.
        """

        if not self.enabled:
            return None
        endpoint = (self.endpoint or "").strip() or DEFAULT_UPLOAD_PATH
        return urljoin(server_url.rstrip("/") + "/", endpoint)


@dataclass(slots=True)
class AwmsConfig:
    """Resolved configuration for the local store, viewer and server mirror."""

    root: Path | None = None
    server_url: str = DEFAULT_SERVER_URL
    sync: SyncConfig = field(default_factory=SyncConfig)
    health_path: str = DEFAULT_HEALTH_PATH
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL
    request_timeout_sec: float = DEFAULT_TIMEOUT
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AwmsConfig":
        root_raw = data.get("root")
        sync_raw = data.get("sync")
        if sync_raw is not None and not isinstance(sync_raw, Mapping):
            raise ConfigError("sync must be a mapping")
        page_size = _parse_int(data.get("page_size", DEFAULT_PAGE_SIZE), "page_size")
        if page_size < 1:
            raise ConfigError("page_size must be >= 1")
        return cls(
            root=Path(os.path.expandvars(str(root_raw))).expanduser() if root_raw else None,
            server_url=str(data.get("server_url", DEFAULT_SERVER_URL)),
            sync=SyncConfig.from_mapping(sync_raw),
            health_path=str(data.get("health_path", DEFAULT_HEALTH_PATH)),
            poll_interval_sec=_parse_float(data.get("poll_interval_sec", DEFAULT_POLL_INTERVAL), "poll_interval_sec"),
            request_timeout_sec=_parse_float(data.get("request_timeout_sec", DEFAULT_TIMEOUT), "request_timeout_sec"),
            page_size=page_size,
        )

    @property
    def upload_url(self) -> str | None:
        return self.sync.resolve_endpoint(self.server_url)


def load_config(path: str | Path | None = None, *, environ: Mapping[str, str] | None = None) -> AwmsConfig:
    """Load configuration from YAML, then apply environment overrides."""

    if environ is None:
        load_dotenv(override=False)
        environ = os.environ
    config_path = _resolve_config_path(path, environ)
    data: dict[str, Any] = {}
    if config_path is not None:
        data = _load_yaml(config_path)
    config = AwmsConfig.from_mapping(data)
    _apply_env(config, environ)
    return config


def _resolve_config_path(path: str | Path | None, environ: Mapping[str, str]) -> Path | None:
    if path is not None:
        explicit = Path(path).expanduser()
        if not explicit.exists():
            raise ConfigError(f"config file not found: {explicit}")
        return explicit
    from_env = environ.get(CONFIG_ENV)
    if from_env:
        candidate = Path(from_env).expanduser()
        if not candidate.exists():
            raise ConfigError(f"{CONFIG_ENV} points to a missing file: {candidate}")
        return candidate
    default = Path.cwd() / DEFAULT_CONFIG_NAME
    return default if default.exists() else None


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid yaml in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a mapping")
    return data


def _apply_env(config: AwmsConfig, environ: Mapping[str, str]) -> None:
    root = environ.get(ROOT_ENV)
    if root:
        config.root = Path(root).expanduser()
    server_url = environ.get(SERVER_URL_ENV)
    if server_url:
        config.server_url = server_url.strip()
    enabled = environ.get(SYNC_ENABLED_ENV)
    if enabled is not None:
        config.sync.enabled = _parse_bool(enabled, SYNC_ENABLED_ENV)
    endpoint = environ.get(SYNC_ENDPOINT_ENV)
    if endpoint is not None:
        config.sync.endpoint = endpoint
    timeout = environ.get(SYNC_TIMEOUT_ENV)
    if timeout:
        config.sync.timeout_sec = _parse_float(timeout, SYNC_TIMEOUT_ENV)
    page_size = environ.get(PAGE_SIZE_ENV)
    if page_size:
        value = _parse_int(page_size, PAGE_SIZE_ENV)
        if value < 1:
            raise ConfigError(f"{PAGE_SIZE_ENV} must be >= 1")
        config.page_size = value


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    token = str(value).strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number") from exc


def _parse_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer") from exc


__all__ = [
    "AwmsConfig",
    "SyncConfig",
    "load_config",
    "DEFAULT_UPLOAD_PATH",
    "PAGE_SIZE_CHOICES",
]
