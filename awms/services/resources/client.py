"""Thin client for the server's employees/tasks/performance collections."""

from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import quote, urljoin

import requests
from requests.exceptions import RequestException

from awms.config import DEFAULT_TIMEOUT
from awms.core.errors import RemoteRequestError
from awms.core.logger import get_logger

LOGGER = get_logger()

RESOURCES: tuple[str, ...] = ("employees", "tasks", "performance")
API_PREFIX = "/api/"


class ResourceClient:
    """GET/POST/DELETE against ``/api/<resource>``; a 404 on delete counts as done."""

    def __init__(
        self,
        server_url: str,
        *,
        session: requests.Session | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT,
        logger: logging.Logger | None = None,
    ) -> None:
        self._base = server_url.rstrip("/") + "/"
        self._session = session or requests.Session()
        self._timeout = timeout_sec
        self._logger = logger or LOGGER

    def list(self, resource: str) -> list[dict[str, Any]]:
        response = self._request("GET", self._url(resource))
        body = self._json(response, resource)
        if not isinstance(body, list):
            raise RemoteRequestError(f"Unexpected {resource} listing payload", status_code=response.status_code)
        return body

    def create(self, resource: str, document: Mapping[str, Any]) -> dict[str, Any]:
        response = self._request("POST", self._url(resource), json=dict(document))
        body = self._json(response, resource)
        if not isinstance(body, dict):
            raise RemoteRequestError(f"Unexpected {resource} create payload", status_code=response.status_code)
        self._logger.info("resources.create %s id=%s", resource, body.get("_id"))
        return body

    def delete(self, resource: str, doc_id: str) -> bool:
        """Delete one document; returns False when the server reported 404."""

        url = self._url(resource) + "/" + quote(str(doc_id), safe="")
        response = self._request("DELETE", url, allowed=(404,))
        if response.status_code == 404:
            self._logger.info("resources.delete %s id=%s already absent", resource, doc_id)
            return False
        return True

    def close(self) -> None:
        self._session.close()

    def _url(self, resource: str) -> str:
        if resource not in RESOURCES:
            raise ValueError(f"Unknown resource '{resource}'; expected one of {', '.join(RESOURCES)}")
        return urljoin(self._base, API_PREFIX.lstrip("/") + resource)

    def _request(
        self,
        method: str,
        url: str,
        *,
        json: Mapping[str, Any] | None = None,
        allowed: tuple[int, ...] = (),
    ) -> requests.Response:
        try:
            response = self._session.request(method, url, json=json, timeout=self._timeout)
        except RequestException as exc:
            self._logger.warning("resources.http error method=%s url=%s error=%s", method, url, exc)
            raise RemoteRequestError(f"{method} {url} failed: {exc}") from exc
        status = response.status_code
        if 200 <= status < 300 or status in allowed:
            return response
        detail = _error_detail(response)
        raise RemoteRequestError(f"{method} {url} returned HTTP {status}: {detail}", status_code=status)

    @staticmethod
    def _json(response: requests.Response, resource: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteRequestError(
                f"{resource} response is not JSON", status_code=response.status_code
            ) from exc


def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return str(body)[:200]
