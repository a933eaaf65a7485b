"""Online/offline signal derived from the server health probe."""

from __future__ import annotations

import logging
import threading
from typing import Callable
from urllib.parse import urljoin

import requests
from requests.exceptions import RequestException

from awms.config import DEFAULT_HEALTH_PATH, DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT
from awms.core.logger import get_logger

LOGGER = get_logger()

ONLINE = "online"
OFFLINE = "offline"

Listener = Callable[[str], None]


class ConnectivityMonitor:
    """Probe ``GET <server>/health``; 2xx means online, anything else offline."""

    def __init__(
        self,
        server_url: str,
        *,
        health_path: str = DEFAULT_HEALTH_PATH,
        session: requests.Session | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT,
        poll_interval_sec: float = DEFAULT_POLL_INTERVAL,
        logger: logging.Logger | None = None,
    ) -> None:
        self.health_url = urljoin(server_url.rstrip("/") + "/", health_path)
        self._session = session or requests.Session()
        self._timeout = timeout_sec
        self._interval = poll_interval_sec
        self._logger = logger or LOGGER
        self._listeners: list[Listener] = []
        self._state: bool | None = None
        self._state_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_online(self) -> bool | None:
        """Last observed signal, None before the first probe."""

        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for state changes; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def probe(self) -> bool:
        try:
            response = self._session.get(self.health_url, timeout=self._timeout)
        except RequestException as exc:
            self._logger.debug("connectivity probe failed url=%s error=%s", self.health_url, exc)
            return False
        return 200 <= response.status_code < 300

    def check(self) -> bool:
        """Probe once, publish the signal on change, and return it."""

        online = self.probe()
        with self._state_lock:
            changed = online != self._state
            self._state = online
        if changed:
            signal = ONLINE if online else OFFLINE
            self._logger.info("connectivity %s (%s)", signal, self.health_url)
            for listener in list(self._listeners):
                try:
                    listener(signal)
                except Exception:  # noqa: BLE001 - one listener must not block the others
                    self._logger.exception("connectivity listener %r failed on %s", listener, signal)
        return online

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="awms-connectivity", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 2.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def close(self) -> None:
        self.stop()
        self._session.close()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.check()
            except Exception:  # noqa: BLE001 - the poll loop outlives unexpected errors
                self._logger.exception("connectivity poll failed url=%s", self.health_url)
            self._stop.wait(self._interval)
