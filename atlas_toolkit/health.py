"""Liveness and readiness endpoints backed by named checks.

A check is a callable that raises an exception when the thing it checks is
unhealthy and returns normally otherwise. ``ChecksHandler`` calls its checks
with no arguments. ``ChecksContextHandler`` passes each check the request
context, which is the WSGI environ when the handler is served over WSGI.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from http import HTTPStatus
from typing import Any, Optional

Check = Callable[[], Any]
CheckContext = Callable[[Any], Any]

_BODIES = {
    HTTPStatus.NOT_FOUND: b"404 page not found\n",
    HTTPStatus.METHOD_NOT_ALLOWED: b"Method Not Allowed\n",
}


def _normalize_path(path: str) -> str:
    if not path:
        raise ValueError("check path must not be empty")
    return path if path.startswith("/") else "/" + path


class _ChecksHandlerBase:
    """Shared registry, routing and evaluation for both handler kinds."""

    def _setup(self, health_path: str, ready_path: str) -> None:
        self.liveness_path = _normalize_path(health_path)
        self.readiness_path = _normalize_path(ready_path)
        if self.liveness_path == self.readiness_path:
            raise ValueError(
                f"liveness and readiness share the path {self.liveness_path!r}"
            )
        self.fail_fast = False
        self._lock = threading.Lock()
        self._liveness: dict[str, Optional[Callable[..., Any]]] = {}
        self._readiness: dict[str, Optional[Callable[..., Any]]] = {}

    def _register(self, registry: dict, name: str, check) -> None:
        with self._lock:
            registry[name] = check

    def _checks_for(self, path: str):
        if path == self.readiness_path:
            return self._readiness
        if path == self.liveness_path:
            return self._liveness
        return None

    def _evaluate(self, method: str, path: str, run: Callable[[Callable[..., Any]], Any]) -> HTTPStatus:
        checks = self._checks_for(path)
        if checks is None:
            return HTTPStatus.NOT_FOUND
        if method != "GET":
            return HTTPStatus.METHOD_NOT_ALLOWED

        with self._lock:
            registered = list(checks.items())

        status = HTTPStatus.OK
        for _name, check in registered:
            if check is None:
                continue
            try:
                run(check)
            except Exception:
                status = HTTPStatus.SERVICE_UNAVAILABLE
                if self.fail_fast:
                    return status
        return status

    @staticmethod
    def _respond(status: HTTPStatus, start_response) -> list[bytes]:
        body = _BODIES.get(status, b"")
        headers = [("Content-Length", str(len(body)))]
        if body:
            headers.append(("Content-Type", "text/plain; charset=utf-8"))
        start_response(f"{status.value} {status.phrase}", headers)
        return [body]


class ChecksHandler(_ChecksHandlerBase):
    """Health endpoints whose checks take no arguments."""

    def __init__(self, health_path: str, ready_path: str) -> None:
        self._setup(health_path, ready_path)

    def add_liveness(self, name: str, check: Optional[Check]) -> None:
        """Register (or replace) a liveness check under ``name``."""
        self._register(self._liveness, name, check)

    def add_readiness(self, name: str, check: Optional[Check]) -> None:
        """Register (or replace) a readiness check under ``name``."""
        self._register(self._readiness, name, check)

    def handle(self, method: str, path: str) -> HTTPStatus:
        """Run the checks registered for ``path`` and return the status code."""
        return self._evaluate(method, path, lambda check: check())

    def __call__(self, environ, start_response):
        status = self.handle(environ.get("REQUEST_METHOD", "GET"), environ.get("PATH_INFO", "/"))
        return self._respond(status, start_response)


class ChecksContextHandler(_ChecksHandlerBase):
    """Health endpoints whose checks receive the request context."""

    def __init__(self, health_path: str, ready_path: str) -> None:
        self._setup(health_path, ready_path)

    def add_liveness(self, name: str, check: Optional[CheckContext]) -> None:
        """Register (or replace) a liveness check under ``name``."""
        self._register(self._liveness, name, check)

    def add_readiness(self, name: str, check: Optional[CheckContext]) -> None:
        """Register (or replace) a readiness check under ``name``."""
        self._register(self._readiness, name, check)

    def handle(self, method: str, path: str, context: Any) -> HTTPStatus:
        """Run the checks registered for ``path`` with ``context``."""
        return self._evaluate(method, path, lambda check: check(context))

    def __call__(self, environ, start_response):
        status = self.handle(
            environ.get("REQUEST_METHOD", "GET"), environ.get("PATH_INFO", "/"), environ
        )
        return self._respond(status, start_response)