"""Ready-made health checks: DNS resolution and HTTP GET."""

from __future__ import annotations

import datetime
import socket
import threading
import urllib.error
import urllib.request
from collections.abc import Callable
from typing import Union

Timeout = Union[float, int, datetime.timedelta]


class CheckFailed(Exception):
    """Raised by a probe when the probed service is not healthy."""


def _seconds(timeout: Timeout) -> float:
    if isinstance(timeout, datetime.timedelta):
        return timeout.total_seconds()
    return float(timeout)


def dns_probe_check(host: str, timeout: Timeout) -> Callable[[], None]:
    """Return a check that fails unless ``host`` resolves within ``timeout``."""
    seconds = _seconds(timeout)

    def check() -> None:
        outcome: dict = {}

        def resolve() -> None:
            try:
                outcome["addrs"] = socket.getaddrinfo(host, None, type=socket.SOCK_STREAM)
            except OSError as exc:
                outcome["error"] = exc

        worker = threading.Thread(target=resolve, daemon=True)
        worker.start()
        worker.join(seconds)
        if worker.is_alive():
            raise CheckFailed(f"lookup {host}: timed out")
        if "error" in outcome:
            err = outcome["error"]
            raise CheckFailed(f"lookup {host}: {err}") from err
        if not outcome.get("addrs"):
            raise CheckFailed("could not resolve host")

    return check


class _NoRedirect(urllib.request.HTTPRedirectHandler):
    """Hand redirect responses back to the caller instead of following them."""

    def http_error_302(self, req, fp, code, msg, headers):
        # The redirect response itself becomes the result, so its status is seen.
        return fp

    http_error_301 = http_error_303 = http_error_307 = http_error_308 = http_error_302


def http_get_check(url: str, timeout: Timeout) -> Callable[[], None]:
    """Return a check that GETs ``url`` and fails on anything but 200 OK.

    Redirects are never followed.
    """
    seconds = _seconds(timeout)
    opener = urllib.request.build_opener(_NoRedirect)

    def check() -> None:
        try:
            with opener.open(url, timeout=seconds) as resp:
                code, reason = resp.status, resp.reason
        except urllib.error.HTTPError as exc:
            code, reason = exc.code, exc.reason
            exc.close()
        except (urllib.error.URLError, OSError) as exc:
            raise CheckFailed(str(exc)) from exc
        if code != 200:
            raise CheckFailed(f"{code}: {code} {reason}")

    return check