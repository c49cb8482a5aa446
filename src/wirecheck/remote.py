"""Fetching provider artifact sets published over HTTP.

Contract artifacts are often uploaded by the provider's CI and read by the
consumer's.  :class:`ReadOnlyFetcher` downloads them with :mod:`httpx` and
never sends anything but ``GET``/``HEAD``; a request that would not be a
plain read raises :class:`ReadOnlyViolation`, as does any fetch while
``WIRECHECK_OFFLINE=1`` is set.
"""

from __future__ import annotations

import os
from ipaddress import ip_address
from typing import Any
from urllib.parse import urlparse

import httpx

from wirecheck.errors import ReadOnlyViolation

READ_METHODS = frozenset({"GET", "HEAD"})


def is_remote(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


class ReadOnlyFetcher:
    """Downloads artifact files; use as a context manager.

    ``allowed_hosts`` restricts which hosts may be contacted (``None``
    allows any).  Literal private and loopback addresses are refused
    unless ``allow_private`` is set.  ``headers`` carries e.g. a token for
    a private artifact store; ``transport`` is passed to :class:`httpx.Client`.
    """

    def __init__(
        self,
        *,
        allowed_hosts: set[str] | frozenset[str] | None = None,
        allow_private: bool = False,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.allowed_hosts = allowed_hosts
        self.allow_private = allow_private
        self._client_options: dict[str, Any] = {
            "timeout": timeout,
            "headers": headers or {},
            "transport": transport,
            "follow_redirects": True,
        }
        self._client: httpx.Client | None = None

    def __enter__(self) -> "ReadOnlyFetcher":
        self._client = httpx.Client(**self._client_options)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def fetch_text(self, url: str) -> str:
        """Download *url* and return its body."""
        response = self._send("GET", url)
        if response.is_error:
            raise ReadOnlyViolation(
                f"Fetching artifact failed with HTTP {response.status_code}", artifact=url
            )
        return response.text

    def _send(self, method: str, url: str) -> httpx.Response:
        if os.environ.get("WIRECHECK_OFFLINE") == "1":
            raise ReadOnlyViolation("remote artifacts are disabled (WIRECHECK_OFFLINE=1)", artifact=url)
        if method.upper() not in READ_METHODS:
            raise ReadOnlyViolation(f"{method} is not allowed for artifact fetching", artifact=url)
        self._check_host(url)
        if self._client is None:
            raise RuntimeError("ReadOnlyFetcher is not open; use it in a `with` block")
        try:
            return self._client.request(method, url)
        except httpx.RequestError as exc:
            raise ReadOnlyViolation(f"Fetching artifact failed: {exc}", artifact=url) from exc

    def _check_host(self, url: str) -> None:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https"):
            raise ReadOnlyViolation(f"unsupported URL scheme {parsed.scheme!r}", artifact=url)
        host = parsed.hostname or ""
        if self.allowed_hosts and host not in self.allowed_hosts:
            raise ReadOnlyViolation(
                f"host {host!r} is not in allowed_hosts ({', '.join(sorted(self.allowed_hosts))})",
                artifact=url,
            )
        if self.allow_private:
            return
        try:
            address = ip_address(host)
        except ValueError:
            return  # a name, not an address literal
        if address.is_private or address.is_loopback:
            raise ReadOnlyViolation(f"private/loopback address {host} is refused", artifact=url)
