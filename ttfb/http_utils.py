"""Shared HTTP client utilities using httpx."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

import httpx

from . import __version__

USER_AGENT = f"ttfb/{__version__}"
DEFAULT_TIMEOUT = 30.0

_client: httpx.Client | None = None
_lock = threading.Lock()


def build_timeout(timeout: float | None) -> httpx.Timeout:
    """Return an ``httpx.Timeout`` applying ``timeout`` to every phase."""
    return httpx.Timeout(DEFAULT_TIMEOUT if timeout is None else timeout)


def create_client(timeout: float | None = None) -> httpx.Client:
    """Return a new pooled ``httpx.Client`` that keeps connections alive."""
    return httpx.Client(
        timeout=build_timeout(timeout),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def get_client() -> httpx.Client:
    """Return the process-wide ``httpx.Client`` instance."""
    global _client
    with _lock:
        if _client is None:
            _client = create_client()
        return _client


def close_client() -> None:
    """Close the process-wide ``httpx.Client`` instance if open."""
    global _client
    with _lock:
        if _client is not None:
            _client.close()
            _client = None


@contextmanager
def disposable_client(timeout: float | None = None) -> Iterator[httpx.Client]:
    """Yield a client that never reuses connections and close it afterwards.

    Keep-alive is disabled so every request opens a fresh TCP/TLS
    connection, which is closed as soon as the response is.
    """

    client = httpx.Client(
        timeout=build_timeout(timeout),
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT, "Connection": "close"},
        limits=httpx.Limits(max_keepalive_connections=0),
    )
    try:
        yield client
    finally:
        client.close()
