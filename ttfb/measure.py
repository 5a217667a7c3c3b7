"""Time-to-first-byte measurement for a single HTTP GET."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterator

import httpx
import structlog

from .exceptions import (
    MeasurementConnectionError,
    MeasurementError,
    MeasurementReadError,
    MeasurementTimeoutError,
)
from .config import validate_timeout
from .http_utils import build_timeout, disposable_client, get_client
from .metrics import MEASUREMENTS, TRANSFER_SECONDS, TTFB_SECONDS

logger = structlog.get_logger(__name__)


@dataclass
class Measurement:
    """Outcome of one TTFB measurement.

    Attributes
    ----------
    url:
        Requested URL.
    ttfb:
        Seconds from request dispatch until the first body byte arrived,
        or until end-of-stream for an empty body.
    total:
        Seconds from request dispatch until the body was fully read.
    response:
        The ``httpx.Response`` with its body already read.
    """

    url: str
    ttfb: float
    total: float
    response: httpx.Response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def ok(self) -> bool:
        """Whether the server answered ``200 OK``."""
        return self.response.status_code == httpx.codes.OK

    @property
    def body(self) -> bytes:
        return self.response.content

    @property
    def text(self) -> str:
        return self.response.text

    @property
    def headers(self) -> dict[str, list[str]]:
        """Map each header name to its values in received order."""
        headers = self.response.headers
        return {name: headers.get_list(name) for name in headers.keys()}


class _ProbedStream(httpx.SyncByteStream):
    """Replay the probe chunk ahead of the unread remainder of a stream."""

    def __init__(
        self, head: bytes, rest: Iterator[bytes], stream: httpx.SyncByteStream
    ) -> None:
        self._head = head
        self._rest = rest
        self._stream = stream

    def __iter__(self) -> Iterator[bytes]:
        if self._head:
            yield self._head
        yield from self._rest

    def close(self) -> None:
        self._stream.close()


def _until(chunks: Iterator[bytes], deadline: float | None) -> Iterator[bytes]:
    """Yield ``chunks`` and raise ``httpx.ReadTimeout`` once ``deadline`` passes."""

    for chunk in chunks:
        if deadline is not None and time.perf_counter() > deadline:
            raise httpx.ReadTimeout("request deadline exceeded")
        yield chunk
    if deadline is not None and time.perf_counter() > deadline:
        raise httpx.ReadTimeout("request deadline exceeded")


def _failure(
    error_cls: type[MeasurementError],
    outcome: str,
    url: str,
    exc: Exception,
    ttfb: float | None = None,
) -> MeasurementError:
    MEASUREMENTS.labels(outcome=outcome).inc()
    logger.warning("ttfb_failed", url=url, kind=outcome, error=str(exc), ttfb=ttfb)
    return error_cls(f"{url}: {exc}", url, ttfb=ttfb)


def _measure(
    client: httpx.Client, url: str, timeout: float | None, pooled: bool
) -> Measurement:
    try:
        request = client.build_request(
            "GET",
            url,
            timeout=httpx.USE_CLIENT_DEFAULT if timeout is None else build_timeout(timeout),
        )
    except httpx.InvalidURL as exc:
        raise _failure(MeasurementConnectionError, "connection_error", url, exc) from exc

    limit = client.timeout.read if timeout is None else timeout
    start = time.perf_counter()
    try:
        response = client.send(request, stream=True)
    except httpx.TimeoutException as exc:
        raise _failure(MeasurementTimeoutError, "timeout", url, exc) from exc
    except httpx.RequestError as exc:
        raise _failure(MeasurementConnectionError, "connection_error", url, exc) from exc

    # httpx bounds each read; the deadline bounds the whole exchange.
    stream = response.stream
    chunks = _until(iter(stream), None if limit is None else start + limit)
    try:
        head = next((chunk for chunk in chunks if chunk), b"")
        ttfb = time.perf_counter() - start
    except httpx.TimeoutException as exc:
        response.close()
        raise _failure(MeasurementTimeoutError, "timeout", url, exc) from exc
    except httpx.HTTPError as exc:
        response.close()
        raise _failure(MeasurementReadError, "read_error", url, exc) from exc

    response.stream = _ProbedStream(head, chunks, stream)
    try:
        response.read()
        total = time.perf_counter() - start
    except httpx.TimeoutException as exc:
        raise _failure(MeasurementTimeoutError, "timeout", url, exc, ttfb) from exc
    except httpx.HTTPError as exc:
        raise _failure(MeasurementReadError, "read_error", url, exc, ttfb) from exc
    finally:
        response.close()

    measurement = Measurement(url=url, ttfb=ttfb, total=total, response=response)
    MEASUREMENTS.labels(outcome="ok" if measurement.ok else "non_ok").inc()
    TTFB_SECONDS.observe(ttfb)
    TRANSFER_SECONDS.observe(total)
    logger.info(
        "ttfb_measured",
        url=url,
        status=response.status_code,
        ttfb=ttfb,
        total=total,
        bytes=len(response.content),
        pooled=pooled,
    )
    return measurement


def measure_ttfb(
    url: str,
    *,
    no_cache: bool = False,
    client: httpx.Client | None = None,
    timeout: float | None = None,
) -> Measurement:
    """Issue one GET to ``url`` and return its :class:`Measurement`.

    Parameters
    ----------
    url:
        Absolute ``http`` or ``https`` URL.
    no_cache:
        Use a disposable client that never reuses connections instead of
        the pooled one.
    client:
        Pooled client to send the request with. Defaults to the
        process-wide client from :func:`ttfb.http_utils.get_client`.
        Ignored when ``no_cache`` is set.
    timeout:
        Deadline in seconds for the whole request, also applied to each
        connect and read. ``None`` keeps the client's own timeout.

    Raises
    ------
    ConfigError
        ``timeout`` is not positive.
    MeasurementConnectionError
        The request could not be built or the connection failed.
    MeasurementReadError
        Reading the body failed after the headers arrived.
    MeasurementTimeoutError
        A phase of the request exceeded its deadline.
    """

    if timeout is not None:
        validate_timeout(timeout)
    if no_cache:
        with disposable_client(timeout) as fresh:
            return _measure(fresh, url, timeout, pooled=False)
    return _measure(client or get_client(), url, timeout, pooled=True)
