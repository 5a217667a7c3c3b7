"""Prometheus metrics helpers for ttfb."""

import os
from prometheus_client import Counter, Histogram, start_http_server
from .config import settings

TTFB_SECONDS = Histogram(
    "ttfb_seconds",
    "Time from request dispatch to the first response body byte.",
)

# Time from dispatch until the whole body has been read.
TRANSFER_SECONDS = Histogram(
    "ttfb_transfer_seconds",
    "Total request time including the body transfer.",
)

MEASUREMENTS = Counter(
    "ttfb_measurements_total",
    "Count of TTFB measurements by outcome.",
    ["outcome"],
)


def start_metrics_server(port: int | None = None) -> None:
    """Start a Prometheus metrics HTTP server.

    Parameters
    ----------
    port:
        Port for the HTTP server. If ``None`` the value from the
        ``TTFB_METRICS_PORT`` environment variable is used when set,
        otherwise the configured ``metrics_port`` or ``8000``.
    """

    if port is None:
        env = os.getenv("TTFB_METRICS_PORT")
        if env:
            port = int(env)
        else:
            port = settings.metrics_port or 8000
    start_http_server(port)
