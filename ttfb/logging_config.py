"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog for JSON output.

    Parameters
    ----------
    level:
        Logging level applied to all loggers. ``httpx`` and ``httpcore``
        are kept at WARNING unless ``level`` is DEBUG.
    """

    logging.basicConfig(level=level, format="%(message)s")
    transport_level = level if level <= logging.DEBUG else logging.WARNING
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(transport_level)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
    )
