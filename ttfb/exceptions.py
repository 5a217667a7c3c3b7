"""Custom exception classes for the ttfb tool."""

from __future__ import annotations


class TTFBError(Exception):
    """Base class for ttfb exceptions."""


class MeasurementError(TTFBError):
    """Raised when a TTFB measurement cannot be completed.

    ``ttfb`` holds the time to first byte in seconds when it was measured
    before the failure, otherwise ``None``.
    """

    def __init__(self, message: str, url: str, ttfb: float | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.ttfb = ttfb


class MeasurementConnectionError(MeasurementError, ConnectionError):
    """Raised when the request cannot be built or the connection fails."""


class MeasurementReadError(MeasurementError):
    """Raised when reading the response body fails after headers arrived."""


class MeasurementTimeoutError(MeasurementError, TimeoutError):
    """Raised when the request exceeds its deadline."""


class SearchPatternError(TTFBError, ValueError):
    """Raised when the body search pattern is not a valid regular expression."""


class ConfigError(TTFBError, ValueError):
    """Raised when configuration values are missing or invalid."""
