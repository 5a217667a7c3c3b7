"""Time-to-first-byte measurement with optional response body search."""

__version__ = "0.0.1"
COPYRIGHT = "deregowski.net (c) 2020"

from .exceptions import (  # noqa: E402
    ConfigError,
    MeasurementConnectionError,
    MeasurementError,
    MeasurementReadError,
    MeasurementTimeoutError,
    SearchPatternError,
    TTFBError,
)
from .config import Settings, ensure_env_file, load_settings  # noqa: E402
from .logging_config import configure_logging  # noqa: E402
from .measure import Measurement, measure_ttfb  # noqa: E402
from .metrics import start_metrics_server  # noqa: E402
from .search import SearchResult, compile_pattern, search_body  # noqa: E402

__all__ = [
    "ConfigError",
    "MeasurementConnectionError",
    "MeasurementError",
    "MeasurementReadError",
    "MeasurementTimeoutError",
    "SearchPatternError",
    "TTFBError",
    "Settings",
    "ensure_env_file",
    "load_settings",
    "configure_logging",
    "Measurement",
    "measure_ttfb",
    "start_metrics_server",
    "SearchResult",
    "compile_pattern",
    "search_body",
]
