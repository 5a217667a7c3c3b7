import pytest
from prometheus_client import REGISTRY

from ttfb import (
    MeasurementConnectionError,
    MeasurementReadError,
    MeasurementTimeoutError,
    measure_ttfb,
)
from ttfb import metrics
from ttfb.metrics import start_metrics_server


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_start_metrics_server_env(monkeypatch):
    port = {}

    def fake_start(port_arg):
        port["value"] = port_arg

    monkeypatch.setattr("ttfb.metrics.start_http_server", fake_start)
    monkeypatch.setenv("TTFB_METRICS_PORT", "9100")
    start_metrics_server(None)
    assert port["value"] == 9100


def test_start_metrics_server_default(monkeypatch):
    port = {}

    def fake_start(port_arg):
        port["value"] = port_arg

    monkeypatch.setattr("ttfb.metrics.start_http_server", fake_start)
    monkeypatch.delenv("TTFB_METRICS_PORT", raising=False)
    monkeypatch.setattr(metrics.settings, "metrics_port", None)
    start_metrics_server(None)
    assert port["value"] == 8000


def test_measurement_updates_metrics(local_server):
    ok_before = _sample("ttfb_measurements_total", outcome="ok")
    count_before = _sample("ttfb_seconds_count")
    measure_ttfb(local_server.url("/hello"), no_cache=True)
    assert _sample("ttfb_measurements_total", outcome="ok") == ok_before + 1
    assert _sample("ttfb_seconds_count") == count_before + 1

    non_ok_before = _sample("ttfb_measurements_total", outcome="non_ok")
    measure_ttfb(local_server.url("/missing"), no_cache=True)
    assert _sample("ttfb_measurements_total", outcome="non_ok") == non_ok_before + 1


def test_failure_counts_outcome(closed_port):
    before = _sample("ttfb_measurements_total", outcome="connection_error")
    with pytest.raises(MeasurementConnectionError):
        measure_ttfb(f"http://127.0.0.1:{closed_port}/", no_cache=True, timeout=2)
    assert _sample("ttfb_measurements_total", outcome="connection_error") == before + 1


def test_timeout_counts_outcome(local_server):
    before = _sample("ttfb_measurements_total", outcome="timeout")
    with pytest.raises(MeasurementTimeoutError):
        measure_ttfb(local_server.url("/hello?delay=1"), no_cache=True, timeout=0.2)
    assert _sample("ttfb_measurements_total", outcome="timeout") == before + 1


def test_read_error_counts_outcome(local_server):
    before = _sample("ttfb_measurements_total", outcome="read_error")
    with pytest.raises(MeasurementReadError):
        measure_ttfb(local_server.url("/partial"), no_cache=True, timeout=5)
    assert _sample("ttfb_measurements_total", outcome="read_error") == before + 1
