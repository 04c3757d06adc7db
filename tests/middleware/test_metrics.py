"""Tests for Prometheus metrics middleware.

Prometheus counters live in the global default registry and only go up,
so every assertion is on a DELTA: read before, act, read after.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _get_sample(name: str, labels: dict | None = None) -> float:
    """Read a metric sample's current value from the global registry."""
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    """Each HTTP request should increment the request counter."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    client.get("/health")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/health", "status_code": "200"},
    )
    assert after - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    """Each request should add an observation to the duration histogram."""
    before = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    client.get("/health")
    after = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    assert after - before >= 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    """GET /metrics should return Prometheus text exposition format."""
    # Make a request first so there's data to report
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    # Prometheus text format contains HELP and TYPE lines
    assert "http_requests_total" in resp.text
    assert "http_request_duration_seconds" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    """Requests to /metrics itself should not be counted in metrics."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    client.get("/metrics")
    client.get("/metrics")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    # Should not have incremented (we skip /metrics in the middleware)
    assert after == before


def test_path_parameters_do_not_create_new_series(client: TestClient) -> None:
    """Verify requests are labeled by route template, not by hash."""
    template = "/v1/credentials/verify/{credential_hash}"
    labels = {"method": "GET", "endpoint": template, "status_code": "404"}
    before = _get_sample("http_requests_total", labels)

    client.get(f"/v1/credentials/verify/{'1' * 64}")
    client.get(f"/v1/credentials/verify/{'2' * 64}")

    assert _get_sample("http_requests_total", labels) - before == 2
    assert (
        _get_sample(
            "http_requests_total",
            {
                "method": "GET",
                "endpoint": f"/v1/credentials/verify/{'1' * 64}",
                "status_code": "404",
            },
        )
        == 0
    )


def test_metrics_endpoint_exposes_anchoring_counters(
    client: TestClient, auth_headers: dict[str, str]
) -> None:
    client.post(
        "/v1/credentials/issue",
        json={"studentId": "S1", "credentialType": "degree"},
        headers=auth_headers,
    )
    text = client.get("/metrics").text
    assert 'credential_issuances_total{mode="simulated"}' in text
