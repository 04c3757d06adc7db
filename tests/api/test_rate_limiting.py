"""Rate limiting tests.

The default window allows 100 requests per 15 minutes per key.  The
credential routes are limited; health and metrics are not.
"""

from __future__ import annotations

import jwt
from fastapi.testclient import TestClient

from credential_service.api.ratelimit import set_rate_limiter
from credential_service.services.rate_limiter import InMemoryRateLimiter
from tests.conftest import mint_token

LIMIT = 100
HASH = "0" * 64


def test_requests_within_limit_are_not_throttled(client: TestClient) -> None:
    for _ in range(5):
        resp = client.get(f"/v1/credentials/verify/{HASH}")
        assert resp.status_code == 404


def test_requests_over_limit_get_429_with_retry_after(client: TestClient) -> None:
    statuses = [
        client.get(f"/v1/credentials/verify/{HASH}").status_code
        for _ in range(LIMIT + 1)
    ]

    assert statuses[:LIMIT] == [404] * LIMIT
    assert statuses[-1] == 429

    resp = client.get(f"/v1/credentials/verify/{HASH}")
    assert resp.status_code == 429
    assert 0 < int(resp.headers["retry-after"]) <= 900
    assert resp.headers["x-ratelimit-remaining"] == "0"


def test_users_have_separate_windows(client: TestClient) -> None:
    token_a = mint_token(username="11")
    token_b = mint_token(username="12")
    payload = {"studentId": "S1", "credentialType": "degree"}

    for _ in range(LIMIT + 1):
        client.post(
            "/v1/credentials/issue",
            json=payload,
            headers={"Authorization": f"Bearer {token_a}"},
        )

    resp = client.post(
        "/v1/credentials/issue",
        json=payload,
        headers={"Authorization": f"Bearer {token_b}"},
    )
    assert resp.status_code == 201


def test_self_signed_subjects_share_the_ip_window(client: TestClient) -> None:
    # Each request carries a fresh subject, but no token verifies.
    statuses = [
        client.get(
            f"/v1/credentials/verify/{HASH}",
            headers={
                "Authorization": f"Bearer {jwt.encode({'sub': f'x{i}'}, 'k' * 32)}"
            },
        ).status_code
        for i in range(LIMIT + 1)
    ]

    assert statuses[:LIMIT] == [404] * LIMIT
    assert statuses[-1] == 429


def test_health_is_never_limited(client: TestClient) -> None:
    for _ in range(LIMIT + 5):
        assert client.get("/health").status_code == 200


def test_limiter_backend_can_be_swapped(client: TestClient) -> None:
    set_rate_limiter(InMemoryRateLimiter())
    assert client.get(f"/v1/credentials/verify/{HASH}").status_code == 404
