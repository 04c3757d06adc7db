"""Prometheus scrape endpoint (text exposition format, not JSON).

Issuance and verification counters live beside the HTTP metrics, e.g.:

  credential_issuances_total{mode="simulated"} 12.0
  credential_verifications_total{outcome="hash_mismatch"} 1.0

Restrict access at the network edge in production; the counters reveal
traffic shape and ledger health.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
