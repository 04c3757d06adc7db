"""Health and readiness endpoints.

  /health  full snapshot of store, ledger and signing wallet.  503 with
           status=degraded when the store or the ledger is unreachable;
           an unfunded wallet alone is still healthy.
  /ready   can this instance take traffic?  Only the record store is
           critical: without the ledger, issuance falls back to simulated
           anchors and verification of those still works.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from credential_service.api.dependencies import (
    get_credential_repo,
    get_liveness_monitor,
)
from credential_service.repos.credential_repo import CredentialRepo
from credential_service.services.liveness import LivenessMonitor

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(
    monitor: Annotated[LivenessMonitor, Depends(get_liveness_monitor)],
) -> JSONResponse:
    snap = await monitor.snapshot()
    body = {
        "status": "healthy" if snap.healthy else "degraded",
        "services": {
            "database": {
                "connected": snap.store.connected,
                "latencyMs": snap.store.latency_ms,
            },
            "solana": {
                "connected": snap.ledger.connected,
                "network": snap.ledger.network,
            },
        },
        "wallet": {
            "publicKey": snap.wallet.public_key,
            "balance": snap.wallet.balance,
            "status": snap.wallet.status,
            "canIssueTransactions": snap.wallet.can_issue_transactions,
        },
    }
    return JSONResponse(
        status_code=(
            status.HTTP_200_OK
            if snap.healthy
            else status.HTTP_503_SERVICE_UNAVAILABLE
        ),
        content=body,
    )


@router.get("/ready")
async def ready(
    repo: Annotated[CredentialRepo, Depends(get_credential_repo)],
) -> Response:
    if await repo.ping():
        return Response(status_code=status.HTTP_200_OK)
    return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
