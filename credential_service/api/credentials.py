"""Credential issuance and verification endpoints.

- POST /v1/credentials/issue          issuer only; commits, anchors, persists
- GET  /v1/credentials/verify/{hash}  public; re-checks the ledger every time

Both are rate limited.  Domain errors are translated to HTTP here and
nowhere else (see _to_http).
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from credential_service.api.dependencies import (
    get_issuance_service,
    get_verification_service,
    require_role,
)
from credential_service.api.ratelimit import require_rate_limit
from credential_service.core.config import SETTINGS
from credential_service.core.errors import (
    CredentialServiceError,
    HashMismatch,
    InvalidInput,
    LedgerUnavailable,
    MalformedHash,
    NotFound,
    StorageError,
    TransactionNotFound,
)
from credential_service.models.principal import Principal
from credential_service.services.commitment import format_issued_at
from credential_service.services.issuance import IssuanceService
from credential_service.services.token_service import ISSUER_ROLE
from credential_service.services.verification import VerificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/credentials", tags=["credentials"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CredentialIssueOut(_CamelModel):
    id: int
    hash: str
    transaction_id: str
    issued_at: str
    is_simulated: bool


class CredentialOut(_CamelModel):
    # No nonce: it never leaves the record store.
    id: int
    student_id: str
    university_id: str
    credential_type: str
    issued_at: str


class BlockchainProofOut(_CamelModel):
    transaction_id: str
    block_time: int | None
    slot: int
    confirmations: int


class CredentialVerifyOut(_CamelModel):
    verified: bool
    simulated_only: bool
    credential: CredentialOut
    blockchain_proof: BlockchainProofOut | None = None


_STATUS_BY_ERROR: list[tuple[type[CredentialServiceError], int]] = [
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (MalformedHash, status.HTTP_400_BAD_REQUEST),
    (HashMismatch, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (TransactionNotFound, status.HTTP_404_NOT_FOUND),
    (LedgerUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def _to_http(exc: CredentialServiceError) -> HTTPException:
    status_code = next(
        (code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    detail: dict[str, Any] = {"error": exc.message, "reason": exc.reason}
    if status_code < 500 or SETTINGS.is_dev:
        detail.update(exc.details)
    return HTTPException(status_code=status_code, detail=detail)


@router.post(
    "/issue",
    response_model=CredentialIssueOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
async def issue_credential(
    payload: Annotated[dict[str, Any], Body()],
    principal: Annotated[Principal, Depends(require_role(ISSUER_ROLE))],
    service: Annotated[IssuanceService, Depends(get_issuance_service)],
) -> CredentialIssueOut:
    try:
        credential = await service.issue(payload, principal.user_id)
    except CredentialServiceError as exc:
        if isinstance(exc, StorageError):
            logger.error("Credential issuance failed: %s", exc.message)
        raise _to_http(exc) from None

    return CredentialIssueOut(
        id=credential.id,
        hash=credential.hash,
        transaction_id=credential.transaction_id,
        issued_at=format_issued_at(credential.issued_at),
        is_simulated=credential.is_simulated,
    )


@router.get(
    "/verify/{credential_hash}",
    response_model=CredentialVerifyOut,
    dependencies=[Depends(require_rate_limit())],
)
async def verify_credential(
    credential_hash: str,
    service: Annotated[VerificationService, Depends(get_verification_service)],
) -> CredentialVerifyOut:
    try:
        result = await service.verify(credential_hash)
    except CredentialServiceError as exc:
        if isinstance(exc, StorageError):
            logger.error("Credential lookup failed: %s", exc.message)
        raise _to_http(exc) from None

    credential = result.credential
    proof = result.blockchain_proof
    return CredentialVerifyOut(
        verified=result.verified,
        simulated_only=result.simulated_only,
        credential=CredentialOut(
            id=credential.id,
            student_id=credential.student_id,
            university_id=credential.university_id,
            credential_type=credential.credential_type,
            issued_at=format_issued_at(credential.issued_at),
        ),
        blockchain_proof=(
            BlockchainProofOut(
                transaction_id=proof.transaction_id,
                block_time=proof.block_time,
                slot=proof.slot,
                confirmations=proof.confirmations,
            )
            if proof is not None
            else None
        ),
    )
