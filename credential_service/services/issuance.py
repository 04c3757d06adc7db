"""Credential issuance: commit, anchor (or fall back), persist.

    Validate → Commit → FundsCheck → LedgerWrite → [SimulatedFallback] → Persist

Availability wins over on-chain assurance at issuance time: an unfunded
signing account or any ledger failure produces a simulated anchor
instead of an error.  The ledger step reports what happened as a
LedgerWriteOutcome value and the pipeline branches on it explicitly.

Storage failures are never absorbed.  If the record store rejects the
credential it does not exist, whatever happened on the ledger; a
confirmed memo cannot be rolled back and is simply orphaned.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from credential_service.core.errors import InvalidInput
from credential_service.core.metrics import CREDENTIAL_ISSUANCES, LEDGER_WRITE_FAILURES
from credential_service.ledger.client import LedgerClient
from credential_service.models.credential import (
    Credential,
    CredentialRecord,
    LedgerTx,
    SimulatedTx,
    TransactionRef,
)
from credential_service.repos.credential_repo import CredentialRepo
from credential_service.services.commitment import (
    build_commitment,
    canonical_issued_at,
    new_nonce,
)
from credential_service.services.key_manager import SigningKeyManager

logger = logging.getLogger(__name__)

CredentialType = Literal["degree", "diploma", "certificate", "transcript"]

SIMULATED_TOKEN_BYTES = 32


class CredentialPayload(BaseModel):
    """Issuer-supplied fields.  Everything else is derived by the pipeline."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    student_id: str = Field(
        alias="studentId",
        min_length=1,
        max_length=64,
        pattern=r"^[A-Za-z0-9_.-]+$",
    )
    credential_type: CredentialType = Field(alias="credentialType")
    # Optional echo of the issuer; when present it must match the
    # authenticated issuer, which is always the value committed to.
    university_id: int | str | None = Field(default=None, alias="universityId")


# --- Ledger write outcome ---------------------------------------------------


@dataclass(frozen=True, slots=True)
class Confirmed:
    signature: str


@dataclass(frozen=True, slots=True)
class Unfunded:
    balance: int


@dataclass(frozen=True, slots=True)
class WriteFailed:
    reason: str


LedgerWriteOutcome = Confirmed | Unfunded | WriteFailed


def simulated_transaction() -> SimulatedTx:
    return SimulatedTx(token=secrets.token_hex(SIMULATED_TOKEN_BYTES))


class IssuanceService:
    def __init__(
        self,
        repo: CredentialRepo,
        ledger: LedgerClient,
        key_manager: SigningKeyManager,
        *,
        min_balance_lamports: int = 5000,
    ) -> None:
        self._repo = repo
        self._ledger = ledger
        self._key_manager = key_manager
        self._min_balance = min_balance_lamports

    async def issue(self, payload: Mapping[str, Any], issuer_id: str) -> Credential:
        # --- Validate ---
        try:
            data = CredentialPayload.model_validate(dict(payload))
        except ValidationError as exc:
            logger.warning("Rejected issuance payload: %d error(s)", exc.error_count())
            raise InvalidInput(
                "Invalid input",
                errors=exc.errors(
                    include_url=False, include_context=False, include_input=False
                ),
            ) from None

        university_id = str(issuer_id).strip()
        if not university_id:
            raise InvalidInput(
                "Invalid input",
                errors=[{"loc": ["issuer_id"], "msg": "issuer id must be non-empty"}],
            )
        if data.university_id is not None and str(data.university_id) != university_id:
            logger.warning("Rejected issuance for foreign universityId")
            raise InvalidInput(
                "Invalid input",
                errors=[
                    {
                        "loc": ["universityId"],
                        "msg": "universityId must match the authenticated issuer",
                    }
                ],
            )

        # --- Commit ---
        # One clock read: this exact value is hashed and persisted.
        issued_at = canonical_issued_at()
        nonce = new_nonce()
        credential_hash = build_commitment(
            data.student_id, university_id, data.credential_type, issued_at, nonce
        )

        # --- FundsCheck + LedgerWrite ---
        outcome = await self._anchor(credential_hash)

        # --- SimulatedFallback ---
        transaction: TransactionRef
        match outcome:
            case Confirmed(signature=signature):
                transaction = LedgerTx(signature=signature)
            case Unfunded() | WriteFailed():
                transaction = simulated_transaction()

        # --- Persist --- (StorageError propagates)
        credential = await self._repo.create(
            CredentialRecord(
                student_id=data.student_id,
                university_id=university_id,
                credential_type=data.credential_type,
                issued_at=issued_at,
                nonce=nonce,
                hash=credential_hash,
                transaction=transaction,
            )
        )

        CREDENTIAL_ISSUANCES.labels(
            mode="simulated" if credential.is_simulated else "ledger"
        ).inc()
        logger.info(
            "Issued credential id=%s simulated=%s",
            credential.id,
            credential.is_simulated,
            extra={"hash": credential.hash, "transaction_id": credential.transaction_id},
        )
        return credential

    async def _anchor(self, credential_hash: str) -> LedgerWriteOutcome:
        """At most one ledger write attempt.  Never raises."""
        keypair = self._key_manager.get_signing_keypair()
        public_key = str(keypair.pubkey())

        try:
            balance = await self._ledger.get_balance(public_key)
        except Exception as exc:
            return self._write_failed(exc, credential_hash)

        if balance <= self._min_balance:
            logger.warning(
                "Using simulated transaction - insufficient funds balance=%d",
                balance,
                extra={"balance": balance, "public_key": public_key},
            )
            return Unfunded(balance=balance)

        try:
            signature = await self._ledger.submit_memo(
                credential_hash.encode("utf-8"), keypair
            )
        except Exception as exc:
            return self._write_failed(exc, credential_hash)

        logger.info(
            "Credential recorded on blockchain tx=%s",
            signature,
            extra={"transaction_id": signature, "hash": credential_hash},
        )
        return Confirmed(signature=signature)

    @staticmethod
    def _write_failed(exc: Exception, credential_hash: str) -> WriteFailed:
        LEDGER_WRITE_FAILURES.inc()
        reason = str(exc) or type(exc).__name__
        logger.error(
            "Blockchain error - using simulated transaction: %s",
            reason,
            extra={"reason": reason, "hash": credential_hash},
        )
        return WriteFailed(reason=reason)
