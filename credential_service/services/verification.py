"""Credential verification: re-derive trust from the ledger.

    InputCheck → Lookup → ModeBranch → LedgerFetch → MemoMatch → Verified

Every outcome other than Verified is raised as a VerificationRejected
subclass; an unreadable record store raises StorageError.  Unlike
issuance, nothing here is absorbed: a ledger that cannot be read yields
LedgerUnavailable, never a silently downgraded "verified".  Nothing is cached either, so a verification that failed
because the ledger was down succeeds once it is back.
"""

from __future__ import annotations

import logging

from credential_service.core.errors import (
    CredentialServiceError,
    HashMismatch,
    LedgerUnavailable,
    MalformedHash,
    NotFound,
    TransactionNotFound,
)
from credential_service.core.metrics import CREDENTIAL_VERIFICATIONS
from credential_service.ledger.client import LedgerClient
from credential_service.models.credential import (
    BlockchainProof,
    LedgerTx,
    SimulatedTx,
    VerificationResult,
)
from credential_service.repos.credential_repo import CredentialRepo
from credential_service.services.commitment import is_valid_hash

logger = logging.getLogger(__name__)


class VerificationService:
    def __init__(self, repo: CredentialRepo, ledger: LedgerClient) -> None:
        self._repo = repo
        self._ledger = ledger

    async def verify(self, credential_hash: str) -> VerificationResult:
        try:
            result = await self._verify(credential_hash)
        except CredentialServiceError as exc:
            CREDENTIAL_VERIFICATIONS.labels(outcome=exc.reason).inc()
            raise
        CREDENTIAL_VERIFICATIONS.labels(
            outcome="verified_simulated" if result.simulated_only else "verified"
        ).inc()
        return result

    async def _verify(self, credential_hash: str) -> VerificationResult:
        if not is_valid_hash(credential_hash):
            raise MalformedHash("Invalid credential hash format")

        credential = await self._repo.get_by_hash(credential_hash)
        if credential is None:
            raise NotFound("Credential not found")

        match credential.transaction:
            case SimulatedTx():
                # Lower-assurance path: the record store is the only witness.
                return VerificationResult(credential=credential, simulated_only=True)
            case LedgerTx(signature=signature):
                pass

        try:
            tx = await self._ledger.get_transaction(signature)
        except Exception as exc:
            logger.error(
                "Blockchain verification error: %s",
                exc,
                extra={"transaction_id": signature, "reason": str(exc)},
            )
            raise LedgerUnavailable("Blockchain verification failed") from exc

        if tx is None:
            logger.warning(
                "Transaction not found on blockchain",
                extra={"transaction_id": signature},
            )
            raise TransactionNotFound(
                "Blockchain verification failed: Transaction not found"
            )

        expected = credential_hash.encode("utf-8")
        if not any(payload == expected for payload in tx.memo_payloads()):
            logger.warning(
                "Hash not found in transaction",
                extra={"transaction_id": signature, "hash": credential_hash},
            )
            raise HashMismatch("Credential hash verification failed")

        return VerificationResult(
            credential=credential,
            simulated_only=False,
            blockchain_proof=BlockchainProof(
                transaction_id=signature,
                block_time=tx.block_time,
                slot=tx.slot,
                confirmations=tx.confirmations,
            ),
        )
