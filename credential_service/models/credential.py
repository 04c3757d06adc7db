from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

SIMULATED_PREFIX = "simulated_"


@dataclass(frozen=True, slots=True)
class LedgerTx:
    """Anchor backed by a confirmed ledger transaction."""

    signature: str

    @property
    def is_simulated(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class SimulatedTx:
    """Locally generated placeholder used when no ledger write happened."""

    token: str

    @property
    def is_simulated(self) -> bool:
        return True


TransactionRef = LedgerTx | SimulatedTx


def serialize_transaction_ref(ref: TransactionRef) -> str:
    """Flatten the variant into the single persisted transaction_id string."""
    match ref:
        case SimulatedTx(token=token):
            return f"{SIMULATED_PREFIX}{token}"
        case LedgerTx(signature=signature):
            return signature
    raise TypeError(f"not a transaction reference: {ref!r}")


def parse_transaction_ref(raw: str) -> TransactionRef:
    if raw.startswith(SIMULATED_PREFIX):
        return SimulatedTx(token=raw[len(SIMULATED_PREFIX) :])
    return LedgerTx(signature=raw)


@dataclass(frozen=True, slots=True)
class CredentialRecord:
    """A fully populated credential that has not been stored yet."""

    student_id: str
    university_id: str
    credential_type: str
    issued_at: datetime
    nonce: str
    hash: str
    transaction: TransactionRef

    @property
    def transaction_id(self) -> str:
        return serialize_transaction_ref(self.transaction)

    @property
    def is_simulated(self) -> bool:
        return self.transaction.is_simulated


@dataclass(frozen=True, slots=True)
class Credential:
    """Stored credential: the anchored record, immutable after creation."""

    id: int
    student_id: str
    university_id: str
    credential_type: str
    issued_at: datetime
    nonce: str
    hash: str
    transaction: TransactionRef

    @property
    def transaction_id(self) -> str:
        return serialize_transaction_ref(self.transaction)

    @property
    def is_simulated(self) -> bool:
        return self.transaction.is_simulated

    @staticmethod
    def from_record(id: int, record: CredentialRecord) -> Credential:
        return Credential(
            id=id,
            student_id=record.student_id,
            university_id=record.university_id,
            credential_type=record.credential_type,
            issued_at=record.issued_at,
            nonce=record.nonce,
            hash=record.hash,
            transaction=record.transaction,
        )


@dataclass(frozen=True, slots=True)
class BlockchainProof:
    transaction_id: str
    block_time: int | None
    slot: int
    confirmations: int


@dataclass(frozen=True, slots=True)
class VerificationResult:
    credential: Credential
    simulated_only: bool
    blockchain_proof: BlockchainProof | None = None
    verified: bool = True
