"""Ledger client interface and the in-memory ledger.

Same shape as the repos: a Protocol the services depend on, a production
implementation (solana_rpc.SolanaLedgerClient) and an in-memory one for
tests and offline development (LEDGER_BACKEND=memory).

The services only ever need four things from a ledger: an account
balance, proof the network answers (latest blockhash), a way to anchor an
opaque payload via the memo program, and a way to read a transaction
back.  Everything chain-specific stays behind this interface.
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import Protocol, runtime_checkable

import base58
from solders.keypair import Keypair

logger = logging.getLogger(__name__)

# SPL Memo program (v2).  Anchors are plain memo instructions whose data
# is the UTF-8 hex commitment.
MEMO_PROGRAM_ID = "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr"


class LedgerError(Exception):
    """Raised by ledger clients for transport or RPC failures."""


@dataclass(frozen=True, slots=True)
class LedgerInstruction:
    program_id: str
    data: bytes


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    signature: str
    instructions: tuple[LedgerInstruction, ...]
    block_time: int | None
    slot: int
    confirmations: int = 0

    def memo_payloads(self) -> list[bytes]:
        return [
            ix.data for ix in self.instructions if ix.program_id == MEMO_PROGRAM_ID
        ]


@runtime_checkable
class LedgerClient(Protocol):
    async def get_balance(self, public_key: str) -> int:
        """Account balance in lamports."""
        ...

    async def get_latest_blockhash(self) -> str: ...

    async def submit_memo(self, payload: bytes, signer: Keypair) -> str:
        """Send one memo instruction and wait for confirmation.

        Returns the transaction signature.  Raises on any failure.
        """
        ...

    async def get_transaction(self, signature: str) -> LedgerTransaction | None: ...

    async def close(self) -> None: ...


@dataclass
class InMemoryLedgerClient:
    """Single-process stand-in for the ledger.

    Balances default to zero, mirroring a freshly generated key.  Tests
    flip ``reachable`` / ``fail_writes`` to exercise the failure paths and
    use tamper_memo() to simulate a transaction whose payload does not
    match the stored commitment.
    """

    balances: dict[str, int] = field(default_factory=dict)
    reachable: bool = True
    fail_writes: bool = False
    slot: int = 1
    _transactions: dict[str, LedgerTransaction] = field(default_factory=dict)
    submitted: list[str] = field(default_factory=list)

    def _check_reachable(self) -> None:
        if not self.reachable:
            raise LedgerError("ledger unreachable")

    def fund(self, public_key: str, lamports: int) -> None:
        self.balances[public_key] = self.balances.get(public_key, 0) + lamports

    async def get_balance(self, public_key: str) -> int:
        self._check_reachable()
        return self.balances.get(public_key, 0)

    async def get_latest_blockhash(self) -> str:
        self._check_reachable()
        return base58.b58encode(self.slot.to_bytes(32, "big")).decode()

    async def submit_memo(self, payload: bytes, signer: Keypair) -> str:
        self._check_reachable()
        if self.fail_writes:
            raise LedgerError("transaction rejected")
        signature = base58.b58encode(secrets.token_bytes(64)).decode()
        self.slot += 1
        self._transactions[signature] = LedgerTransaction(
            signature=signature,
            instructions=(LedgerInstruction(MEMO_PROGRAM_ID, bytes(payload)),),
            block_time=None,
            slot=self.slot,
            confirmations=1,
        )
        self.submitted.append(signature)
        return signature

    async def get_transaction(self, signature: str) -> LedgerTransaction | None:
        self._check_reachable()
        return self._transactions.get(signature)

    async def close(self) -> None:
        return None

    def tamper_memo(self, signature: str, payload: bytes) -> None:
        tx = self._transactions[signature]
        self._transactions[signature] = replace(
            tx, instructions=(LedgerInstruction(MEMO_PROGRAM_ID, payload),)
        )

    def drop_transaction(self, signature: str) -> None:
        self._transactions.pop(signature, None)


@asynccontextmanager
async def lifespan_ledger(client: LedgerClient):
    """Startup/shutdown hook for the ledger client, mirrors lifespan_db().

    A failed connectivity probe is logged, not raised: issuance degrades
    to simulated anchors and /health reports the outage.
    """
    try:
        await client.get_latest_blockhash()
        logger.info("Ledger reachable: %s", getattr(client, "rpc_url", "in-memory"))
    except LedgerError:
        logger.exception("Ledger unreachable on startup")

    yield

    await client.close()
    logger.info("Ledger client closed")
