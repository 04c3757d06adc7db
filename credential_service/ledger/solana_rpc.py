"""Solana JSON-RPC implementation of LedgerClient.

Built on solana-py's AsyncClient (httpx underneath) and solders for keys,
instructions and transactions.  All RPC failures, including error
payloads that solana-py returns as values rather than raising, surface
as LedgerError so callers only ever handle one exception type.
"""

from __future__ import annotations

import logging
from typing import Any

import base58
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from credential_service.ledger.client import (
    MEMO_PROGRAM_ID,
    LedgerError,
    LedgerInstruction,
    LedgerTransaction,
)

logger = logging.getLogger(__name__)

_MEMO_PROGRAM = Pubkey.from_string(MEMO_PROGRAM_ID)

# getSignatureStatuses reports confirmations=null once a slot is rooted
# (finalized); 32 is the vote lockout depth at which that happens.
FINALIZED_CONFIRMATIONS = 32


def _unwrap(resp: Any, what: str) -> Any:
    if not hasattr(resp, "value"):
        raise LedgerError(f"{what} failed: {resp}")
    return resp.value


class SolanaLedgerClient:
    """Satisfies the LedgerClient Protocol against a Solana RPC node."""

    def __init__(self, rpc_url: str, *, timeout: float = 30.0) -> None:
        self._rpc_url = rpc_url
        self._client = AsyncClient(rpc_url, commitment=Confirmed, timeout=timeout)

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def get_balance(self, public_key: str) -> int:
        try:
            resp = await self._client.get_balance(Pubkey.from_string(public_key))
        except Exception as exc:
            raise LedgerError(f"getBalance failed: {exc}") from exc
        return int(_unwrap(resp, "getBalance"))

    async def get_latest_blockhash(self) -> str:
        try:
            resp = await self._client.get_latest_blockhash()
        except Exception as exc:
            raise LedgerError(f"getLatestBlockhash failed: {exc}") from exc
        return str(_unwrap(resp, "getLatestBlockhash").blockhash)

    async def submit_memo(self, payload: bytes, signer: Keypair) -> str:
        try:
            latest = _unwrap(
                await self._client.get_latest_blockhash(), "getLatestBlockhash"
            )
            ix = Instruction(_MEMO_PROGRAM, bytes(payload), [])
            message = Message.new_with_blockhash([ix], signer.pubkey(), latest.blockhash)
            tx = Transaction([signer], message, latest.blockhash)
            resp = await self._client.send_transaction(
                tx,
                opts=TxOpts(
                    skip_confirmation=False,
                    preflight_commitment=Confirmed,
                    last_valid_block_height=latest.last_valid_block_height,
                ),
            )
        except LedgerError:
            raise
        except Exception as exc:
            raise LedgerError(f"sendTransaction failed: {exc}") from exc
        return str(_unwrap(resp, "sendTransaction"))

    async def get_transaction(self, signature: str) -> LedgerTransaction | None:
        try:
            sig = Signature.from_string(signature)
        except ValueError as exc:
            raise LedgerError(f"invalid signature {signature!r}") from exc

        try:
            resp = await self._client.get_transaction(
                sig,
                encoding="json",
                commitment=Confirmed,
                max_supported_transaction_version=0,
            )
            value = _unwrap(resp, "getTransaction")
            if value is None:
                return None
            statuses = _unwrap(
                await self._client.get_signature_statuses(
                    [sig], search_transaction_history=True
                ),
                "getSignatureStatuses",
            )
        except LedgerError:
            raise
        except Exception as exc:
            raise LedgerError(f"getTransaction failed: {exc}") from exc

        return to_ledger_transaction(signature, value, _confirmations(statuses))

    async def close(self) -> None:
        await self._client.close()


def _confirmations(statuses: Any) -> int:
    status = statuses[0] if statuses else None
    if status is None:
        return 0
    if status.confirmations is None:
        return FINALIZED_CONFIRMATIONS
    return int(status.confirmations)


def to_ledger_transaction(
    signature: str, confirmed: Any, confirmations: int
) -> LedgerTransaction:
    """Flatten a json-encoded getTransaction result into a LedgerTransaction.

    ``confirmed`` is solders' EncodedConfirmedTransactionWithStatusMeta.
    Instruction data in the json encoding is base58; program ids are
    indexes into the message's account keys.
    """
    message = confirmed.transaction.transaction.message
    account_keys = [str(key) for key in message.account_keys]

    instructions: list[LedgerInstruction] = []
    for ix in message.instructions:
        if ix.program_id_index >= len(account_keys):
            # Program ids can't come from lookup tables; anything out of
            # range is malformed and can't be a memo.
            continue
        try:
            data = base58.b58decode(ix.data)
        except ValueError:
            logger.warning(
                "Undecodable instruction data in tx=%s",
                signature,
                extra={"transaction_id": signature},
            )
            continue
        instructions.append(
            LedgerInstruction(program_id=account_keys[ix.program_id_index], data=data)
        )

    return LedgerTransaction(
        signature=signature,
        instructions=tuple(instructions),
        block_time=confirmed.block_time,
        slot=int(confirmed.slot),
        confirmations=confirmations,
    )
