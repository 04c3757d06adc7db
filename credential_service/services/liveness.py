"""Point-in-time health snapshot for /health.

Health means "can this instance store and verify credentials": the
record store and the ledger must both answer.  Wallet funding is reported
but does not affect it; an unfunded wallet only means new credentials are
anchored in simulated mode.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Literal

from credential_service.ledger.client import LedgerClient
from credential_service.repos.credential_repo import CredentialRepo
from credential_service.services.key_manager import SigningKeyManager

logger = logging.getLogger(__name__)

WalletStatus = Literal["funded", "insufficient_funds", "unknown"]


@dataclass(frozen=True, slots=True)
class StoreHealth:
    connected: bool
    latency_ms: int | None


@dataclass(frozen=True, slots=True)
class LedgerHealth:
    connected: bool
    network: str


@dataclass(frozen=True, slots=True)
class WalletHealth:
    public_key: str
    balance: int
    status: WalletStatus
    can_issue_transactions: bool


@dataclass(frozen=True, slots=True)
class HealthSnapshot:
    store: StoreHealth
    ledger: LedgerHealth
    wallet: WalletHealth

    @property
    def healthy(self) -> bool:
        return self.store.connected and self.ledger.connected


class LivenessMonitor:
    def __init__(
        self,
        repo: CredentialRepo,
        ledger: LedgerClient,
        key_manager: SigningKeyManager,
        *,
        min_balance_lamports: int = 5000,
        network: str = "devnet",
    ) -> None:
        self._repo = repo
        self._ledger = ledger
        self._key_manager = key_manager
        self._min_balance = min_balance_lamports
        self._network = network

    async def snapshot(self) -> HealthSnapshot:
        return HealthSnapshot(
            store=await self._check_store(),
            ledger=await self._check_ledger(),
            wallet=await self._check_wallet(),
        )

    async def _check_store(self) -> StoreHealth:
        start = time.perf_counter()
        try:
            reachable = await self._repo.ping()
        except Exception:
            logger.warning("Record store ping failed", exc_info=True)
            reachable = False
        latency_ms = round((time.perf_counter() - start) * 1000)
        connected = reachable and self._repo.is_connected()
        return StoreHealth(
            connected=connected, latency_ms=latency_ms if connected else None
        )

    async def _check_ledger(self) -> LedgerHealth:
        try:
            await self._ledger.get_latest_blockhash()
            connected = True
        except Exception as exc:
            logger.warning("Ledger health check failed: %s", exc)
            connected = False
        return LedgerHealth(connected=connected, network=self._network)

    async def _check_wallet(self) -> WalletHealth:
        public_key = self._key_manager.public_key
        try:
            balance = await self._ledger.get_balance(public_key)
        except Exception as exc:
            logger.warning(
                "Wallet balance check failed: %s",
                exc,
                extra={"public_key": public_key},
            )
            return WalletHealth(
                public_key=public_key,
                balance=0,
                status="unknown",
                can_issue_transactions=False,
            )

        funded = balance > self._min_balance
        return WalletHealth(
            public_key=public_key,
            balance=balance,
            status="funded" if funded else "insufficient_funds",
            can_issue_transactions=funded,
        )
