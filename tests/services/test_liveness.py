from __future__ import annotations

import asyncio

from tests.conftest import MIN_BALANCE


def test_healthy_with_unfunded_wallet(monitor, key_manager) -> None:
    snap = asyncio.run(monitor.snapshot())

    assert snap.healthy is True
    assert snap.store.connected is True
    assert snap.store.latency_ms is not None
    assert snap.ledger.connected is True
    assert snap.ledger.network == "devnet"
    assert snap.wallet.public_key == key_manager.public_key
    assert snap.wallet.balance == 0
    assert snap.wallet.status == "insufficient_funds"
    assert snap.wallet.can_issue_transactions is False


def test_funded_wallet_can_issue(monitor, fund) -> None:
    fund(MIN_BALANCE + 1)
    snap = asyncio.run(monitor.snapshot())

    assert snap.wallet.status == "funded"
    assert snap.wallet.balance == MIN_BALANCE + 1
    assert snap.wallet.can_issue_transactions is True


def test_ledger_outage_degrades_and_wallet_is_unknown(monitor, ledger, fund) -> None:
    fund()
    ledger.reachable = False
    snap = asyncio.run(monitor.snapshot())

    assert snap.healthy is False
    assert snap.ledger.connected is False
    assert snap.wallet.status == "unknown"
    assert snap.wallet.balance == 0
    assert snap.wallet.can_issue_transactions is False


def test_store_outage_degrades(monitor, repo) -> None:
    repo.set_connected(False)
    snap = asyncio.run(monitor.snapshot())

    assert snap.healthy is False
    assert snap.store.connected is False
    assert snap.store.latency_ms is None
    assert snap.ledger.connected is True
