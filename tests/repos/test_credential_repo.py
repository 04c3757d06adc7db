from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from credential_service.core.errors import StorageError
from credential_service.models.credential import (
    CredentialRecord,
    LedgerTx,
    SimulatedTx,
    parse_transaction_ref,
    serialize_transaction_ref,
)
from credential_service.repos.credential_repo import InMemoryCredentialRepo
from credential_service.repos.pg_credential_repo import PgCredentialRepo


def _record(hash: str = "a" * 64, transaction=None) -> CredentialRecord:
    return CredentialRecord(
        student_id="S1",
        university_id="7",
        credential_type="degree",
        issued_at=datetime(2024, 1, 1, tzinfo=UTC),
        nonce="b" * 64,
        hash=hash,
        transaction=transaction or SimulatedTx(token="c" * 64),
    )


def test_create_assigns_sequential_ids() -> None:
    repo = InMemoryCredentialRepo()
    first = asyncio.run(repo.create(_record("a" * 64)))
    second = asyncio.run(repo.create(_record("b" * 64)))
    assert (first.id, second.id) == (1, 2)


def test_get_by_hash_returns_stored_credential() -> None:
    repo = InMemoryCredentialRepo()
    created = asyncio.run(repo.create(_record()))
    assert asyncio.run(repo.get_by_hash("a" * 64)) == created
    assert asyncio.run(repo.get_by_hash("f" * 64)) is None


def test_duplicate_hash_is_a_storage_error() -> None:
    repo = InMemoryCredentialRepo()
    asyncio.run(repo.create(_record()))
    with pytest.raises(StorageError, match="already exists"):
        asyncio.run(repo.create(_record()))


def test_disconnected_store_rejects_reads_and_writes() -> None:
    repo = InMemoryCredentialRepo()
    repo.set_connected(False)

    with pytest.raises(StorageError):
        asyncio.run(repo.create(_record()))
    with pytest.raises(StorageError):
        asyncio.run(repo.get_by_hash("a" * 64))
    assert repo.is_connected() is False
    assert asyncio.run(repo.ping()) is False


def test_transaction_id_serialization() -> None:
    assert serialize_transaction_ref(SimulatedTx(token="ff")) == "simulated_ff"
    assert parse_transaction_ref("simulated_ff") == SimulatedTx(token="ff")
    assert parse_transaction_ref("5sig") == LedgerTx(signature="5sig")

    record = _record(transaction=LedgerTx(signature="5sig"))
    assert record.transaction_id == "5sig"
    assert record.is_simulated is False


def test_unreachable_postgres_maps_to_storage_error() -> None:
    # Nothing listens on port 1: asyncpg fails with a bare OSError.
    engine = create_async_engine("postgresql+asyncpg://u:p@127.0.0.1:1/db")
    repo = PgCredentialRepo(async_sessionmaker(engine, expire_on_commit=False))

    async def _exercise() -> None:
        try:
            with pytest.raises(StorageError, match="failed to persist"):
                await repo.create(_record())
            with pytest.raises(StorageError, match="failed to read"):
                await repo.get_by_hash("a" * 64)
            assert await repo.ping() is False
        finally:
            await engine.dispose()

    asyncio.run(_exercise())
    assert repo.is_connected() is False
