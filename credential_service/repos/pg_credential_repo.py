"""PostgreSQL implementation of CredentialRepo."""

from __future__ import annotations

import logging

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from credential_service.core.errors import StorageError
from credential_service.db.tables import CredentialRow
from credential_service.models.credential import (
    Credential,
    CredentialRecord,
    parse_transaction_ref,
)

logger = logging.getLogger(__name__)


class PgCredentialRepo:
    """Satisfies the CredentialRepo Protocol using PostgreSQL via SQLAlchemy.

    Takes the session factory rather than a request-scoped session: each
    operation is its own short transaction, so a credential is committed
    the moment create() returns.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._connected = True

    async def create(self, record: CredentialRecord) -> Credential:
        row = CredentialRow(
            student_id=record.student_id,
            university_id=record.university_id,
            credential_type=record.credential_type,
            hash=record.hash,
            transaction_id=record.transaction_id,
            issued_at=record.issued_at,
            nonce=record.nonce,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
                    await session.flush()
                    credential_id = row.id
        except IntegrityError:
            raise StorageError(
                "credential hash already exists", hash=record.hash
            ) from None
        except (SQLAlchemyError, OSError) as exc:
            # asyncpg connect failures surface as a bare OSError.
            self._connected = False
            raise StorageError("failed to persist credential") from exc

        self._connected = True
        return Credential.from_record(credential_id, record)

    async def get_by_hash(self, hash: str) -> Credential | None:
        stmt = select(CredentialRow).where(CredentialRow.hash == hash)
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            self._connected = False
            raise StorageError("failed to read credential") from exc

        self._connected = True
        if row is None:
            return None
        return _row_to_credential(row)

    def is_connected(self) -> bool:
        return self._connected

    async def ping(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError):
            logger.warning("Database ping failed", exc_info=True)
            self._connected = False
            return False
        self._connected = True
        return True


def _row_to_credential(row: CredentialRow) -> Credential:
    return Credential(
        id=row.id,
        student_id=row.student_id,
        university_id=row.university_id,
        credential_type=row.credential_type,
        issued_at=row.issued_at,
        nonce=row.nonce,
        hash=row.hash,
        transaction=parse_transaction_ref(row.transaction_id),
    )
