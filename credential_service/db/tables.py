"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in credential_service/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from credential_service.db.engine import Base


class CredentialRow(Base):
    __tablename__ = "credentials"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    student_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    university_id: Mapped[str] = mapped_column(String(255), nullable=False)
    credential_type: Mapped[str] = mapped_column(String(32), nullable=False)
    # 64 hex chars; unique so lookup-by-hash is unambiguous
    hash: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    # base58 signature, or simulated_<hex>
    transaction_id: Mapped[str] = mapped_column(String(128), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    nonce: Mapped[str] = mapped_column(String(64), nullable=False)
