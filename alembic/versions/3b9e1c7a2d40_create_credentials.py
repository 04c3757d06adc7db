"""create credentials table

Revision ID: 3b9e1c7a2d40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "3b9e1c7a2d40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "credentials",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.String(length=64), nullable=False),
        sa.Column("university_id", sa.String(length=255), nullable=False),
        sa.Column("credential_type", sa.String(length=32), nullable=False),
        sa.Column("hash", sa.String(length=64), nullable=False),
        sa.Column("transaction_id", sa.String(length=128), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("nonce", sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_credentials_hash", "credentials", ["hash"], unique=True)
    op.create_index("ix_credentials_student_id", "credentials", ["student_id"])


def downgrade() -> None:
    op.drop_index("ix_credentials_student_id", table_name="credentials")
    op.drop_index("ix_credentials_hash", table_name="credentials")
    op.drop_table("credentials")
