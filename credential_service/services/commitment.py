"""Credential commitment: the hash that gets anchored on the ledger.

Preimage layout::

    <student_id>-<university_id>-<credential_type>-<issued_at>-<nonce>

issued_at is always rendered as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` and the nonce
is always 64 hex characters, so only the three issuer-supplied fields can
vary in shape.  Those are percent-escaped for ``%`` and ``-`` before
joining, which makes the preimage injective: ("ab", "c") and ("a", "bc")
or ("a-1", "b") and ("a", "1-b") can never produce the same string.
Ordinary values contain neither character and pass through unchanged.
"""

from __future__ import annotations

import hashlib
import re
import secrets
from datetime import UTC, datetime

HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")
NONCE_BYTES = 32
SEPARATOR = "-"


def _escape(field: str) -> str:
    return field.replace("%", "%25").replace(SEPARATOR, "%2D")


def format_issued_at(issued_at: datetime) -> str:
    if issued_at.tzinfo is None:
        raise ValueError("issued_at must be timezone-aware")
    utc = issued_at.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def canonical_issued_at(now: datetime | None = None) -> datetime:
    """Current UTC time truncated to the millisecond.

    The commitment only encodes milliseconds, so the stored value must not
    carry more precision than that or the hash could not be recomputed
    from the stored record.
    """
    now = now or datetime.now(UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def new_nonce() -> str:
    return secrets.token_hex(NONCE_BYTES)


def build_commitment(
    student_id: str,
    university_id: str,
    credential_type: str,
    issued_at: datetime,
    nonce: str,
) -> str:
    """SHA-256 hex digest over the escaped, separator-joined fields."""
    preimage = SEPARATOR.join(
        [
            _escape(student_id),
            _escape(str(university_id)),
            _escape(credential_type),
            format_issued_at(issued_at),
            nonce,
        ]
    )
    return hashlib.sha256(preimage.encode("utf-8")).hexdigest()


def is_valid_hash(value: str) -> bool:
    return bool(HASH_PATTERN.fullmatch(value))
