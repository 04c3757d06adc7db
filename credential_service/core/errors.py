"""Domain error taxonomy for issuance and verification.

Every error carries a stable ``reason`` code.  The API layer maps reasons
to HTTP status codes in one place (credential_service.api.credentials),
so services raise these and never build HTTP responses themselves.
"""

from __future__ import annotations

from typing import Any


class CredentialServiceError(Exception):
    reason = "internal_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason, "message": self.message, **self.details}


class InvalidInput(CredentialServiceError):
    """Issuance payload failed schema validation."""

    reason = "invalid_input"


class InvalidKeyFormat(CredentialServiceError):
    """Configured signing key could not be decoded.  Fatal at startup."""

    reason = "invalid_key_format"


class StorageError(CredentialServiceError):
    """The record store could not persist the credential."""

    reason = "storage_error"


class VerificationRejected(CredentialServiceError):
    """Base class for every verification outcome other than Verified."""

    reason = "rejected"


class MalformedHash(VerificationRejected):
    reason = "malformed_hash"


class NotFound(VerificationRejected):
    reason = "not_found"


class TransactionNotFound(VerificationRejected):
    reason = "transaction_not_found"


class HashMismatch(VerificationRejected):
    reason = "hash_mismatch"


class LedgerUnavailable(VerificationRejected):
    reason = "ledger_unavailable"
