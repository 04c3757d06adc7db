"""FastAPI dependencies: bearer-token auth and service wiring.

The services are process-wide singletons assembled from SETTINGS:

  record store:  PgCredentialRepo when DATABASE_URL is set, else in-memory
  ledger:        SolanaLedgerClient, or InMemoryLedgerClient when
                 LEDGER_BACKEND=memory
  signing key:   one SigningKeyManager shared by issuance and /health

Routes depend on the get_* factories, so tests swap collaborators with
app.dependency_overrides instead of touching these globals.
"""

from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from credential_service.core.config import SETTINGS
from credential_service.db.engine import async_session_factory
from credential_service.ledger.client import InMemoryLedgerClient, LedgerClient
from credential_service.models.principal import Principal
from credential_service.repos.credential_repo import (
    CredentialRepo,
    InMemoryCredentialRepo,
)
from credential_service.repos.pg_credential_repo import PgCredentialRepo
from credential_service.services import token_service
from credential_service.services.issuance import IssuanceService
from credential_service.services.key_manager import SigningKeyManager
from credential_service.services.liveness import LivenessMonitor
from credential_service.services.verification import VerificationService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


def require_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Validate the JWT bearer token and return the caller as a Principal."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    return Principal(
        user_id=str(claims["sub"]),
        roles=frozenset(claims.get("roles", [])),
    )


def require_role(role: str):
    """Dependency factory: demand a specific role, else 403.

    Usage: Depends(require_role("issuer"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def _build_repo() -> CredentialRepo:
    if async_session_factory is not None:
        return PgCredentialRepo(async_session_factory)
    return InMemoryCredentialRepo()


def _build_ledger() -> LedgerClient:
    if SETTINGS.ledger_backend == "memory":
        return InMemoryLedgerClient()
    # Imported lazily so the memory backend never opens an HTTP client.
    from credential_service.ledger.solana_rpc import SolanaLedgerClient

    return SolanaLedgerClient(
        SETTINGS.solana_rpc_url, timeout=SETTINGS.ledger_timeout_seconds
    )


credential_repo: CredentialRepo = _build_repo()
ledger_client: LedgerClient = _build_ledger()
key_manager = SigningKeyManager(SETTINGS.solana_private_key)


def get_issuance_service() -> IssuanceService:
    return IssuanceService(
        credential_repo,
        ledger_client,
        key_manager,
        min_balance_lamports=SETTINGS.min_fee_lamports,
    )


def get_verification_service() -> VerificationService:
    return VerificationService(credential_repo, ledger_client)


def get_liveness_monitor() -> LivenessMonitor:
    return LivenessMonitor(
        credential_repo,
        ledger_client,
        key_manager,
        min_balance_lamports=SETTINGS.min_fee_lamports,
        network=SETTINGS.ledger_network,
    )


def get_credential_repo() -> CredentialRepo:
    return credential_repo
