from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

# Must be set before credential_service.core.config builds SETTINGS:
# test mode selects the in-memory ledger backend.
os.environ.setdefault("APP_ENV", "test")

# Ensure repo root is on sys.path so `import credential_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from solders.keypair import Keypair  # noqa: E402

from credential_service.api import dependencies  # noqa: E402
from credential_service.api.ratelimit import set_rate_limiter  # noqa: E402
from credential_service.ledger.client import InMemoryLedgerClient  # noqa: E402
from credential_service.main import app  # noqa: E402
from credential_service.repos.credential_repo import (  # noqa: E402
    InMemoryCredentialRepo,
)
from credential_service.services import token_service  # noqa: E402
from credential_service.services.issuance import IssuanceService  # noqa: E402
from credential_service.services.key_manager import (  # noqa: E402
    SigningKeyManager,
    encode_secret_key,
)
from credential_service.services.liveness import LivenessMonitor  # noqa: E402
from credential_service.services.rate_limiter import (  # noqa: E402
    InMemoryRateLimiter,
)
from credential_service.services.verification import (  # noqa: E402
    VerificationService,
)

MIN_BALANCE = 5000
ISSUER_ID = "7"


@pytest.fixture
def repo() -> InMemoryCredentialRepo:
    return InMemoryCredentialRepo()


@pytest.fixture
def ledger() -> InMemoryLedgerClient:
    return InMemoryLedgerClient()


@pytest.fixture
def key_manager() -> SigningKeyManager:
    """A key manager with a configured secret (no stderr banner)."""
    secret_b58, _ = encode_secret_key(Keypair())
    return SigningKeyManager(secret_b58)


@pytest.fixture
def issuance(repo, ledger, key_manager) -> IssuanceService:
    return IssuanceService(repo, ledger, key_manager, min_balance_lamports=MIN_BALANCE)


@pytest.fixture
def verification(repo, ledger) -> VerificationService:
    return VerificationService(repo, ledger)


@pytest.fixture
def monitor(repo, ledger, key_manager) -> LivenessMonitor:
    return LivenessMonitor(
        repo,
        ledger,
        key_manager,
        min_balance_lamports=MIN_BALANCE,
        network="devnet",
    )


@pytest.fixture
def fund(ledger, key_manager):
    """Give the signing wallet enough lamports for real anchors."""

    def _fund(lamports: int = 1_000_000_000) -> None:
        ledger.fund(key_manager.public_key, lamports)

    return _fund


@pytest.fixture(autouse=True)
def wire_app(issuance, verification, monitor, repo) -> Iterator[None]:
    """Route the app's service factories to this test's in-memory collaborators."""
    app.dependency_overrides[dependencies.get_issuance_service] = lambda: issuance
    app.dependency_overrides[dependencies.get_verification_service] = (
        lambda: verification
    )
    app.dependency_overrides[dependencies.get_liveness_monitor] = lambda: monitor
    app.dependency_overrides[dependencies.get_credential_repo] = lambda: repo
    yield
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Fresh windows per test so limits don't bleed."""
    set_rate_limiter(InMemoryRateLimiter())


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = ISSUER_ID,
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing (issuer role by default)."""
    return token_service.create_access_token(sub=username, roles=roles)


@pytest.fixture
def issuer_token() -> str:
    return mint_token()


@pytest.fixture
def auth_headers(issuer_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {issuer_token}"}
