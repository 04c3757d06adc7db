"""JWT access token validation (ES256).

Issuer tokens are minted by the identity service; this service only
verifies them against JWT_PUBLIC_KEY.  Without a configured key (dev and
test) an ephemeral EC key pair is generated on import and
create_access_token() signs with it.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from credential_service.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "auth-service"
AUDIENCE = "credential-service"
ACCESS_TOKEN_TTL_MIN = 15

ISSUER_ROLE = "issuer"

# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------
_private_key: ec.EllipticCurvePrivateKey | None
if SETTINGS.jwt_public_key:
    _loaded = serialization.load_pem_public_key(SETTINGS.jwt_public_key.encode())
    if not isinstance(_loaded, ec.EllipticCurvePublicKey):
        raise ValueError("JWT_PUBLIC_KEY must be an EC (P-256) public key")
    _public_key: ec.EllipticCurvePublicKey = _loaded
    _private_key = None
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    """Sign an access token with the local dev key.

    Raises RuntimeError when JWT_PUBLIC_KEY is configured, since the
    matching private key lives with the identity service.
    """
    if _private_key is None:
        raise RuntimeError("token signing is disabled when JWT_PUBLIC_KEY is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or [ISSUER_ROLE],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pinned to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat"]},
    )
