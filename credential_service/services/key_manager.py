"""Signing key lifecycle for ledger writes.

One keypair per process acts as fee payer and signer for every memo
anchor.  Resolution order:

  1. SOLANA_PRIVATE_KEY set → decode it (base58 string, or a JSON array of
     64 ints as written by ``solana-keygen``).  A value that does not
     decode is a configuration error: InvalidKeyFormat, raised from the
     app's lifespan so the process refuses to start.
  2. Not set → generate a fresh keypair, log its public key and print the
     private material once to stderr so an operator can persist and fund
     it.  Until funded, issuance falls back to simulated anchors.

Resolution happens once.  The first caller takes the lock; everyone
racing it waits and then reads the cached instance, so concurrent first
requests can never mint two different keys.
"""

from __future__ import annotations

import json
import logging
import sys
import threading

import base58
from solders.keypair import Keypair

from credential_service.core.errors import InvalidKeyFormat

logger = logging.getLogger(__name__)

SECRET_KEY_LENGTH = 64


def decode_secret_key(raw: str) -> Keypair:
    """Decode a configured secret into a Keypair.  Raises InvalidKeyFormat."""
    value = raw.strip()
    try:
        if value.startswith("["):
            numbers = json.loads(value)
            if not isinstance(numbers, list) or not all(
                type(n) is int and 0 <= n <= 255 for n in numbers
            ):
                raise ValueError("expected a JSON array of byte values")
            secret = bytes(numbers)
        else:
            secret = base58.b58decode(value)
        if len(secret) != SECRET_KEY_LENGTH:
            raise ValueError(
                f"expected {SECRET_KEY_LENGTH} bytes, got {len(secret)}"
            )
        return Keypair.from_bytes(secret)
    except ValueError as exc:
        # json.JSONDecodeError is a ValueError too.  The message never
        # includes the secret itself.
        raise InvalidKeyFormat(
            "Invalid keypair format in SOLANA_PRIVATE_KEY", detail=str(exc)
        ) from None


def encode_secret_key(keypair: Keypair) -> tuple[str, str]:
    """Return (base58, JSON array) encodings of the 64-byte secret key."""
    secret = bytes(keypair)
    return base58.b58encode(secret).decode(), json.dumps(list(secret))


class SigningKeyManager:
    def __init__(self, secret: str | None = None) -> None:
        self._secret = secret
        self._keypair: Keypair | None = None
        self._lock = threading.Lock()

    @property
    def is_resolved(self) -> bool:
        return self._keypair is not None

    @property
    def public_key(self) -> str:
        return str(self.get_signing_keypair().pubkey())

    def get_signing_keypair(self) -> Keypair:
        keypair = self._keypair
        if keypair is not None:
            return keypair

        with self._lock:
            if self._keypair is None:
                self._keypair = self._resolve()
            return self._keypair

    def _resolve(self) -> Keypair:
        if self._secret:
            keypair = decode_secret_key(self._secret)
            logger.info(
                "Keypair loaded from environment public_key=%s",
                keypair.pubkey(),
                extra={"public_key": str(keypair.pubkey())},
            )
            return keypair

        keypair = Keypair()
        public_key = str(keypair.pubkey())
        logger.warning(
            "No SOLANA_PRIVATE_KEY configured, generated ephemeral keypair "
            "public_key=%s (unfunded; issuance will use simulated anchors)",
            public_key,
            extra={"public_key": public_key},
        )
        _print_setup_banner(keypair)
        return keypair

    @staticmethod
    def generate_new_keypair() -> tuple[str, str]:
        """Operator utility: fresh (public key, base58 private key).

        Does not touch the cached signing keypair.
        """
        keypair = Keypair()
        public_key = str(keypair.pubkey())
        private_b58, _ = encode_secret_key(keypair)
        logger.info(
            "Generated new keypair public_key=%s",
            public_key,
            extra={"public_key": public_key},
        )
        return public_key, private_b58


def _print_setup_banner(keypair: Keypair) -> None:
    private_b58, private_array = encode_secret_key(keypair)
    print(
        "\n=== IMPORTANT: SAVE THESE CREDENTIALS ===\n"
        f"Public Key: {keypair.pubkey()}\n"
        f"Private Key (base58): {private_b58}\n"
        f"Private Key (array): {private_array}\n"
        f"Add to your .env file: SOLANA_PRIVATE_KEY={private_b58}\n"
        "This key has no funds; transfer SOL to it before expecting on-chain anchors.\n"
        "=========================================\n",
        file=sys.stderr,
        flush=True,
    )
