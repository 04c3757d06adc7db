#!/usr/bin/env python3
"""Generate a signing keypair for SOLANA_PRIVATE_KEY.

RUN:  python scripts/generate_keypair.py

Prints the public key (fund this address) and the base58 private key to
put in the service's environment.  Nothing is written to disk.
"""

from __future__ import annotations

from credential_service.services.key_manager import SigningKeyManager


def main() -> None:
    public_key, private_b58 = SigningKeyManager.generate_new_keypair()
    print(f"Public Key:  {public_key}")
    print(f"Private Key: {private_b58}")
    print()
    print(f"SOLANA_PRIVATE_KEY={private_b58}")
    print("Fund the public key before expecting on-chain anchors.")


if __name__ == "__main__":
    main()
