from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import base58
import pytest
from solders.keypair import Keypair

from credential_service.core.errors import InvalidKeyFormat
from credential_service.services.key_manager import (
    SigningKeyManager,
    decode_secret_key,
    encode_secret_key,
)


def test_decode_accepts_base58_and_json_array() -> None:
    keypair = Keypair()
    as_b58, as_array = encode_secret_key(keypair)

    assert decode_secret_key(as_b58).pubkey() == keypair.pubkey()
    assert decode_secret_key(as_array).pubkey() == keypair.pubkey()


def test_decode_tolerates_surrounding_whitespace() -> None:
    keypair = Keypair()
    as_b58, _ = encode_secret_key(keypair)
    assert decode_secret_key(f"  {as_b58}\n").pubkey() == keypair.pubkey()


@pytest.mark.parametrize(
    "raw",
    [
        "not-base58-0OIl",
        base58.b58encode(b"\x01" * 32).decode(),
        "[1, 2, 3]",
        "[1, 2, 300]",
        '{"secret": 1}',
        "[not json",
    ],
)
def test_decode_rejects_malformed_secret(raw: str) -> None:
    with pytest.raises(InvalidKeyFormat) as exc_info:
        decode_secret_key(raw)
    assert exc_info.value.reason == "invalid_key_format"
    assert "SOLANA_PRIVATE_KEY" in exc_info.value.message


def test_decode_rejects_booleans_in_json_array() -> None:
    raw = "[" + ", ".join(["true"] * 64) + "]"
    with pytest.raises(InvalidKeyFormat) as exc_info:
        decode_secret_key(raw)
    assert exc_info.value.details["detail"] == "expected a JSON array of byte values"


def test_invalid_key_error_does_not_echo_the_secret() -> None:
    raw = base58.b58encode(b"\x07" * 40).decode()
    with pytest.raises(InvalidKeyFormat) as exc_info:
        decode_secret_key(raw)
    assert raw not in str(exc_info.value.to_dict())


def test_configured_secret_is_used() -> None:
    keypair = Keypair()
    manager = SigningKeyManager(encode_secret_key(keypair)[0])
    assert manager.is_resolved is False
    assert manager.public_key == str(keypair.pubkey())
    assert manager.is_resolved is True


def test_invalid_configured_secret_raises_on_first_use() -> None:
    manager = SigningKeyManager("garbage")
    with pytest.raises(InvalidKeyFormat):
        manager.get_signing_keypair()


def test_missing_secret_generates_once_and_prints_banner(
    capsys: pytest.CaptureFixture[str],
) -> None:
    manager = SigningKeyManager()
    first = manager.get_signing_keypair()
    second = manager.get_signing_keypair()

    assert first is second
    err = capsys.readouterr().err
    assert err.count("SAVE THESE CREDENTIALS") == 1
    assert str(first.pubkey()) in err


class _SlowKeyManager(SigningKeyManager):
    """Counts resolutions and widens the race window."""

    def __init__(self) -> None:
        super().__init__(encode_secret_key(Keypair())[0])
        self.resolve_calls = 0
        self._count_lock = threading.Lock()

    def _resolve(self) -> Keypair:
        with self._count_lock:
            self.resolve_calls += 1
        time.sleep(0.05)
        return super()._resolve()


def test_concurrent_first_use_resolves_exactly_once() -> None:
    manager = _SlowKeyManager()
    barrier = threading.Barrier(16)

    def _get() -> str:
        barrier.wait()
        return str(manager.get_signing_keypair().pubkey())

    with ThreadPoolExecutor(max_workers=16) as pool:
        keys = list(pool.map(lambda _: _get(), range(16)))

    assert manager.resolve_calls == 1
    assert len(set(keys)) == 1


def test_generate_new_keypair_does_not_replace_cached_key() -> None:
    manager = SigningKeyManager(encode_secret_key(Keypair())[0])
    cached = manager.public_key

    public_key, private_b58 = SigningKeyManager.generate_new_keypair()

    assert public_key != cached
    assert str(decode_secret_key(private_b58).pubkey()) == public_key
    assert manager.public_key == cached
