from __future__ import annotations

from typing import Protocol

from credential_service.core.errors import StorageError
from credential_service.models.credential import Credential, CredentialRecord


class CredentialRepo(Protocol):
    async def create(self, record: CredentialRecord) -> Credential: ...
    async def get_by_hash(self, hash: str) -> Credential | None: ...
    def is_connected(self) -> bool: ...
    async def ping(self) -> bool: ...


class InMemoryCredentialRepo:
    def __init__(self) -> None:
        self._by_hash: dict[str, Credential] = {}
        self._next_id = 1
        self._connected = True

    async def create(self, record: CredentialRecord) -> Credential:
        # No awaits between the check and the insert, so this is atomic
        # with respect to other tasks on the loop.
        if not self._connected:
            raise StorageError("record store is disconnected")
        if record.hash in self._by_hash:
            raise StorageError("credential hash already exists", hash=record.hash)
        credential = Credential.from_record(self._next_id, record)
        self._next_id += 1
        self._by_hash[credential.hash] = credential
        return credential

    async def get_by_hash(self, hash: str) -> Credential | None:
        if not self._connected:
            raise StorageError("record store is disconnected")
        return self._by_hash.get(hash)

    def is_connected(self) -> bool:
        return self._connected

    async def ping(self) -> bool:
        return self._connected

    def set_connected(self, connected: bool) -> None:
        """Simulate losing (or regaining) the backing store."""
        self._connected = connected
