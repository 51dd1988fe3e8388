"""Infrastructure layer: local key-value persistence and access key storage.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING, cast

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from metanear.common.config import Config
from metanear.common.exceptions import InvalidKeyLengthError

if TYPE_CHECKING:
    from metanear.common.interfaces import IKeyValueStore

logger = logging.getLogger(__name__)

ED25519_KEY_LENGTH = 32


class InMemoryStorage:
    """Dict-backed key-value store, one per process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStorage:
    """Key-value store persisted as a single JSON object on disk.

    Every write rewrites the whole file.
    """

    def __init__(self, file_path: Path) -> None:
        self.file_path = file_path

    def _load(self) -> dict[str, str]:
        try:
            with self.file_path.open() as f:
                return cast("dict[str, str]", json.load(f))
        except FileNotFoundError:
            return {}

    def _save(self, data: dict[str, str]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with self.file_path.open("w") as f:
            json.dump(data, f, indent=2, sort_keys=True)

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)


class AccessKeyStore:
    """Stores ledger access credentials under ``{prefix}{account}:{network}``.

    Values have the form ``ed25519:<base64 raw private key>``.
    """

    def __init__(self, storage: IKeyValueStore, prefix: str) -> None:
        self.storage = storage
        self.prefix = prefix
        self.key_type = Config().ACCESS_KEY_TYPE

    def _storage_key(self, network_id: str, account_id: str) -> str:
        return f"{self.prefix}{account_id}:{network_id}"

    async def get_key(
        self, network_id: str, account_id: str
    ) -> Ed25519PrivateKey | None:
        value = self.storage.get_item(self._storage_key(network_id, account_id))
        if not value:
            return None
        return self._decode(value)

    async def set_key(
        self, network_id: str, account_id: str, key: Ed25519PrivateKey
    ) -> None:
        self.storage.set_item(self._storage_key(network_id, account_id), self._encode(key))
        logger.debug("Stored access key for %s on %s", account_id, network_id)

    async def remove_key(self, network_id: str, account_id: str) -> None:
        self.storage.remove_item(self._storage_key(network_id, account_id))

    def _encode(self, key: Ed25519PrivateKey) -> str:
        raw = key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return f"{self.key_type}:{base64.b64encode(raw).decode('ascii')}"

    def _decode(self, value: str) -> Ed25519PrivateKey:
        key_type, _, encoded = value.partition(":")
        if key_type != self.key_type or not encoded:
            msg = f"Unsupported access key format: {key_type!r}"
            raise InvalidKeyLengthError(msg)
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as err:
            msg = "Stored access key is not valid base64"
            raise InvalidKeyLengthError(msg, expected=ED25519_KEY_LENGTH) from err
        if len(raw) != ED25519_KEY_LENGTH:
            msg = "Stored access key has wrong length"
            raise InvalidKeyLengthError(
                msg, expected=ED25519_KEY_LENGTH, actual=len(raw)
            )
        return Ed25519PrivateKey.from_private_bytes(raw)
