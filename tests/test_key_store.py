import base64

import pytest

from metanear.client.infrastructure.storage import InMemoryStorage
from metanear.client.key_store import KeyStore
from metanear.common.crypto import BoxCodec
from metanear.common.exceptions import InvalidKeyLengthError

STORAGE_KEY = "enc_key:alice.testnet:chat:"


def test_creates_and_persists_key_pair(storage: InMemoryStorage) -> None:
    store = KeyStore(storage)
    key_pair = store.get_or_create_key_pair("alice.testnet", "chat")

    stored = storage.get_item(STORAGE_KEY)
    assert stored is not None
    assert base64.b64decode(stored) == key_pair.secret_key
    assert storage.keys() == [STORAGE_KEY]


def test_second_call_returns_same_key_pair(storage: InMemoryStorage) -> None:
    store = KeyStore(storage)
    first = store.get_or_create_key_pair("alice.testnet", "chat")
    second = store.get_or_create_key_pair("alice.testnet", "chat")
    assert first.public_key == second.public_key


def test_new_store_reloads_persisted_key(storage: InMemoryStorage) -> None:
    first = KeyStore(storage).get_or_create_key_pair("alice.testnet", "chat")
    reloaded = KeyStore(storage).get_or_create_key_pair("alice.testnet", "chat")
    assert reloaded == first


def test_identity_pairs_are_independent(storage: InMemoryStorage) -> None:
    store = KeyStore(storage)
    chat = store.get_or_create_key_pair("alice.testnet", "chat")
    notes = store.get_or_create_key_pair("alice.testnet", "notes")
    bob = store.get_or_create_key_pair("bob.testnet", "chat")
    assert len({chat.public_key, notes.public_key, bob.public_key}) == 3


def test_stored_key_with_wrong_length_is_rejected(storage: InMemoryStorage) -> None:
    storage.set_item(STORAGE_KEY, base64.b64encode(b"\x00" * 16).decode())
    with pytest.raises(InvalidKeyLengthError):
        KeyStore(storage).get_or_create_key_pair("alice.testnet", "chat")


def test_update_key_pair_overwrites_memory_and_storage(storage: InMemoryStorage) -> None:
    store = KeyStore(storage)
    store.get_or_create_key_pair("alice.testnet", "chat")
    replacement = BoxCodec.generate_key_pair()

    updated = store.update_key_pair(
        "alice.testnet", "chat", replacement.secret_key64
    )

    assert updated.public_key == replacement.public_key
    assert store.get_or_create_key_pair("alice.testnet", "chat") == replacement
    assert storage.get_item(STORAGE_KEY) == replacement.secret_key64


def test_update_key_pair_accepts_raw_bytes(storage: InMemoryStorage) -> None:
    replacement = BoxCodec.generate_key_pair()
    store = KeyStore(storage)
    assert store.update_key_pair("a", "b", replacement.secret_key) == replacement


def test_update_key_pair_rejects_wrong_length(storage: InMemoryStorage) -> None:
    store = KeyStore(storage)
    original = store.get_or_create_key_pair("alice.testnet", "chat")
    with pytest.raises(InvalidKeyLengthError):
        store.update_key_pair(
            "alice.testnet", "chat", base64.b64encode(b"short").decode()
        )
    assert store.get_or_create_key_pair("alice.testnet", "chat") == original
    assert storage.get_item(STORAGE_KEY) == original.secret_key64


class BrokenStorage(InMemoryStorage):
    def set_item(self, key: str, value: str) -> None:
        raise OSError("disk full")


def test_persistence_failure_propagates() -> None:
    with pytest.raises(OSError, match="disk full"):
        KeyStore(BrokenStorage()).get_or_create_key_pair("alice.testnet", "chat")


def test_failed_update_keeps_old_key_pair() -> None:
    storage = BrokenStorage()
    seed = BoxCodec.generate_key_pair()
    storage._data[STORAGE_KEY] = seed.secret_key64
    store = KeyStore(storage)
    store.get_or_create_key_pair("alice.testnet", "chat")

    with pytest.raises(OSError):
        store.update_key_pair(
            "alice.testnet", "chat", BoxCodec.generate_key_pair().secret_key
        )
    assert store.get_or_create_key_pair("alice.testnet", "chat") == seed
