"""
Persistent encryption key pair per (account, app) identity.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from metanear.common.config import Config
from metanear.common.crypto import SECRET_KEY_LENGTH, BoxCodec, b64decode_key, b64encode

if TYPE_CHECKING:
    from metanear.client.domain.entities import KeyPair
    from metanear.common.interfaces import IKeyValueStore

logger = logging.getLogger(__name__)


class KeyStore:
    """Owns the current encryption KeyPair of each identity pair.

    The secret half is persisted base64-encoded under
    ``enc_key:{account_id}:{app_id}:``. Persistence errors propagate.
    """

    def __init__(self, storage: IKeyValueStore, config: Config | None = None):
        self.storage = storage
        self.config = config or Config()
        self._current: dict[tuple[str, str], KeyPair] = {}

    def get_or_create_key_pair(self, account_id: str, app_id: str) -> KeyPair:
        """Return the current key pair, loading or generating it on first use."""
        identity = (account_id, app_id)
        cached = self._current.get(identity)
        if cached is not None:
            return cached

        storage_key = self.config.encryption_key_name(account_id, app_id)
        stored = self.storage.get_item(storage_key)
        if stored:
            secret = b64decode_key(stored, SECRET_KEY_LENGTH)
            key_pair = BoxCodec.derive_key_pair(secret)
            logger.debug("Loaded encryption key for %s/%s", account_id, app_id)
        else:
            key_pair = BoxCodec.generate_key_pair()
            self.storage.set_item(storage_key, b64encode(key_pair.secret_key))
            logger.info(
                "Generated encryption key for %s/%s: %s",
                account_id,
                app_id,
                key_pair.public_key64,
            )

        self._current[identity] = key_pair
        return key_pair

    def update_key_pair(
        self, account_id: str, app_id: str, new_secret: bytes | str
    ) -> KeyPair:
        """Replace the identity's key pair with one derived from ``new_secret``.

        ``new_secret`` may be raw bytes or base64 text.
        """
        if isinstance(new_secret, str):
            secret = b64decode_key(new_secret, SECRET_KEY_LENGTH)
        else:
            BoxCodec.check_secret_key(new_secret)
            secret = bytes(new_secret)
        key_pair = BoxCodec.derive_key_pair(secret)

        # Persist first so a failed write leaves the old pair current
        storage_key = self.config.encryption_key_name(account_id, app_id)
        self.storage.set_item(storage_key, b64encode(key_pair.secret_key))
        self._current[(account_id, app_id)] = key_pair
        logger.info(
            "Updated encryption key for %s/%s: %s",
            account_id,
            app_id,
            key_pair.public_key64,
        )
        return key_pair
