"""
Client-side app API over an account's key-value and messaging contract.

Local methods ``get``/``set``/``remove`` control the app's own state.
Remote methods ``get_from``, ``send_message`` and ``pull_message`` talk to
contracts of other accounts. Values cross the boundary JSON-encoded,
optionally sealed with the app's own secret key.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from metanear.client.call_queue import CallSerializer
from metanear.client.infrastructure.rpc import RpcRemoteReader
from metanear.client.infrastructure.storage import AccessKeyStore
from metanear.client.key_store import KeyStore
from metanear.client.peer_keys import PeerKeyResolver
from metanear.client.readiness import ReadinessHandshake, format_public_key
from metanear.common.config import Config
from metanear.common.crypto import BoxCodec
from metanear.common.decorators import requires_ready
from metanear.common.logging_utils import setup_logger
from metanear.common.models import AppConfig, PeerKeyOptions, ValueOptions

if TYPE_CHECKING:
    from metanear.client.domain.entities import KeyPair
    from metanear.common.interfaces import IKeyValueStore, IRemoteReader, IRemoteWriter


class MetaNearApp:
    """One app installed on one account."""

    def __init__(
        self,
        app_id: str,
        account_id: str,
        storage: IKeyValueStore,
        reader: IRemoteReader | None,
        writer: IRemoteWriter,
        app_config: AppConfig | None = None,
    ):
        self.app_id = app_id
        self.account_id = account_id
        self.writer = writer
        self.config = Config()

        app_config = app_config or AppConfig()
        # No reader given: read views over JSON-RPC
        self.reader = (
            reader
            if reader is not None
            else RpcRemoteReader(node_url=app_config.node_url)
        )
        self.network_id = app_config.network_id or self.config.NETWORK_ID
        self.gas = app_config.gas or self.config.GAS
        self.message_gas = app_config.message_gas or self.config.MESSAGE_GAS
        self.encrypt_values_by_default = (
            app_config.encrypt_values_by_default
            if app_config.encrypt_values_by_default is not None
            else self.config.ENCRYPT_VALUES_BY_DEFAULT
        )
        log_level = (
            app_config.log_level
            if app_config.log_level is not None
            else self.config.LOG_LEVEL
        )

        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, log_level)

        self.key_store = KeyStore(storage, self.config)
        self.access_keys = AccessKeyStore(
            storage, self.config.access_key_prefix(app_id)
        )
        self.handshake = ReadinessHandshake(
            self.access_keys, self.network_id, account_id
        )
        self.peer_keys = PeerKeyResolver(self.reader, app_id)
        self.calls = CallSerializer(app_config.call_max_attempts)

        # Load or create the encryption key eagerly so a bad stored key fails fast
        self.key_store.get_or_create_key_pair(account_id, app_id)

    # Encryption key

    @property
    def encryption_key_pair(self) -> KeyPair:
        return self.key_store.get_or_create_key_pair(self.account_id, self.app_id)

    def get_encryption_public_key(self) -> str:
        """Own encryption public key, base64-encoded."""
        return self.encryption_key_pair.public_key64

    def update_encryption_key(self, new_secret_key64: str) -> None:
        """Replace the encryption key with the given base64 secret key."""
        self.key_store.update_key_pair(self.account_id, self.app_id, new_secret_key64)

    async def store_encryption_public_key(self) -> None:
        """Publish the encryption public key under the well-known slot."""
        await self.set(self.config.ENCRYPTION_KEY_SLOT, self.get_encryption_public_key())

    async def get_stored_encryption_public_key(
        self, account_id: str | None = None, app_id: str | None = None
    ) -> str | None:
        """Base64 encryption key published by ``account_id`` (own account by default)."""
        return await self.get_from(
            account_id or self.account_id,
            self.config.ENCRYPTION_KEY_SLOT,
            app_id=app_id,
        )

    # Readiness

    async def ready(self) -> bool:
        """Whether the user is logged in with the app."""
        return await self.handshake.probe_ready()

    async def wait_ready(self) -> None:
        await self.handshake.wait_until_ready()

    async def force_ready(self) -> None:
        await self.handshake.require_ready()

    async def get_access_public_key(self) -> str:
        """Existing (or newly minted temporary) access public key as text."""
        raw = await self.handshake.get_access_public_key()
        return format_public_key(raw, self.config.ACCESS_KEY_TYPE)

    async def get_serialized_access_public_key(self) -> bytes:
        return await self.handshake.get_serialized_access_public_key()

    async def on_key_added(self) -> None:
        """Capture the temporary access key once it has been added on chain."""
        await self.handshake.confirm_key_injected()

    # Values

    def _encode_value(self, value: Any, encrypted: bool) -> str:
        text = json.dumps(value)
        if encrypted:
            return BoxCodec.encrypt_secret_box(text, self.encryption_key_pair.secret_key)
        return text

    def _decode_value(self, raw: str | None, encrypted: bool) -> Any:
        if not raw:
            return raw
        if encrypted:
            raw = BoxCodec.decrypt_secret_box(raw, self.encryption_key_pair.secret_key)
        return json.loads(raw)

    def _options(self, encrypted: bool | None, app_id: str | None = None) -> ValueOptions:
        return ValueOptions(
            encrypted=self.encrypt_values_by_default if encrypted is None else encrypted,
            app_id=app_id or self.app_id,
        )

    async def get(
        self, key: str, encrypted: bool | None = None, app_id: str | None = None
    ) -> Any:
        """Value stored under ``key`` in this account's app, or None."""
        return await self.get_from(self.account_id, key, encrypted=encrypted, app_id=app_id)

    async def get_from(
        self,
        account_id: str,
        key: str,
        encrypted: bool | None = None,
        app_id: str | None = None,
    ) -> Any:
        """Value stored under ``key`` in an app on another account."""
        options = self._options(encrypted, app_id)
        raw = await self.reader.read(account_id, options.app_id, key)
        return self._decode_value(raw, bool(options.encrypted))

    @requires_ready()
    async def set(self, key: str, value: Any, encrypted: bool | None = None) -> None:
        encoded = self._encode_value(value, bool(self._options(encrypted).encrypted))
        await self.calls.enqueue(lambda: self.writer.set(key, encoded, self.gas))
        self.logger.debug("Set %s on %s/%s", key, self.account_id, self.app_id)

    @requires_ready()
    async def remove(self, key: str) -> None:
        await self.calls.enqueue(lambda: self.writer.remove(key, self.gas))
        self.logger.debug("Removed %s on %s/%s", key, self.account_id, self.app_id)

    async def apps(self) -> Any:
        return await self.reader.apps(self.account_id)

    async def num_messages(self, app_id: str | None = None) -> int:
        return await self.reader.num_messages(self.account_id, app_id or self.app_id)

    # Messages

    @requires_ready()
    async def pull_message(self) -> Any:
        """Next queued message for this app, or None when there is none."""
        if await self.num_messages() <= 0:
            return None
        return await self.calls.enqueue(lambda: self.writer.pull_message(self.gas))

    @requires_ready()
    async def send_message(
        self, receiver_id: str, message: str, app_id: str | None = None
    ) -> None:
        target_app = app_id or self.app_id
        await self.calls.enqueue(
            lambda: self.writer.send_message(
                receiver_id, target_app, message, self.message_gas
            )
        )
        self.logger.info("Sent message to %s/%s", receiver_id, target_app)

    async def get_their_public_key(self, **options: Any) -> bytes:
        return await self.peer_keys.resolve_peer_public_key(PeerKeyOptions(**options))

    async def encrypt_message(self, content: str, **options: Any) -> str:
        """Box ``content`` for a peer, e.g. ``encrypt_message("hi", account_id="bob")``."""
        their_public_key = await self.get_their_public_key(**options)
        return BoxCodec.encrypt_box(
            content, their_public_key, self.encryption_key_pair.secret_key
        )

    async def decrypt_message(self, msg64: str, **options: Any) -> str:
        their_public_key = await self.get_their_public_key(**options)
        return BoxCodec.decrypt_box(
            msg64, their_public_key, self.encryption_key_pair.secret_key
        )
