"""
Readiness handshake: defer work until an access credential is committed.

The app asks whether it is ready. If no credential is stored for the
account, a temporary Ed25519 access key is minted and its public half is
exposed so an external party can register it on the ledger. Once that
registration is confirmed, the temporary key becomes the account's
credential and every parked waiter is released together.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from metanear.client.domain.entities import ReadinessState
from metanear.common.exceptions import NothingPendingError, NotReadyError

if TYPE_CHECKING:
    from metanear.client.infrastructure.storage import AccessKeyStore

logger = logging.getLogger(__name__)

# Borsh enum tag for KeyType::ED25519
ED25519_KEY_TYPE_TAG = 0


def raw_public_key(key: Ed25519PrivateKey) -> bytes:
    return key.public_key().public_bytes(
        serialization.Encoding.Raw,
        serialization.PublicFormat.Raw,
    )


def format_public_key(raw: bytes, key_type: str = "ed25519") -> str:
    """Render a raw public key as ``<type>:<base64>``."""
    return f"{key_type}:{base64.b64encode(raw).decode('ascii')}"


class ReadinessHandshake:
    """Tracks NotReady -> TemporaryKeyPending -> Ready for one account."""

    def __init__(
        self,
        access_keys: AccessKeyStore,
        network_id: str,
        account_id: str,
    ):
        self.access_keys = access_keys
        self.network_id = network_id
        self.account_id = account_id
        self._tmp_key: Ed25519PrivateKey | None = None
        self._ready = False
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def state(self) -> ReadinessState:
        if self._ready:
            return ReadinessState.READY
        if self._tmp_key is not None:
            return ReadinessState.TEMPORARY_KEY_PENDING
        return ReadinessState.NOT_READY

    @property
    def pending_public_key(self) -> bytes | None:
        if self._tmp_key is None:
            return None
        return raw_public_key(self._tmp_key)

    async def _stored_key(self) -> Ed25519PrivateKey | None:
        return await self.access_keys.get_key(self.network_id, self.account_id)

    async def probe_ready(self) -> bool:
        """Return True once a committed credential exists.

        The first probe that finds nothing mints a temporary key; later
        probes reuse it.
        """
        if self._ready:
            return True
        if await self._stored_key() is not None:
            self._mark_ready()
            return True
        if self._tmp_key is None:
            self._mint_temporary_key()
        return False

    async def wait_until_ready(self) -> None:
        """Suspend until the account is ready. Returns at once if it already is."""
        if await self.probe_ready():
            return
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()
        self._waiters.append(waiter)
        logger.debug(
            "Waiting for access key on %s (%d waiting)",
            self.account_id,
            len(self._waiters),
        )
        await waiter

    async def confirm_key_injected(self) -> None:
        """Commit the pending temporary key as the account's credential."""
        if self._tmp_key is None:
            msg = "The key is not initialized yet"
            raise NothingPendingError(msg)
        await self.access_keys.set_key(self.network_id, self.account_id, self._tmp_key)
        self._tmp_key = None
        logger.info("Access key committed for %s", self.account_id)
        self._mark_ready()

    async def require_ready(self) -> None:
        if not await self.probe_ready():
            msg = f"Not ready yet: no access key for {self.account_id}"
            raise NotReadyError(msg)

    async def get_access_public_key(self) -> bytes:
        """Public half of the stored credential, else of the pending temporary key."""
        stored = await self._stored_key()
        if stored is not None:
            return raw_public_key(stored)
        if self._tmp_key is None:
            self._mint_temporary_key()
        assert self._tmp_key is not None
        return raw_public_key(self._tmp_key)

    async def get_serialized_access_public_key(self) -> bytes:
        """Access public key in borsh form: key-type tag then 32 raw bytes."""
        raw = await self.get_access_public_key()
        return bytes([ED25519_KEY_TYPE_TAG]) + raw

    def _mint_temporary_key(self) -> None:
        self._tmp_key = Ed25519PrivateKey.generate()
        logger.info(
            "Minted temporary access key for %s: %s",
            self.account_id,
            format_public_key(raw_public_key(self._tmp_key)),
        )

    def _mark_ready(self) -> None:
        if self._ready:
            return
        self._ready = True
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
        if waiters:
            logger.debug("Released %d readiness waiters", len(waiters))
