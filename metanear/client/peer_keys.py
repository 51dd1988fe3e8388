"""
Resolution of a counterpart's encryption public key.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from metanear.common.crypto import PUBLIC_KEY_LENGTH, BoxCodec, b64decode_key
from metanear.common.exceptions import (
    InvalidPeerKeyError,
    MissingParametersError,
    PeerKeyUnavailableError,
)
from metanear.common.models import PeerKeyOptions

if TYPE_CHECKING:
    from metanear.common.interfaces import IRemoteReader

logger = logging.getLogger(__name__)


class PeerKeyResolver:
    """Single place where message encryption obtains the peer's public key."""

    def __init__(self, reader: IRemoteReader, app_id: str):
        self.reader = reader
        self.app_id = app_id

    async def resolve_peer_public_key(
        self, options: PeerKeyOptions | dict[str, Any] | None = None, **kwargs: Any
    ) -> bytes:
        """Return the peer's raw 32-byte public key.

        Args:
            options: PeerKeyOptions or an equivalent dict
            **kwargs: Extra option fields, merged over ``options``

        Raises:
            MissingParametersError: neither a key nor an account id was given
            PeerKeyUnavailableError: the peer has not published a key
            InvalidPeerKeyError: the key has the wrong length
        """
        opts = self._coerce(options, kwargs)

        if opts.their_public_key is not None:
            BoxCodec.check_public_key(opts.their_public_key)
            return opts.their_public_key

        key64 = opts.their_public_key64
        if not key64:
            if not opts.account_id:
                msg = "Either account_id or their_public_key64 has to be provided"
                raise MissingParametersError(msg)
            key64 = await self._fetch_published_key(opts)

        if not key64:
            msg = f"{opts.account_id} does not provide an encryption public key"
            raise PeerKeyUnavailableError(msg)
        if not isinstance(key64, str):
            msg = "Their encryption public key is invalid"
            raise InvalidPeerKeyError(msg, expected=PUBLIC_KEY_LENGTH)
        return b64decode_key(key64, PUBLIC_KEY_LENGTH, peer=True)

    async def _fetch_published_key(self, opts: PeerKeyOptions) -> Any:
        app_id = opts.app_id or self.app_id
        assert opts.account_id is not None
        raw = await self.reader.read(opts.account_id, app_id, opts.encryption_key)
        logger.debug(
            "Fetched %s for %s/%s: %s",
            opts.encryption_key,
            opts.account_id,
            app_id,
            "found" if raw else "missing",
        )
        if not raw:
            return None
        # Published values are JSON-encoded like every other stored value
        try:
            return json.loads(raw)
        except json.JSONDecodeError as err:
            msg = "Their encryption public key is not valid JSON"
            raise InvalidPeerKeyError(msg, expected=PUBLIC_KEY_LENGTH) from err

    @staticmethod
    def _coerce(
        options: PeerKeyOptions | dict[str, Any] | None, extra: dict[str, Any]
    ) -> PeerKeyOptions:
        if isinstance(options, PeerKeyOptions):
            if not extra:
                return options
            return options.model_copy(update=extra)
        merged = {**(options or {}), **extra}
        return PeerKeyOptions(**merged)
