"""Domain layer: key material and handshake state.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class KeyPair:
    """Encryption key pair owned by a KeyStore.

    Both halves are raw 32-byte Curve25519 keys.
    """

    public_key: bytes
    secret_key: bytes = field(repr=False)

    @property
    def public_key64(self) -> str:
        return base64.b64encode(self.public_key).decode("ascii")

    @property
    def secret_key64(self) -> str:
        return base64.b64encode(self.secret_key).decode("ascii")


class ReadinessState(Enum):
    """Whether a usable access credential exists for the account."""

    NOT_READY = "not_ready"
    TEMPORARY_KEY_PENDING = "temporary_key_pending"
    READY = "ready"
