"""
Configuration settings for the metanear SDK.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from nacl.bindings import (
    crypto_box_BOXZEROBYTES,
    crypto_box_NONCEBYTES,
    crypto_box_PUBLICKEYBYTES,
    crypto_box_SECRETKEYBYTES,
    crypto_box_ZEROBYTES,
    crypto_secretbox_KEYBYTES,
    crypto_secretbox_MACBYTES,
    crypto_secretbox_NONCEBYTES,
)


class Config:
    """Central configuration class for all SDK settings."""

    def __init__(self) -> None:
        # Gas attached to change calls
        self.GAS: int = 200_000_000_000_000
        self.MESSAGE_GAS: int = 300_000_000_000_000

        # Well-known storage slot for published encryption public keys
        self.ENCRYPTION_KEY_SLOT: str = "encryptionKey"

        # Persistence namespaces
        self.ENCRYPTION_KEY_PREFIX: str = "enc_key"
        self.ACCESS_KEY_PREFIX: str = "app"
        self.ACCESS_KEY_TYPE: str = "ed25519"

        # Network settings
        self.NETWORK_ID: str = os.getenv("METANEAR_NETWORK_ID", "default")
        self.NODE_URL: str = os.getenv(
            "METANEAR_NODE_URL", "https://rpc.testnet.near.org"
        )
        self.RPC_TIMEOUT: float = float(os.getenv("METANEAR_RPC_TIMEOUT", "10"))

        # Local key-value store used by the CLI
        self.STORE_PATH: Path = Path(
            os.getenv(
                "METANEAR_STORE_PATH", str(Path.home() / ".metanear" / "store.json")
            )
        )

        # First attempt plus one retry for serialized change calls
        self.CALL_MAX_ATTEMPTS: int = 2

        # Stored values are plaintext JSON unless a caller asks for sealing
        self.ENCRYPT_VALUES_BY_DEFAULT: bool = False

        # Algorithm constants (NaCl box / secretbox)
        self.SECRET_KEY_LENGTH: int = crypto_box_SECRETKEYBYTES
        self.PUBLIC_KEY_LENGTH: int = crypto_box_PUBLICKEYBYTES
        self.BOX_NONCE_LENGTH: int = crypto_box_NONCEBYTES
        self.BOX_MAC_LENGTH: int = crypto_box_ZEROBYTES - crypto_box_BOXZEROBYTES
        self.SECRETBOX_KEY_LENGTH: int = crypto_secretbox_KEYBYTES
        self.SECRETBOX_NONCE_LENGTH: int = crypto_secretbox_NONCEBYTES
        self.SECRETBOX_MAC_LENGTH: int = crypto_secretbox_MACBYTES

        # Logging
        self.LOG_LEVEL: int = logging.INFO

    def encryption_key_name(self, account_id: str, app_id: str) -> str:
        """Persistence key for the encryption secret of an account/app pair."""
        return f"{self.ENCRYPTION_KEY_PREFIX}:{account_id}:{app_id}:"

    def access_key_prefix(self, app_id: str) -> str:
        """Namespace under which access credentials for an app are stored."""
        return f"{self.ACCESS_KEY_PREFIX}:{app_id}:"
