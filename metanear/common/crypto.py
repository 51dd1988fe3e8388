"""Authenticated-encryption boxes and encryption key derivation.

Every box produced here has the layout ``nonce || ciphertext+tag``. The nonce
is random per seal call and travels in-band, since the storage layer has no
sequence-number channel to derive one from.
"""

from __future__ import annotations

import base64
import binascii

import nacl.utils
from nacl.exceptions import CryptoError
from nacl.public import Box, PrivateKey, PublicKey
from nacl.secret import SecretBox

from metanear.client.domain.entities import KeyPair
from metanear.common.config import Config
from metanear.common.exceptions import (
    AuthenticationFailedError,
    InvalidKeyLengthError,
    InvalidPeerKeyError,
)

_config = Config()

SECRET_KEY_LENGTH = _config.SECRET_KEY_LENGTH
PUBLIC_KEY_LENGTH = _config.PUBLIC_KEY_LENGTH
BOX_NONCE_LENGTH = _config.BOX_NONCE_LENGTH
BOX_MAC_LENGTH = _config.BOX_MAC_LENGTH
SECRETBOX_KEY_LENGTH = _config.SECRETBOX_KEY_LENGTH
SECRETBOX_NONCE_LENGTH = _config.SECRETBOX_NONCE_LENGTH
SECRETBOX_MAC_LENGTH = _config.SECRETBOX_MAC_LENGTH


def _to_bytes(plaintext: str | bytes) -> bytes:
    if isinstance(plaintext, str):
        return plaintext.encode("utf-8")
    return bytes(plaintext)


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode_key(value: str, expected: int, *, peer: bool = False) -> bytes:
    """Decode a base64 key and check its length.

    Raises InvalidPeerKeyError when ``peer`` is set, InvalidKeyLengthError
    otherwise.
    """
    error_cls = InvalidPeerKeyError if peer else InvalidKeyLengthError
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        msg = "Given key is not valid base64"
        raise error_cls(msg, expected=expected) from err
    if len(raw) != expected:
        msg = f"Given key has wrong length: expected {expected}, got {len(raw)}"
        raise error_cls(msg, expected=expected, actual=len(raw))
    return raw


class BoxCodec:
    """Stateless seal/open routines for secretbox and public-key box."""

    @staticmethod
    def check_secret_key(secret_key: bytes, expected: int = SECRET_KEY_LENGTH) -> None:
        if len(secret_key) != expected:
            msg = (
                f"Given secret key has wrong length: expected {expected}, "
                f"got {len(secret_key)}"
            )
            raise InvalidKeyLengthError(msg, expected=expected, actual=len(secret_key))

    @staticmethod
    def check_public_key(public_key: bytes | None) -> None:
        if public_key is None:
            msg = "Given encryption public key is missing"
            raise InvalidPeerKeyError(msg, expected=PUBLIC_KEY_LENGTH)
        if len(public_key) != PUBLIC_KEY_LENGTH:
            msg = (
                "Given encryption public key is invalid: expected "
                f"{PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
            )
            raise InvalidPeerKeyError(
                msg, expected=PUBLIC_KEY_LENGTH, actual=len(public_key)
            )

    @staticmethod
    def generate_key_pair() -> KeyPair:
        """Generate a fresh random encryption key pair."""
        private = PrivateKey.generate()
        return KeyPair(
            public_key=bytes(private.public_key), secret_key=bytes(private)
        )

    @staticmethod
    def derive_key_pair(secret_key: bytes) -> KeyPair:
        """Rebuild the key pair for a stored secret key."""
        BoxCodec.check_secret_key(secret_key)
        private = PrivateKey(bytes(secret_key))
        return KeyPair(
            public_key=bytes(private.public_key), secret_key=bytes(private)
        )

    @staticmethod
    def seal_secret(plaintext: str | bytes, key: bytes) -> bytes:
        """Encrypt with a shared symmetric key."""
        BoxCodec.check_secret_key(key, SECRETBOX_KEY_LENGTH)
        nonce = nacl.utils.random(SECRETBOX_NONCE_LENGTH)
        sealed = SecretBox(bytes(key)).encrypt(_to_bytes(plaintext), nonce)
        # EncryptedMessage is already nonce || ciphertext
        return bytes(sealed)

    @staticmethod
    def open_secret(box: bytes, key: bytes) -> bytes:
        """Decrypt a box produced by seal_secret."""
        BoxCodec.check_secret_key(key, SECRETBOX_KEY_LENGTH)
        if len(box) < SECRETBOX_NONCE_LENGTH + SECRETBOX_MAC_LENGTH:
            msg = f"Secret box too short: {len(box)} bytes"
            raise AuthenticationFailedError(msg)
        nonce = bytes(box[:SECRETBOX_NONCE_LENGTH])
        ciphertext = bytes(box[SECRETBOX_NONCE_LENGTH:])
        try:
            return SecretBox(bytes(key)).decrypt(ciphertext, nonce)
        except CryptoError as err:
            msg = "Secret box failed to verify"
            raise AuthenticationFailedError(msg) from err

    @staticmethod
    def seal_box(
        plaintext: str | bytes, recipient_public_key: bytes, sender_secret_key: bytes
    ) -> bytes:
        """Encrypt for a recipient, authenticated by the sender's secret key."""
        BoxCodec.check_public_key(recipient_public_key)
        BoxCodec.check_secret_key(sender_secret_key)
        box = Box(PrivateKey(bytes(sender_secret_key)), PublicKey(bytes(recipient_public_key)))
        nonce = nacl.utils.random(BOX_NONCE_LENGTH)
        return bytes(box.encrypt(_to_bytes(plaintext), nonce))

    @staticmethod
    def open_box(
        box: bytes, sender_public_key: bytes, recipient_secret_key: bytes
    ) -> bytes:
        """Decrypt a box sealed by the holder of ``sender_public_key``."""
        BoxCodec.check_public_key(sender_public_key)
        BoxCodec.check_secret_key(recipient_secret_key)
        if len(box) < BOX_NONCE_LENGTH + BOX_MAC_LENGTH:
            msg = f"Box too short: {len(box)} bytes"
            raise AuthenticationFailedError(msg)
        nonce = bytes(box[:BOX_NONCE_LENGTH])
        ciphertext = bytes(box[BOX_NONCE_LENGTH:])
        shared = Box(PrivateKey(bytes(recipient_secret_key)), PublicKey(bytes(sender_public_key)))
        try:
            return shared.decrypt(ciphertext, nonce)
        except CryptoError as err:
            msg = "Box failed to verify"
            raise AuthenticationFailedError(msg) from err

    # Base64 text variants used at the storage and messaging boundary

    @staticmethod
    def encrypt_secret_box(text: str, key: bytes) -> str:
        return b64encode(BoxCodec.seal_secret(text, key))

    @staticmethod
    def decrypt_secret_box(box64: str, key: bytes) -> str:
        return BoxCodec.open_secret(_decode_box(box64), key).decode("utf-8")

    @staticmethod
    def encrypt_box(text: str, their_public_key: bytes, my_secret_key: bytes) -> str:
        return b64encode(BoxCodec.seal_box(text, their_public_key, my_secret_key))

    @staticmethod
    def decrypt_box(box64: str, their_public_key: bytes, my_secret_key: bytes) -> str:
        # Key checks run before the box is even decoded
        BoxCodec.check_public_key(their_public_key)
        BoxCodec.check_secret_key(my_secret_key)
        return BoxCodec.open_box(
            _decode_box(box64), their_public_key, my_secret_key
        ).decode("utf-8")


def _decode_box(box64: str) -> bytes:
    try:
        return base64.b64decode(box64, validate=True)
    except (binascii.Error, ValueError) as err:
        msg = "Box is not valid base64"
        raise AuthenticationFailedError(msg) from err
