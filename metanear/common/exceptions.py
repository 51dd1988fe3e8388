"""
Custom exceptions for the metanear SDK.
"""

from __future__ import annotations

INVALID_INPUT = "invalid_input"
CORRUPT = "corrupt"
UNAVAILABLE = "unavailable"
MISUSE = "misuse"
TRANSIENT = "transient"


class MetaNearError(Exception):
    """Base class for all SDK errors."""

    category: str = INVALID_INPUT

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class KeyValidationError(MetaNearError):
    """A key has the wrong byte length or could not be decoded."""

    def __init__(
        self,
        message: str,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class InvalidKeyLengthError(KeyValidationError):
    """Stored or supplied secret key has the wrong length."""


class InvalidPeerKeyError(KeyValidationError):
    """Peer public key is missing or malformed."""


class AuthenticationFailedError(MetaNearError):
    """Box failed to verify. Retrying with the same input will not help."""

    category = CORRUPT


class MissingParametersError(MetaNearError):
    """Not enough information was given to resolve a peer key."""


class PeerKeyUnavailableError(MetaNearError):
    """Peer has not published an encryption public key."""

    category = UNAVAILABLE


class HandshakeError(MetaNearError):
    """Readiness methods were called out of order."""

    category = MISUSE


class NotReadyError(HandshakeError):
    """No committed access credential exists yet."""


class NothingPendingError(HandshakeError):
    """Key injection confirmed while no temporary key is pending."""


class RemoteCallError(MetaNearError):
    """Network or RPC failure talking to the ledger."""

    category = TRANSIENT

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
