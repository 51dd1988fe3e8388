"""
Pydantic models for caller-supplied options and client configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from metanear.common.config import Config


class ValueOptions(BaseModel):
    """Options for reading and writing app values."""

    encrypted: bool | None = None
    app_id: str | None = None


class PeerKeyOptions(BaseModel):
    """How to find a peer's encryption public key.

    The first populated source wins: ``their_public_key``, then
    ``their_public_key64``, then a remote read on ``account_id``.
    """

    model_config = ConfigDict(extra="forbid")

    account_id: str | None = None
    their_public_key: bytes | None = None
    their_public_key64: str | None = None
    encryption_key: str = Field(default_factory=lambda: Config().ENCRYPTION_KEY_SLOT)
    app_id: str | None = None


class AppConfig(BaseModel):
    network_id: str | None = None
    node_url: str | None = None
    gas: int | None = Field(default=None, gt=0)
    message_gas: int | None = Field(default=None, gt=0)
    log_level: int | None = None
    encrypt_values_by_default: bool | None = None
    call_max_attempts: int | None = Field(default=None, ge=1)
