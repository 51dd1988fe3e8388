# metanear: private app storage and pairwise encrypted messaging

from metanear.client.app import MetaNearApp
from metanear.client.call_queue import CallSerializer
from metanear.client.domain.entities import KeyPair, ReadinessState
from metanear.client.key_store import KeyStore
from metanear.client.peer_keys import PeerKeyResolver
from metanear.client.readiness import ReadinessHandshake
from metanear.common.config import Config
from metanear.common.crypto import BoxCodec
from metanear.common.decorators import requires_ready

ENCRYPTION_KEY = Config().ENCRYPTION_KEY_SLOT

__all__ = [
    "ENCRYPTION_KEY",
    "BoxCodec",
    "CallSerializer",
    "KeyPair",
    "KeyStore",
    "MetaNearApp",
    "PeerKeyResolver",
    "ReadinessHandshake",
    "ReadinessState",
    "requires_ready",
]
