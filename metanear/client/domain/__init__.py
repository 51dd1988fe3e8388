from metanear.client.domain.entities import KeyPair, ReadinessState

__all__ = ["KeyPair", "ReadinessState"]
