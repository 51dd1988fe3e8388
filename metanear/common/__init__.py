# Common utilities
from metanear.common.config import Config as Config
from metanear.common.crypto import BoxCodec as BoxCodec
from metanear.common.logging_utils import setup_logger as setup_logger

__all__ = ["BoxCodec", "Config", "setup_logger"]
