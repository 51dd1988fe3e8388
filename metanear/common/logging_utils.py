"""
Logging helpers shared by the client, the CLI and the RPC layer.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    logger: logging.Logger, log_level: int, fmt: str = LOG_FORMAT
) -> logging.Logger:
    """
    Attach a stream handler to ``logger`` unless it already has one.

    Calling this again with a different level re-levels the existing
    handlers instead of stacking new ones.

    Args:
        logger: The logger instance to configure
        log_level: The logging level to set
        fmt: Format string for the stream handler

    Returns:
        The same logger, for chaining
    """
    logger.setLevel(log_level)
    if logger.handlers:
        for existing in logger.handlers:
            existing.setLevel(log_level)
        return logger

    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    return logger
