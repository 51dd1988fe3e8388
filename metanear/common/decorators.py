"""Readiness guard decorators.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

from metanear.common.exceptions import NotReadyError

logger = logging.getLogger(__name__)


def requires_ready(
    handshake: Any | Callable[[Any], Any] | str = "handshake",
    error_message: str | None = None,
    *,
    raise_exception: bool = True,
) -> Callable:
    """Decorator for coroutine methods that must not run before readiness.

    Args:
        handshake: ReadinessHandshake instance, a callable returning one
            (called with ``self``), or the name of an attribute on ``self``
        error_message: Message for the NotReadyError, if overriding
        raise_exception: Whether to raise or log and return None

    Returns:
        Decorated coroutine function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            if isinstance(handshake, str):
                if not args:
                    msg = f"Cannot get handshake attribute '{handshake}' without self"
                    raise ValueError(msg)
                guard = getattr(args[0], handshake)
            elif callable(handshake) and not hasattr(handshake, "probe_ready"):
                guard = handshake(args[0]) if args else handshake()
            else:
                guard = handshake

            if raise_exception and error_message is None:
                await guard.require_ready()
            elif not await guard.probe_ready():
                if raise_exception:
                    raise NotReadyError(error_message or "Not ready yet")
                logger.warning("Readiness check failed for %s", func.__name__)
                return None
            return await func(*args, **kwargs)

        return wrapper

    return decorator
