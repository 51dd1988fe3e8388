"""
Serialized execution of state-changing remote calls.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

from metanear.common.config import Config

logger = logging.getLogger(__name__)

Operation = Callable[[], "Awaitable[Any] | Any"]


class CallSerializer:
    """Runs submitted operations one at a time, in submission order.

    Each operation waits for the previous one to settle, successfully or
    not. A failed operation is retried in place up to ``max_attempts``
    total attempts. When every attempt fails, the last error is raised
    with the first one chained as its cause and the full list kept on
    ``attempt_errors``.
    """

    def __init__(self, max_attempts: int | None = None):
        self.max_attempts = (
            Config().CALL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        )
        if self.max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self._tail: asyncio.Future[None] | None = None
        self._pending = 0

    @property
    def pending(self) -> int:
        """Operations submitted but not yet settled."""
        return self._pending

    def submit(self, operation: Operation) -> asyncio.Future[Any]:
        """Queue ``operation`` and return a future for its result.

        The queue position is fixed here, before anything is awaited.
        """
        loop = asyncio.get_running_loop()
        previous = self._tail
        settled: asyncio.Future[None] = loop.create_future()
        self._tail = settled
        self._pending += 1
        return asyncio.ensure_future(self._run_after(previous, settled, operation))

    async def enqueue(self, operation: Operation) -> Any:
        """Run ``operation`` in turn and return its result.

        Cancelling the caller (e.g. a timeout) does not withdraw the
        operation; it still runs in its slot.
        """
        return await asyncio.shield(self.submit(operation))

    async def _run_after(
        self,
        previous: asyncio.Future[None] | None,
        settled: asyncio.Future[None],
        operation: Operation,
    ) -> Any:
        try:
            if previous is not None:
                await asyncio.shield(previous)
            return await self._run_with_retry(operation)
        finally:
            self._pending -= 1
            # A cancelled entry must not release its successor early
            if previous is not None and not previous.done():
                previous.add_done_callback(lambda _: self._settle(settled))
            else:
                self._settle(settled)

    @staticmethod
    def _settle(settled: asyncio.Future[None]) -> None:
        if not settled.done():
            settled.set_result(None)

    async def _run_with_retry(self, operation: Operation) -> Any:
        errors: list[Exception] = []
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = operation()
                if inspect.isawaitable(result):
                    result = await result
                if errors:
                    logger.info("Call succeeded on attempt %d", attempt)
                return result
            except Exception as e:
                errors.append(e)
                if attempt < self.max_attempts:
                    logger.warning(
                        "Call failed on attempt %d/%d, retrying: %s",
                        attempt,
                        self.max_attempts,
                        e,
                    )

        last = errors[-1]
        logger.error("Call failed after %d attempts: %s", len(errors), last)
        last.attempt_errors = list(errors)  # type: ignore[attr-defined]
        if len(errors) > 1 and last is not errors[0]:
            raise last from errors[0]
        raise last
