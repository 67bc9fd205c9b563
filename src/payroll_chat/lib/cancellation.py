"""Cooperative cancellation shared by every blocking call of a chat session."""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from payroll_chat.lib.errors import OperationCancelledError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Single cancellation signal threaded through console reads, poll sleeps and gateway calls.

    Once cancelled the token stays cancelled. Every wait offered here is a
    wait-any between the operation and the cancel event, so a raised signal is
    observed without waiting for the operation to finish on its own.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def cancel(self, reason: str = "Operation cancelled by user") -> None:
        """Raise the cancellation signal."""
        if not self._event.is_set():
            self._reason = reason
            logger.info("Cancellation requested: %s", reason)
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if the signal has been raised."""
        if self._event.is_set():
            raise OperationCancelledError(self._reason or "Operation cancelled by user")

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first.

        Raises:
            OperationCancelledError: If the token is cancelled before or during the sleep
        """
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` and abandon it as soon as the token is cancelled.

        The operation runs as its own task; on cancellation that task is
        cancelled and OperationCancelledError is raised in its place.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        operation = asyncio.ensure_future(awaitable)
        cancel_waiter = asyncio.ensure_future(self._event.wait())

        try:
            done, _ = await asyncio.wait(
                [operation, cancel_waiter],
                return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            operation.cancel()
            cancel_waiter.cancel()
            raise

        if operation in done:
            cancel_waiter.cancel()
            return operation.result()

        operation.cancel()
        try:
            await operation
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"Cancelled operation finished with error: {e}")

        raise OperationCancelledError(self._reason or "Operation cancelled by user")
