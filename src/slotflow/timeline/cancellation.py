"""Cooperative cancellation for timeline actions and presenters."""

from typing import Callable, List
import asyncio
import logging

logger = logging.getLogger(__name__)


class OperationCancelled(Exception):
    """Raised by ``CancellationToken.throw_if_cancelled``."""

    def __init__(self, message: str = "Operation was cancelled") -> None:
        super().__init__(message)


class CancellationToken:
    """Cancellation flag with an ordered list of cancel callbacks.

    ``cancel()`` is idempotent. Callbacks run once, in registration order;
    an exception raised by one is logged and does not prevent the rest
    from running.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in cancel callback: {e}")

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback to run on cancellation.

        If the token is already cancelled the callback runs immediately.

        Returns:
            Function that unregisters the callback
        """
        if self._cancelled:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in cancel callback: {e}")
            return lambda: None

        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    def throw_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelled()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"


async def cancellable_sleep(ms: float, token: CancellationToken | None = None) -> None:
    """Sleep for ``ms`` milliseconds, returning early when ``token`` is cancelled.

    Never raises on cancellation; callers check the token afterwards.
    """
    if token is not None and token.is_cancelled:
        return
    if ms <= 0:
        await asyncio.sleep(0)
        return

    loop = asyncio.get_running_loop()
    waiter = loop.create_future()

    def wake() -> None:
        if not waiter.done():
            waiter.set_result(None)

    handle = loop.call_later(ms / 1000.0, wake)
    remove = token.on_cancel(wake) if token is not None else None
    try:
        await waiter
    finally:
        handle.cancel()
        if remove is not None:
            remove()
