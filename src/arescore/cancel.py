r"""Cancellation tokens with optional deadlines.

A ``CancelToken`` is the single caller-supplied signal observed by every
suspension point of a logical call: before each request is sent, during
the network wait, and during every backoff or poll wait. It fires either
when ``cancel()`` is called or when its deadline elapses, whichever comes
first. Child tokens fire with their parent.

Example:
    ```pycon
    >>> from arescore.cancel import CancelToken
    >>> token = CancelToken.with_timeout(10.0)
    >>> token.cancelled
    False
    >>> token.cancel()
    >>> token.cancelled
    True

    ```
"""

from __future__ import annotations

__all__ = ["CancelToken"]

import asyncio
import contextlib
import threading
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class CancelToken:
    """Thread-safe cancellation signal with an optional deadline.

    Args:
        deadline: Absolute deadline on the ``time.monotonic()`` clock,
            or ``None`` for no deadline.
        parent: Optional parent token. The token fires when its parent
            fires, and never outlives the parent's deadline.
    """

    def __init__(self, *, deadline: float | None = None, parent: CancelToken | None = None) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._reason: str | None = None
        self._expired = False
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline
        self.parent = parent
        if parent is not None:
            parent.add_callback(self._cancel_from_parent)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(cancelled={self.cancelled}, "
            f"remaining={self.remaining()})"
        )

    @classmethod
    def with_timeout(cls, timeout: float, parent: CancelToken | None = None) -> CancelToken:
        r"""Create a token whose deadline is ``timeout`` seconds from now."""
        return cls(deadline=time.monotonic() + timeout, parent=parent)

    @property
    def deadline(self) -> float | None:
        r"""The absolute deadline on the ``time.monotonic()`` clock."""
        return self._deadline

    @property
    def cancelled(self) -> bool:
        r"""Whether the token was cancelled or its deadline elapsed."""
        return self.cancel_requested or self.deadline_exceeded

    @property
    def cancel_requested(self) -> bool:
        r"""Whether ``cancel()`` was called on this token or an ancestor."""
        return self._event.is_set()

    @property
    def deadline_exceeded(self) -> bool:
        r"""Whether the deadline elapsed."""
        if not self._expired and self._deadline is not None:
            self._expired = time.monotonic() >= self._deadline
        return self._expired

    @property
    def reason(self) -> str | None:
        r"""Why the token fired, or ``None`` if it has not."""
        if self._reason is not None:
            return self._reason
        if self.deadline_exceeded:
            return "deadline exceeded"
        return None

    def remaining(self) -> float | None:
        r"""Seconds left before the deadline, ``None`` without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def bound(self, timeout: float | None) -> float | None:
        """Clamp a wait duration to the time left before the deadline.

        Args:
            timeout: The desired wait in seconds, or ``None`` for no limit.

        Returns:
            The smaller of ``timeout`` and ``remaining()``.
        """
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)

    def cancel(self, reason: str = "cancelled") -> None:
        r"""Fire the token, waking up every waiter and child token."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        r"""Register ``callback`` to run on ``cancel()``, immediately if
        the token was already cancelled."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock, contextlib.suppress(ValueError):
            self._callbacks.remove(callback)

    def wait(self, timeout: float | None) -> bool:
        """Block until the token fires or ``timeout`` seconds elapse.

        Args:
            timeout: Maximum wait in seconds, ``None`` to wait for the
                token only.

        Returns:
            ``True`` if the token fired, ``False`` if the full timeout
            elapsed first.
        """
        if not self.cancelled:
            limit = self.bound(timeout)
            self._event.wait(limit)
            self._mark_expired(timeout, limit)
        return self.cancelled

    async def wait_async(self, timeout: float | None = None) -> bool:
        """Suspend until the token fires or ``timeout`` seconds elapse.

        Args:
            timeout: Maximum wait in seconds, ``None`` to wait for the
                token only.

        Returns:
            ``True`` if the token fired, ``False`` if the full timeout
            elapsed first.
        """
        if self.cancelled:
            return True
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()

        def wake() -> None:
            loop.call_soon_threadsafe(_resolve, waiter)

        limit = self.bound(timeout)
        self.add_callback(wake)
        try:
            await asyncio.wait_for(waiter, limit)
        except asyncio.TimeoutError:
            pass
        finally:
            self.remove_callback(wake)
        self._mark_expired(timeout, limit)
        return self.cancelled

    def _mark_expired(self, timeout: float | None, limit: float | None) -> None:
        # Timer wake-ups may come slightly before the deadline they were bounded by
        if limit is not None and limit != timeout and not self._event.is_set():
            self._expired = True

    def _cancel_from_parent(self) -> None:
        self.cancel(reason=f"parent {self.parent.reason if self.parent else 'cancelled'}")

    def detach(self) -> None:
        r"""Stop listening to the parent token."""
        if self.parent is not None:
            self.parent.remove_callback(self._cancel_from_parent)


def _resolve(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)
