r"""Asynchronous waiting for long-running server-side operations.

This module provides the AsyncOperationPoller class, the asyncio
counterpart of ``OperationPoller``.
"""

from __future__ import annotations

__all__ = ["AsyncOperationPoller"]

import logging
import time
from typing import TYPE_CHECKING

from arescore.backoff.delay import poll_interval
from arescore.cancel import CancelToken
from arescore.core.validation import validate_timeout
from arescore.exceptions import OperationTimeoutError, RemoteCallError
from arescore.polling.base import BaseOperationPoller
from arescore.polling.state import PollState

if TYPE_CHECKING:
    from arescore.core.config import RetryPolicy
    from arescore.operation import Operation
    from arescore.polling.state import PollResult
    from arescore.retry.executor_async import AsyncResilientExecutor

logger: logging.Logger = logging.getLogger(__name__)


class AsyncOperationPoller(BaseOperationPoller["AsyncResilientExecutor"]):
    r"""Waits until a server-side operation reaches a terminal status
    (asynchronous).

    Behaves like ``OperationPoller``. The poll waits suspend on the
    cancellation token, so cancelling it wakes the wait immediately.

    Example:
        ```pycon
        >>> import asyncio
        >>> from arescore import AsyncOperationPoller, AsyncResilientExecutor, ExecutorConfig
        >>> async def main():
        ...     async with AsyncResilientExecutor(ExecutorConfig(api_key="secret")) as executor:
        ...         poller = AsyncOperationPoller(executor)
        ...         return await poller.wait_for_completion("process-id", timeout=300.0)
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    async def fetch(
        self,
        operation_id: str,
        *,
        cancel: CancelToken | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> Operation:
        r"""Fetch one snapshot of an operation."""
        payload = await self.executor.execute_json(
            "GET", self._status_path(operation_id), cancel=cancel, retry_policy=retry_policy
        )
        return self._parse(operation_id, payload)

    async def wait_for_completion(
        self, operation_id: str, timeout: float, *, cancel: CancelToken | None = None
    ) -> PollResult:
        """Wait until an operation reaches a terminal status.

        Args:
            operation_id: The operation identifier.
            timeout: The deadline in seconds. Must be > 0.
            cancel: Optional parent token. Cancelling it aborts the wait
                without a final check.

        Returns:
            The result holding the successful snapshot.

        Raises:
            OperationFailedError: If the operation reached a failure status.
            OperationTimeoutError: If no terminal status was observed.
            RequestCancelledError: If ``cancel`` was cancelled.
            RemoteCallError: If a status check failed with a
                non-retryable error after the immediate check.
        """
        validate_timeout(timeout)
        deadline = CancelToken.with_timeout(timeout, parent=cancel)
        start = time.monotonic()
        checks = 1
        waits = 0
        last: Operation | None = None
        try:
            try:
                last = await self.fetch(operation_id, cancel=deadline)
            except RemoteCallError as exc:
                logger.debug(f"Immediate check of operation {operation_id} failed: {exc}")
                self._notify_failed_check(operation_id, checks, last, start)
            else:
                result = self._observe(last, operation_id, checks=checks, waits=waits, start=start)
                if result is not None:
                    return result

            attempt = 0
            while True:
                interval = poll_interval(attempt, self.poll_policy)
                if await deadline.wait_async(interval):
                    error = self._cancelled(operation_id, cancel, deadline)
                    if error is not None:
                        raise error
                    return await self._final_check(
                        operation_id, timeout, last, checks + 1, waits, start
                    )

                waits += 1
                checks += 1
                try:
                    last = await self.fetch(operation_id, cancel=deadline)
                except RemoteCallError as exc:
                    if not deadline.cancelled and not exc.retryable:
                        raise
                    logger.debug(f"Check {checks} of operation {operation_id} failed: {exc}")
                    self._notify_failed_check(operation_id, checks, last, start)
                else:
                    result = self._observe(
                        last, operation_id, checks=checks, waits=waits, start=start
                    )
                    if result is not None:
                        return result
                attempt += 1
        finally:
            deadline.detach()

    async def _final_check(
        self,
        operation_id: str,
        timeout: float,
        last: Operation | None,
        checks: int,
        waits: int,
        start: float,
    ) -> PollResult:
        logger.debug(f"Deadline reached for operation {operation_id}, making a final check")
        try:
            operation = await self.fetch(
                operation_id,
                cancel=self._final_check_token(),
                retry_policy=self._final_check_policy(),
            )
        except RemoteCallError as exc:
            logger.debug(f"Final check of operation {operation_id} failed: {exc}")
        else:
            last = operation
            result = self._observe(
                operation,
                operation_id,
                checks=checks,
                waits=waits,
                start=start,
                after_timeout=True,
            )
            if result is not None:
                return result
        self._notify(
            operation_id, checks, None if last is None else last.status, PollState.TIMED_OUT, start
        )
        raise OperationTimeoutError(operation_id, timeout, last)
