r"""Synchronous waiting for long-running server-side operations.

The wait makes one immediate status check, then alternates poll
intervals and checks until the operation reaches a terminal status or
the deadline elapses. When the deadline elapses, one final check is made
with a fresh, separately bounded token so that an operation finishing
right at the deadline is reported as finished rather than timed out.
"""

from __future__ import annotations

__all__ = ["OperationPoller"]

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
    from arescore.retry.executor import ResilientExecutor

logger: logging.Logger = logging.getLogger(__name__)


class OperationPoller(BaseOperationPoller["ResilientExecutor"]):
    r"""Blocks until a server-side operation reaches a terminal status.

    Poll intervals follow the ``PollPolicy`` schedule, independently of
    the executor's retry policy: with the defaults, checks happen about
    0.5s, 1.25s, 2.375s, ... after the immediate one.

    Args:
        executor: The executor used to fetch status snapshots. Each
            fetch is itself retried according to the executor's policy.
        poll_policy: The interval schedule between checks.
        status_path: Path template of the status endpoint.
        on_poll: Optional callback called after each status check.
        final_check_timeout: Bound of the final check made after the
            deadline. Defaults to the executor's request timeout.

    Example:
        ```pycon
        >>> from arescore import ExecutorConfig, OperationPoller, ResilientExecutor
        >>> with ResilientExecutor(ExecutorConfig(api_key="secret")) as executor:  # doctest: +SKIP
        ...     poller = OperationPoller(executor)
        ...     result = poller.wait_for_completion("process-id", timeout=300.0)
        ...

        ```
    """

    def fetch(
        self,
        operation_id: str,
        *,
        cancel: CancelToken | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> Operation:
        """Fetch one snapshot of an operation.

        Args:
            operation_id: The operation identifier.
            cancel: Optional token observed by the fetch.
            retry_policy: Optional policy for this fetch only.

        Returns:
            The current snapshot.

        Raises:
            RemoteCallError: If the fetch fails, or its payload is not a
                valid snapshot.
        """
        payload = self.executor.execute_json(
            "GET", self._status_path(operation_id), cancel=cancel, retry_policy=retry_policy
        )
        return self._parse(operation_id, payload)

    def wait_for_completion(
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
            OperationFailedError: If the operation reached a failure
                status, before or right after the deadline.
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
                last = self.fetch(operation_id, cancel=deadline)
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
                if deadline.wait(interval):
                    error = self._cancelled(operation_id, cancel, deadline)
                    if error is not None:
                        raise error
                    return self._final_check(operation_id, timeout, last, checks + 1, waits, start)

                waits += 1
                checks += 1
                try:
                    last = self.fetch(operation_id, cancel=deadline)
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

    def _final_check(
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
            operation = self.fetch(
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
