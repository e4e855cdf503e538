r"""Shared logic of the sync and async operation pollers."""

from __future__ import annotations

__all__ = ["DEFAULT_STATUS_PATH", "BaseOperationPoller"]

import logging
import time
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from urllib.parse import quote

from arescore.callbacks import PollInfo
from arescore.cancel import CancelToken
from arescore.core.config import PollPolicy
from arescore.core.validation import validate_timeout
from arescore.exceptions import MalformedPayloadError, OperationFailedError
from arescore.operation import Operation, StatusClass
from arescore.polling.state import PollResult, PollState
from arescore.retry.executor_core import build_url, cancelled_error

if TYPE_CHECKING:
    from collections.abc import Callable

    from arescore.core.config import RetryPolicy
    from arescore.exceptions import RequestCancelledError

logger: logging.Logger = logging.getLogger("arescore.polling")

DEFAULT_STATUS_PATH = "/api/rest/public/process/{operation_id}"

TExecutor = TypeVar("TExecutor")

_STATES = {StatusClass.SUCCESS: PollState.SUCCEEDED, StatusClass.FAILURE: PollState.FAILED}


class BaseOperationPoller(Generic[TExecutor]):
    """Base class of the operation pollers.

    Args:
        executor: The executor used to fetch status snapshots.
        poll_policy: The interval schedule between checks. If ``None``,
            a default ``PollPolicy`` is used.
        status_path: Path template of the status endpoint, formatted
            with ``operation_id``.
        on_poll: Optional callback called after each status check.
        final_check_timeout: Bound of the final check made after the
            deadline. Defaults to the executor's request timeout.
    """

    def __init__(
        self,
        executor: TExecutor,
        *,
        poll_policy: PollPolicy | None = None,
        status_path: str = DEFAULT_STATUS_PATH,
        on_poll: Callable[[PollInfo], None] | None = None,
        final_check_timeout: float | None = None,
    ) -> None:
        if final_check_timeout is not None:
            validate_timeout(final_check_timeout, name="final_check_timeout")
        self.executor = executor
        self.poll_policy = poll_policy or PollPolicy()
        self.status_path = status_path
        self.on_poll = on_poll
        self.final_check_timeout = final_check_timeout

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(poll_policy={self.poll_policy}, "
            f"status_path={self.status_path!r})"
        )

    def _status_path(self, operation_id: str) -> str:
        return self.status_path.format(operation_id=quote(operation_id, safe=""))

    def _status_url(self, operation_id: str) -> str:
        return build_url(self.executor.config.base_url, self._status_path(operation_id))

    def _parse(self, operation_id: str, payload: Any) -> Operation:
        try:
            return Operation.from_payload(payload)
        except ValueError as exc:
            url = self._status_url(operation_id)
            msg = f"invalid status payload for operation {operation_id}: {exc}"
            raise MalformedPayloadError("GET", url, msg, cause=exc) from exc

    def _final_check_token(self) -> CancelToken:
        r"""Fresh token, unrelated to the expired deadline, bounding the
        final check."""
        return CancelToken.with_timeout(self.final_check_timeout or self.executor.config.timeout)

    def _final_check_policy(self) -> RetryPolicy:
        return self.executor.retry_policy.merge(max_retries=0)

    def _cancelled(
        self, operation_id: str, cancel: CancelToken | None, deadline: CancelToken
    ) -> RequestCancelledError | None:
        r"""Return the error to raise if the caller cancelled the wait,
        ``None`` if the deadline elapsed instead."""
        if cancel is None or not cancel.cancel_requested:
            return None
        logger.debug(f"Waiting for operation {operation_id} cancelled: {cancel.reason}")
        return cancelled_error(deadline, "GET", self._status_url(operation_id))

    def _observe(
        self,
        operation: Operation,
        operation_id: str,
        *,
        checks: int,
        waits: int,
        start: float,
        after_timeout: bool = False,
    ) -> PollResult | None:
        """Handle a successful status check.

        Returns:
            The result if the operation succeeded, ``None`` if it is
            still pending.

        Raises:
            OperationFailedError: If the operation failed.
        """
        state = _STATES.get(operation.status_class, PollState.WAITING)
        self._notify(operation_id, checks, operation.status, state, start)
        if state is PollState.SUCCEEDED:
            logger.debug(
                f"Operation {operation_id} completed with status {operation.status} "
                f"after {checks} check(s)"
            )
            return PollResult(
                operation=operation,
                state=state,
                after_timeout=after_timeout,
                checks=checks,
                waits=waits,
            )
        if state is PollState.FAILED:
            logger.debug(f"Operation {operation_id} failed with status {operation.status}")
            raise OperationFailedError(operation, after_timeout=after_timeout)
        logger.debug(f"Operation {operation_id} is {operation.status or 'pending'} (check {checks})")
        return None

    def _notify_failed_check(
        self, operation_id: str, check: int, last: Operation | None, start: float
    ) -> None:
        r"""Report a failed status check. The wait stays ``UNCHECKED``
        until a status has been observed."""
        state = PollState.UNCHECKED if last is None else PollState.WAITING
        self._notify(operation_id, check, None, state, start)

    def _notify(
        self, operation_id: str, check: int, status: str | None, state: PollState, start: float
    ) -> None:
        if self.on_poll is not None:
            self.on_poll(
                PollInfo(
                    operation_id=operation_id,
                    check=check,
                    status=status,
                    state=state,
                    elapsed=time.monotonic() - start,
                )
            )
