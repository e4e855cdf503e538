r"""Unit tests for the asynchronous operation poller."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any
from unittest.mock import Mock, patch

import httpx
import pytest

from arescore import (
    AsyncOperationPoller,
    CancelToken,
    HttpStatusError,
    OperationFailedError,
    OperationTimeoutError,
    PollState,
    RequestCancelledError,
    RetryPolicy,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from arescore import AsyncResilientExecutor

NO_RETRY = RetryPolicy(max_retries=0)

_wait_async = CancelToken.wait_async


def status_handler(
    outcomes: list[Any], seen: list[httpx.Request]
) -> Callable[[httpx.Request], httpx.Response]:
    """Create a handler answering status checks in order, repeating the
    last outcome."""

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        outcome = outcomes[min(len(seen), len(outcomes)) - 1]
        if isinstance(outcome, int):
            return httpx.Response(outcome)
        return httpx.Response(200, json={"id": "p-1", "status": outcome})

    return handler


@contextlib.contextmanager
def patch_poll_waits(fired: list[bool] | None = None) -> Generator[list[float], None, None]:
    """Patch the bounded token waits so that no interval elapses.

    Unbounded waits, used to race in-flight requests, are left
    untouched. The bounded waits return the values of ``fired`` in
    order, then ``False``.

    Yields:
        The list of the waited intervals.
    """
    intervals: list[float] = []
    outcomes = list(fired or [])

    async def fake_wait_async(self: CancelToken, timeout: float | None = None) -> bool:
        if timeout is None:
            return await _wait_async(self, timeout)
        intervals.append(timeout)
        return outcomes.pop(0) if outcomes else False

    with patch.object(CancelToken, "wait_async", fake_wait_async):
        yield intervals


#################################################################
#     Tests for AsyncOperationPoller.wait_for_completion       #
#################################################################


@pytest.mark.asyncio
async def test_async_fetch(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test fetch parses a snapshot from the status endpoint."""
    seen: list[httpx.Request] = []
    poller = AsyncOperationPoller(make_async_executor(status_handler(["RUNNING"], seen)))
    operation = await poller.fetch("p-1")
    assert operation.status == "RUNNING"
    assert seen[0].url.path == "/api/rest/public/process/p-1"


@pytest.mark.asyncio
async def test_async_wait_immediate_success(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test an already finished operation returns after one check."""
    poller = AsyncOperationPoller(make_async_executor(status_handler(["DONE"], [])))
    with patch_poll_waits() as intervals:
        result = await poller.wait_for_completion("p-1", timeout=30.0)

    assert result.state is PollState.SUCCEEDED
    assert result.checks == 1
    assert intervals == []


@pytest.mark.asyncio
async def test_async_wait_interval_schedule(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test the poll intervals grow from 0.5s by a factor 1.5."""
    poller = AsyncOperationPoller(
        make_async_executor(status_handler(["RUNNING", "RUNNING", "RUNNING", "COMPLETED"], []))
    )
    with patch_poll_waits() as intervals:
        result = await poller.wait_for_completion("p-1", timeout=30.0)

    assert result.checks == 4
    assert result.waits == 3
    assert intervals == [0.5, 0.75, 1.125]


@pytest.mark.asyncio
async def test_async_wait_failure(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test a failure status raises OperationFailedError."""
    poller = AsyncOperationPoller(make_async_executor(status_handler(["RUNNING", "CANCELLED"], [])))
    with patch_poll_waits(), pytest.raises(OperationFailedError) as exc_info:
        await poller.wait_for_completion("p-1", timeout=30.0)
    assert exc_info.value.operation.status == "CANCELLED"


@pytest.mark.asyncio
async def test_async_wait_success_observed_after_timeout(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test an operation finishing at the deadline is reported as
    finished."""
    seen: list[httpx.Request] = []
    poller = AsyncOperationPoller(
        make_async_executor(status_handler(["RUNNING", "FINISHED"], seen))
    )
    with patch_poll_waits([True]):
        result = await poller.wait_for_completion("p-1", timeout=30.0)

    assert result.after_timeout
    assert result.checks == 2
    assert result.waits == 0
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_async_wait_timeout(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test a deadline elapsing raises OperationTimeoutError with the last
    status."""
    seen: list[httpx.Request] = []
    poller = AsyncOperationPoller(make_async_executor(status_handler(["RUNNING"], seen)))

    with pytest.raises(OperationTimeoutError, match=r"last status: RUNNING") as exc_info:
        await asyncio.wait_for(poller.wait_for_completion("p-1", timeout=0.05), 5.0)

    assert exc_info.value.last_status == "RUNNING"
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_async_wait_transient_error_is_pending(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test a retryable check failure counts as still pending."""
    poller = AsyncOperationPoller(
        make_async_executor(status_handler(["RUNNING", 502, "DONE"], []), retry_policy=NO_RETRY)
    )
    with patch_poll_waits():
        result = await poller.wait_for_completion("p-1", timeout=30.0)
    assert result.checks == 3


@pytest.mark.asyncio
async def test_async_wait_non_retryable_error_propagates(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test a non-retryable check failure stops the wait."""
    poller = AsyncOperationPoller(make_async_executor(status_handler(["RUNNING", 403], [])))
    with patch_poll_waits(), pytest.raises(HttpStatusError) as exc_info:
        await poller.wait_for_completion("p-1", timeout=30.0)
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_async_wait_parent_cancelled(
    make_async_executor: Callable[..., AsyncResilientExecutor],
) -> None:
    """Test cancelling the parent token wakes the poll wait and makes no
    final check."""
    seen: list[httpx.Request] = []
    parent = CancelToken()
    poller = AsyncOperationPoller(make_async_executor(status_handler(["RUNNING"], seen)))

    task = asyncio.ensure_future(poller.wait_for_completion("p-1", timeout=30.0, cancel=parent))
    while not seen:
        await asyncio.sleep(0.01)
    parent.cancel("user abort")

    with pytest.raises(RequestCancelledError) as exc_info:
        await asyncio.wait_for(task, 5.0)
    assert not exc_info.value.deadline_exceeded
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_async_wait_on_poll_callback(
    make_async_executor: Callable[..., AsyncResilientExecutor], mock_callback: Mock
) -> None:
    """Test on_poll is called after each status check."""
    poller = AsyncOperationPoller(
        make_async_executor(status_handler(["RUNNING", "DONE"], [])), on_poll=mock_callback
    )
    with patch_poll_waits():
        await poller.wait_for_completion("p-1", timeout=30.0)

    states = [call.args[0].state for call in mock_callback.call_args_list]
    assert states == [PollState.WAITING, PollState.SUCCEEDED]


@pytest.mark.asyncio
async def test_async_wait_on_poll_callback_unchecked_until_status_observed(
    make_async_executor: Callable[..., AsyncResilientExecutor], mock_callback: Mock
) -> None:
    """Test a failed immediate check reports UNCHECKED."""
    poller = AsyncOperationPoller(
        make_async_executor(status_handler([502, "DONE"], []), retry_policy=NO_RETRY),
        on_poll=mock_callback,
    )
    with patch_poll_waits():
        await poller.wait_for_completion("p-1", timeout=30.0)

    states = [call.args[0].state for call in mock_callback.call_args_list]
    assert states == [PollState.UNCHECKED, PollState.SUCCEEDED]
