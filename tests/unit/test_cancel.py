r"""Unit tests for cancellation tokens."""

from __future__ import annotations

import asyncio
import threading
import time
from unittest.mock import Mock

import pytest

from arescore.cancel import CancelToken

#################################
#     Tests for CancelToken     #
#################################


def test_cancel_token_initial_state() -> None:
    """Test a new token without deadline is not cancelled."""
    token = CancelToken()
    assert not token.cancelled
    assert not token.cancel_requested
    assert not token.deadline_exceeded
    assert token.deadline is None
    assert token.remaining() is None
    assert token.reason is None


def test_cancel_token_cancel() -> None:
    """Test cancel fires the token with a reason."""
    token = CancelToken()
    token.cancel("user abort")
    assert token.cancelled
    assert token.cancel_requested
    assert token.reason == "user abort"


def test_cancel_token_cancel_is_idempotent() -> None:
    """Test a second cancel keeps the first reason and callbacks run
    once."""
    callback = Mock()
    token = CancelToken()
    token.add_callback(callback)
    token.cancel("first")
    token.cancel("second")
    assert token.reason == "first"
    callback.assert_called_once_with()


def test_cancel_token_with_timeout() -> None:
    """Test a token with a deadline reports the remaining time."""
    token = CancelToken.with_timeout(10.0)
    assert not token.cancelled
    assert 9.0 < token.remaining() <= 10.0


def test_cancel_token_deadline_exceeded() -> None:
    """Test a token fires when its deadline elapses."""
    token = CancelToken(deadline=time.monotonic() - 1.0)
    assert token.cancelled
    assert token.deadline_exceeded
    assert not token.cancel_requested
    assert token.remaining() == 0.0
    assert token.reason == "deadline exceeded"


def test_cancel_token_bound() -> None:
    """Test bound clamps a wait to the remaining time."""
    assert CancelToken().bound(5.0) == 5.0
    assert CancelToken().bound(None) is None
    token = CancelToken.with_timeout(1.0)
    assert token.bound(5.0) <= 1.0
    assert token.bound(0.1) == 0.1
    assert token.bound(None) <= 1.0


def test_cancel_token_add_callback_after_cancel() -> None:
    """Test a callback registered on a fired token runs immediately."""
    callback = Mock()
    token = CancelToken()
    token.cancel()
    token.add_callback(callback)
    callback.assert_called_once_with()


def test_cancel_token_remove_callback() -> None:
    """Test a removed callback is not called."""
    callback = Mock()
    token = CancelToken()
    token.add_callback(callback)
    token.remove_callback(callback)
    token.remove_callback(callback)
    token.cancel()
    callback.assert_not_called()


def test_cancel_token_parent_propagation() -> None:
    """Test a child token fires with its parent."""
    parent = CancelToken()
    child = CancelToken.with_timeout(10.0, parent=parent)
    parent.cancel("shutdown")
    assert child.cancelled
    assert child.cancel_requested
    assert child.reason == "parent shutdown"


def test_cancel_token_child_does_not_cancel_parent() -> None:
    """Test cancelling a child leaves its parent untouched."""
    parent = CancelToken()
    child = CancelToken(parent=parent)
    child.cancel()
    assert not parent.cancelled


def test_cancel_token_inherits_parent_deadline() -> None:
    """Test a child never outlives its parent's deadline."""
    parent = CancelToken(deadline=time.monotonic() + 1.0)
    child = CancelToken.with_timeout(10.0, parent=parent)
    assert child.deadline == parent.deadline


def test_cancel_token_detach() -> None:
    """Test a detached child ignores its parent."""
    parent = CancelToken()
    child = CancelToken(parent=parent)
    child.detach()
    parent.cancel()
    assert not child.cancelled


def test_cancel_token_wait_timeout() -> None:
    """Test wait returns False when the timeout elapses first."""
    assert not CancelToken().wait(0.01)


def test_cancel_token_wait_already_cancelled() -> None:
    """Test wait returns True immediately on a fired token."""
    token = CancelToken()
    token.cancel()
    start = time.monotonic()
    assert token.wait(10.0)
    assert time.monotonic() - start < 1.0


def test_cancel_token_wait_woken_by_cancel() -> None:
    """Test wait returns as soon as another thread cancels."""
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel)
    timer.start()
    start = time.monotonic()
    try:
        assert token.wait(10.0)
    finally:
        timer.cancel()
    assert time.monotonic() - start < 5.0


def test_cancel_token_wait_bounded_by_deadline() -> None:
    """Test wait returns True when the deadline elapses first."""
    token = CancelToken.with_timeout(0.05)
    start = time.monotonic()
    assert token.wait(10.0)
    assert time.monotonic() - start < 5.0


@pytest.mark.asyncio
async def test_cancel_token_wait_async_timeout() -> None:
    """Test wait_async returns False when the timeout elapses first."""
    assert not await CancelToken().wait_async(0.01)


@pytest.mark.asyncio
async def test_cancel_token_wait_async_woken_by_cancel() -> None:
    """Test wait_async returns as soon as the token is cancelled."""
    token = CancelToken()
    asyncio.get_running_loop().call_later(0.05, token.cancel)
    start = time.monotonic()
    assert await token.wait_async(10.0)
    assert time.monotonic() - start < 5.0


@pytest.mark.asyncio
async def test_cancel_token_wait_async_woken_from_thread() -> None:
    """Test wait_async is woken by a cancel from another thread."""
    token = CancelToken()
    timer = threading.Timer(0.05, token.cancel)
    timer.start()
    try:
        assert await token.wait_async(10.0)
    finally:
        timer.cancel()


@pytest.mark.asyncio
async def test_cancel_token_wait_async_bounded_by_deadline() -> None:
    """Test wait_async returns True when the deadline elapses first."""
    token = CancelToken.with_timeout(0.05)
    assert await token.wait_async(10.0)


@pytest.mark.asyncio
async def test_cancel_token_wait_async_cleans_up_callback() -> None:
    """Test wait_async unregisters its wake-up callback."""
    token = CancelToken()
    await token.wait_async(0.01)
    assert token._callbacks == []
