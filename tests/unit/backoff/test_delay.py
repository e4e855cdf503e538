r"""Unit tests for retry delay and poll interval calculation."""

from __future__ import annotations

import random
from unittest.mock import Mock

import pytest

from arescore.backoff import calculate_delay, poll_interval, retry_delay
from arescore.core import PollPolicy, RetryPolicy

#################################
#     Tests for retry_delay     #
#################################


def test_retry_delay_without_jitter() -> None:
    """Test retry delays grow exponentially without jitter."""
    policy = RetryPolicy(jitter_factor=0.0)
    assert [retry_delay(i, policy) for i in range(3)] == pytest.approx([0.1, 0.2, 0.4])


def test_retry_delay_capped_at_max_delay() -> None:
    """Test retry delays saturate at max_delay."""
    policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter_factor=0.0)
    assert retry_delay(3, policy) == 5.0
    assert retry_delay(10_000, policy) == 5.0


@pytest.mark.parametrize("draw", [-1.0, -0.5, 0.0, 0.5, 1.0])
def test_retry_delay_jitter_is_symmetric(draw: float) -> None:
    """Test jitter is raw * jitter_factor * U(-1, 1)."""
    policy = RetryPolicy(base_delay=1.0, max_delay=5.0, jitter_factor=0.1)
    uniform = Mock(return_value=draw)
    assert retry_delay(0, policy, uniform=uniform) == pytest.approx(1.0 + 0.1 * draw)
    uniform.assert_called_once_with(-1.0, 1.0)


def test_retry_delay_jitter_bounds() -> None:
    """Test |actual - raw| <= raw * jitter_factor for many draws."""
    policy = RetryPolicy(base_delay=0.1, max_delay=5.0, multiplier=2.0, jitter_factor=0.1)
    rng = random.Random(42)
    for attempt in range(12):
        raw = min(0.1 * 2.0**attempt, 5.0)
        for _ in range(50):
            delay = retry_delay(attempt, policy, uniform=rng.uniform)
            assert abs(delay - raw) <= raw * 0.1 + 1e-12


def test_retry_delay_never_negative() -> None:
    """Test full jitter with the lowest draw floors at zero."""
    policy = RetryPolicy(jitter_factor=1.0)
    assert retry_delay(0, policy, uniform=Mock(return_value=-1.0)) == 0.0


def test_retry_delay_uses_random_uniform_by_default() -> None:
    """Test the default draw stays within the jitter range."""
    policy = RetryPolicy(jitter_factor=0.5)
    assert 0.05 <= retry_delay(0, policy) <= 0.15


###################################
#     Tests for poll_interval     #
###################################


def test_poll_interval_default_schedule() -> None:
    """Test the default poll schedule is deterministic."""
    policy = PollPolicy()
    assert [poll_interval(i, policy) for i in range(4)] == pytest.approx([0.5, 0.75, 1.125, 1.6875])


def test_poll_interval_first_is_min_interval() -> None:
    """Test the first poll interval is exactly min_interval."""
    assert poll_interval(0, PollPolicy(min_interval=2.0, max_interval=10.0)) == 2.0


def test_poll_interval_capped_at_max_interval() -> None:
    """Test poll intervals saturate at max_interval."""
    policy = PollPolicy()
    assert poll_interval(6, policy) == 5.0
    assert poll_interval(100_000, policy) == 5.0


def test_poll_interval_constant_rate() -> None:
    """Test a multiplier of 1.0 polls at a constant rate."""
    policy = PollPolicy(min_interval=1.0, max_interval=1.0, multiplier=1.0)
    assert {poll_interval(i, policy) for i in range(5)} == {1.0}


#####################################
#     Tests for calculate_delay     #
#####################################


def test_calculate_delay_retry_policy() -> None:
    """Test calculate_delay dispatches to retry_delay."""
    assert calculate_delay(1, RetryPolicy(jitter_factor=0.0)) == pytest.approx(0.2)


def test_calculate_delay_poll_policy() -> None:
    """Test calculate_delay dispatches to poll_interval."""
    assert calculate_delay(1, PollPolicy()) == 0.75


def test_calculate_delay_unsupported_policy() -> None:
    """Test calculate_delay rejects unknown policy types."""
    with pytest.raises(TypeError, match=r"Unsupported policy type"):
        calculate_delay(0, object())
