r"""Delay calculation for retry backoff and operation polling.

Retry delays are jittered symmetrically to desynchronize concurrent
retriers hitting a recovering server. Poll intervals are deterministic:
a single known operation is polled, so there is no herd to spread.
"""

from __future__ import annotations

__all__ = ["calculate_delay", "poll_interval", "retry_delay"]

import logging
import random
from typing import TYPE_CHECKING

from arescore.backoff.exponential import ExponentialBackoff
from arescore.core.config import PollPolicy, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Callable

logger: logging.Logger = logging.getLogger(__name__)


def retry_delay(
    attempt: int,
    policy: RetryPolicy,
    uniform: Callable[[float, float], float] | None = None,
) -> float:
    """Calculate the wait before the retry following ``attempt``.

    The delay is calculated as follows:
    1. raw = base_delay * (multiplier ** attempt), capped at max_delay
    2. jitter = raw * jitter_factor * U(-1, 1)
    3. delay = max(0, raw + jitter)

    Args:
        attempt: The attempt index (0-indexed). attempt=0 is the wait
            after the first failed attempt.
        policy: The retry policy.
        uniform: Source of uniform draws, ``random.uniform`` by default.

    Returns:
        The delay in seconds, never negative.

    Example:
        ```pycon
        >>> from arescore.backoff import retry_delay
        >>> from arescore.core import RetryPolicy
        >>> policy = RetryPolicy(base_delay=0.1, jitter_factor=0.0)
        >>> retry_delay(0, policy)
        0.1
        >>> retry_delay(2, policy)
        0.4

        ```
    """
    raw = ExponentialBackoff(
        base_delay=policy.base_delay,
        max_delay=policy.max_delay,
        multiplier=policy.multiplier,
    ).calculate(attempt)
    if policy.jitter_factor <= 0:
        logger.debug(f"Waiting {raw:.3f}s before retry")
        return raw
    draw = (uniform or random.uniform)(-1.0, 1.0)
    jitter = raw * policy.jitter_factor * draw
    delay = max(0.0, raw + jitter)
    logger.debug(f"Waiting {delay:.3f}s before retry (base={raw:.3f}s, jitter={jitter:+.3f}s)")
    return delay


def poll_interval(attempt: int, policy: PollPolicy) -> float:
    """Calculate the wait before poll number ``attempt + 1``.

    Args:
        attempt: The poll index (0-indexed).
        policy: The poll policy.

    Returns:
        min_interval * (multiplier ** attempt), capped at max_interval.

    Example:
        ```pycon
        >>> from arescore.backoff import poll_interval
        >>> from arescore.core import PollPolicy
        >>> [poll_interval(i, PollPolicy()) for i in range(3)]
        [0.5, 0.75, 1.125]

        ```
    """
    return ExponentialBackoff(
        base_delay=policy.min_interval,
        max_delay=policy.max_interval,
        multiplier=policy.multiplier,
    ).calculate(attempt)


def calculate_delay(attempt: int, policy: RetryPolicy | PollPolicy) -> float:
    """Calculate the delay for ``attempt`` under either kind of policy.

    Args:
        attempt: The attempt or poll index (0-indexed).
        policy: A ``RetryPolicy`` (jittered) or a ``PollPolicy``
            (deterministic).

    Returns:
        The delay in seconds.

    Raises:
        TypeError: If policy is neither a RetryPolicy nor a PollPolicy.
    """
    if isinstance(policy, RetryPolicy):
        return retry_delay(attempt, policy)
    if isinstance(policy, PollPolicy):
        return poll_interval(attempt, policy)
    msg = f"Unsupported policy type: {type(policy).__qualname__}"
    raise TypeError(msg)
