r"""Exponential backoff strategy."""

from __future__ import annotations

__all__ = ["ExponentialBackoff"]

import math

from arescore.backoff.base import BaseBackoffStrategy


class ExponentialBackoff(BaseBackoffStrategy):
    """Exponential backoff strategy.

    Calculates delay as: base_delay * (multiplier ** attempt), with an
    optional max_delay cap. Growth saturates at the cap for arbitrarily
    large attempt indices instead of overflowing.

    Args:
        base_delay: The delay for attempt 0 in seconds.
        max_delay: Optional maximum delay cap in seconds. If specified,
            delays will not exceed this value.
        multiplier: The growth factor between consecutive attempts.

    Example:
        ```pycon
        >>> from arescore.backoff import ExponentialBackoff
        >>> backoff = ExponentialBackoff(base_delay=0.5, multiplier=1.5)
        >>> backoff.calculate(0)
        0.5
        >>> backoff.calculate(1)
        0.75
        >>> backoff.calculate(2)
        1.125
        >>> # With max_delay cap
        >>> backoff = ExponentialBackoff(base_delay=1.0, max_delay=5.0)
        >>> backoff.calculate(10_000)  # Would overflow, but capped
        5.0

        ```
    """

    def __init__(
        self, base_delay: float = 0.1, max_delay: float | None = None, multiplier: float = 2.0
    ) -> None:
        if base_delay < 0:
            msg = f"base_delay must be non-negative, got {base_delay}"
            raise ValueError(msg)
        if max_delay is not None and max_delay <= 0:
            msg = f"max_delay must be positive if specified, got {max_delay}"
            raise ValueError(msg)
        if multiplier < 1.0:
            msg = f"multiplier must be >= 1.0, got {multiplier}"
            raise ValueError(msg)

        self.base_delay = base_delay
        self.max_delay = max_delay
        self.multiplier = multiplier

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(base_delay={self.base_delay}, "
            f"max_delay={self.max_delay}, multiplier={self.multiplier})"
        )

    def calculate(self, attempt: int) -> float:
        """Calculate exponential backoff delay.

        Args:
            attempt: The attempt index (0-indexed). Must be >= 0.

        Returns:
            The delay base_delay * (multiplier ** attempt), capped at
            max_delay if set.

        Raises:
            ValueError: If attempt is negative.
        """
        if attempt < 0:
            msg = f"attempt must be >= 0, got {attempt}"
            raise ValueError(msg)
        if self.base_delay == 0:
            return 0.0
        try:
            delay = self.base_delay * (self.multiplier**attempt)
        except OverflowError:
            delay = math.inf
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay
