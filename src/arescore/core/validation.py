r"""Parameter validation utilities for retry and polling policies.

This module provides validation functions to ensure policy parameters
meet their constraints before they are used by the executor or the
poller.
"""

from __future__ import annotations

__all__ = ["validate_poll_params", "validate_retry_params", "validate_timeout"]


def validate_timeout(timeout: float, name: str = "timeout") -> None:
    """Validate a timeout parameter.

    Args:
        timeout: Number of seconds. Must be > 0.
        name: Name of the parameter, used in the error message.

    Raises:
        ValueError: If timeout is <= 0.

    Example:
        ```pycon
        >>> from arescore.core.validation import validate_timeout
        >>> validate_timeout(10.0)
        >>> validate_timeout(0)
        Traceback (most recent call last):
        ...
        ValueError: timeout must be > 0, got 0

        ```
    """
    if timeout <= 0:
        msg = f"{name} must be > 0, got {timeout}"
        raise ValueError(msg)


def validate_retry_params(
    max_retries: int,
    base_delay: float,
    max_delay: float,
    multiplier: float,
    jitter_factor: float,
) -> None:
    """Validate retry policy parameters.

    Args:
        max_retries: Additional attempts beyond the first. Must be >= 0.
            A value of 0 means only the initial attempt.
        base_delay: Delay before the first retry in seconds. Must be > 0.
        max_delay: Cap for any single delay in seconds. Must be >= base_delay.
        multiplier: Growth factor between consecutive delays. Must be > 1.0.
        jitter_factor: Symmetric jitter ratio. Must be in [0.0, 1.0].

    Raises:
        ValueError: If any parameter violates its constraint.

    Example:
        ```pycon
        >>> from arescore.core.validation import validate_retry_params
        >>> validate_retry_params(
        ...     max_retries=3, base_delay=0.1, max_delay=5.0, multiplier=2.0, jitter_factor=0.1
        ... )

        ```
    """
    if max_retries < 0:
        msg = f"max_retries must be >= 0, got {max_retries}"
        raise ValueError(msg)
    if base_delay <= 0:
        msg = f"base_delay must be > 0, got {base_delay}"
        raise ValueError(msg)
    if max_delay < base_delay:
        msg = f"max_delay must be >= base_delay ({base_delay}), got {max_delay}"
        raise ValueError(msg)
    if multiplier <= 1.0:
        msg = f"multiplier must be > 1.0, got {multiplier}"
        raise ValueError(msg)
    if not 0.0 <= jitter_factor <= 1.0:
        msg = f"jitter_factor must be in [0.0, 1.0], got {jitter_factor}"
        raise ValueError(msg)


def validate_poll_params(min_interval: float, max_interval: float, multiplier: float) -> None:
    """Validate poll policy parameters.

    Args:
        min_interval: First poll interval in seconds. Must be > 0.
        max_interval: Cap for any poll interval. Must be >= min_interval.
        multiplier: Growth factor between intervals. Must be >= 1.0, a value
            of 1.0 polls at a constant rate.

    Raises:
        ValueError: If any parameter violates its constraint.
    """
    if min_interval <= 0:
        msg = f"min_interval must be > 0, got {min_interval}"
        raise ValueError(msg)
    if max_interval < min_interval:
        msg = f"max_interval must be >= min_interval ({min_interval}), got {max_interval}"
        raise ValueError(msg)
    if multiplier < 1.0:
        msg = f"multiplier must be >= 1.0, got {multiplier}"
        raise ValueError(msg)
