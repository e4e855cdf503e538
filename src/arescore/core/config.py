r"""Configuration dataclasses and defaults for the executor and poller.

This module provides the retry and poll policies, the executor
configuration and the defaults they fall back to.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_MAX_REDIRECTS",
    "DEFAULT_TIMEOUT",
    "ExecutorConfig",
    "PollPolicy",
    "RetryPolicy",
    "parse_duration",
]

import logging
import os
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from arescore.core.validation import (
    validate_poll_params,
    validate_retry_params,
    validate_timeout,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from arescore.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo

logger: logging.Logger = logging.getLogger(__name__)

# Default per-request network timeout in seconds
DEFAULT_TIMEOUT = 30.0

# Redirect chains longer than this fail the call
DEFAULT_MAX_REDIRECTS = 10

DEFAULT_API_URL = "https://api.app-prg1.zerops.io"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|us|µs|ns|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 1e-3, "us": 1e-6, "µs": 1e-6, "ns": 1e-9}


@dataclass(frozen=True)
class RetryPolicy:
    """Retry behavior of a single logical call.

    With the defaults, a call that keeps failing with a retryable error is
    attempted 4 times, waiting about 0.1s, 0.2s and 0.4s (each +/- 10%)
    between attempts.

    Args:
        max_retries: Additional attempts beyond the first. Must be >= 0.
        base_delay: Delay before the first retry in seconds. Must be > 0.
        max_delay: Cap for any single delay. Must be >= base_delay.
        multiplier: Growth factor between consecutive delays. Must be > 1.0.
        jitter_factor: Symmetric jitter ratio in [0.0, 1.0]. Each delay is
            perturbed by up to ``+/- delay * jitter_factor``.

    Example:
        ```pycon
        >>> from arescore.core.config import RetryPolicy
        >>> policy = RetryPolicy()
        >>> policy.max_retries
        3
        >>> policy.merge(max_retries=5).max_retries
        5

        ```
    """

    max_retries: int = 3
    base_delay: float = 0.1
    max_delay: float = 5.0
    multiplier: float = 2.0
    jitter_factor: float = 0.1

    def __post_init__(self) -> None:
        validate_retry_params(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            multiplier=self.multiplier,
            jitter_factor=self.jitter_factor,
        )

    def merge(self, **overrides: Any) -> RetryPolicy:
        r"""Return a copy with the non-``None`` overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


@dataclass(frozen=True)
class PollPolicy:
    """Interval schedule used while waiting for an operation.

    Intervals grow deterministically (no jitter) from ``min_interval`` by
    ``multiplier`` per poll and saturate at ``max_interval``.

    Args:
        min_interval: First poll interval in seconds. Must be > 0.
        max_interval: Cap for any poll interval. Must be >= min_interval.
        multiplier: Growth factor between intervals. Must be >= 1.0.

    Example:
        ```pycon
        >>> from arescore.core.config import PollPolicy
        >>> PollPolicy()
        PollPolicy(min_interval=0.5, max_interval=5.0, multiplier=1.5)

        ```
    """

    min_interval: float = 0.5
    max_interval: float = 5.0
    multiplier: float = 1.5

    def __post_init__(self) -> None:
        validate_poll_params(
            min_interval=self.min_interval,
            max_interval=self.max_interval,
            multiplier=self.multiplier,
        )


@dataclass
class ExecutorConfig:
    """Configuration for ``ResilientExecutor`` and ``AsyncResilientExecutor``.

    Args:
        base_url: Base URL every request path is appended to.
        api_key: Credential sent as ``Authorization: Bearer <api_key>``.
        timeout: Per-request network timeout in seconds. Must be > 0.
        retry_policy: Default retry policy. Each call snapshots the policy
            installed when it starts.
        debug: Emit masked request and response bodies in debug logs.
        max_redirects: Maximum length of a redirect chain. Must be >= 0.
        on_request: Optional callback called before each attempt.
        on_retry: Optional callback called before each backoff wait.
        on_success: Optional callback called when a call succeeds.
        on_failure: Optional callback called when a call fails for good.

    Example:
        ```pycon
        >>> from arescore.core.config import ExecutorConfig
        >>> config = ExecutorConfig(api_key="secret")
        >>> config.timeout
        30.0
        >>> config.merge(timeout=5.0).timeout
        5.0

        ```
    """

    base_url: str = DEFAULT_API_URL
    api_key: str = ""
    timeout: float = DEFAULT_TIMEOUT
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    debug: bool = False
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    on_request: Callable[[RequestInfo], None] | None = None
    on_retry: Callable[[RetryInfo], None] | None = None
    on_success: Callable[[ResponseInfo], None] | None = None
    on_failure: Callable[[FailureInfo], None] | None = None

    def __post_init__(self) -> None:
        validate_timeout(self.timeout)
        if self.max_redirects < 0:
            msg = f"max_redirects must be >= 0, got {self.max_redirects}"
            raise ValueError(msg)
        self.base_url = self.base_url.rstrip("/")

    def merge(self, **overrides: Any) -> ExecutorConfig:
        """Create a new config with the non-``None`` overrides applied.

        Args:
            **overrides: Keyword arguments for the fields to override.

        Returns:
            A new ExecutorConfig instance, the current one is unchanged.
        """
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> None:
        """Check that the configuration can authenticate requests.

        Raises:
            ValueError: If no API key is configured.
        """
        if not self.api_key:
            msg = "api_key is not set (ARESCORE_API_KEY environment variable)"
            raise ValueError(msg)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> ExecutorConfig:
        """Load a configuration from environment variables.

        Recognized variables: ``ARESCORE_API_KEY``, ``ARESCORE_API_URL``,
        ``ARESCORE_API_TIMEOUT`` (seconds or a duration such as ``30s``,
        ``500ms`` or ``1m30s``) and ``ARESCORE_DEBUG`` or ``DEBUG`` (``true``).
        An unparsable timeout is ignored and the default is used.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.
            **overrides: Field values that take precedence over the
                environment.

        Returns:
            The loaded configuration.

        Example:
            ```pycon
            >>> from arescore.core.config import ExecutorConfig
            >>> config = ExecutorConfig.from_env(
            ...     {"ARESCORE_API_KEY": "k", "ARESCORE_API_TIMEOUT": "5s"}
            ... )
            >>> config.timeout
            5.0

            ```
        """
        env = os.environ if environ is None else environ
        timeout = DEFAULT_TIMEOUT
        raw_timeout = env.get("ARESCORE_API_TIMEOUT", "")
        if raw_timeout:
            try:
                timeout = parse_duration(raw_timeout)
            except ValueError:
                logger.warning(f"Ignoring invalid ARESCORE_API_TIMEOUT value {raw_timeout!r}")
        config = cls(
            base_url=env.get("ARESCORE_API_URL") or DEFAULT_API_URL,
            api_key=env.get("ARESCORE_API_KEY", ""),
            timeout=timeout,
            debug="true" in (env.get("ARESCORE_DEBUG"), env.get("DEBUG")),
        )
        return config.merge(**overrides)


def parse_duration(value: str) -> float:
    """Parse a duration into seconds.

    Accepts a plain number of seconds (``"2.5"``) or a sequence of
    number/unit pairs (``"1m30s"``, ``"500ms"``). Supported units are
    ``h``, ``m``, ``s``, ``ms``, ``us`` and ``ns``.

    Args:
        value: The duration text.

    Returns:
        The duration in seconds. Must be > 0.

    Raises:
        ValueError: If the text is not a positive duration.

    Example:
        ```pycon
        >>> from arescore.core.config import parse_duration
        >>> parse_duration("1m30s")
        90.0
        >>> parse_duration("250ms")
        0.25

        ```
    """
    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        parts = _DURATION_PART.findall(text)
        if not parts or "".join(number + unit for number, unit in parts) != text:
            msg = f"invalid duration: {value!r}"
            raise ValueError(msg) from None
        seconds = sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)
    validate_timeout(seconds, name="duration")
    return seconds
