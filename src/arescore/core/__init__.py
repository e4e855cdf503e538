r"""Core configuration and validation shared by the sync and async
executors and pollers."""

from __future__ import annotations

__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_MAX_REDIRECTS",
    "DEFAULT_TIMEOUT",
    "ExecutorConfig",
    "PollPolicy",
    "RetryPolicy",
    "parse_duration",
    "validate_poll_params",
    "validate_retry_params",
    "validate_timeout",
]

from arescore.core.config import (
    DEFAULT_API_URL,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_TIMEOUT,
    ExecutorConfig,
    PollPolicy,
    RetryPolicy,
    parse_duration,
)
from arescore.core.validation import (
    validate_poll_params,
    validate_retry_params,
    validate_timeout,
)
