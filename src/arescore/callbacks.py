r"""Callback types and data structures for observability.

The executor exposes four lifecycle hooks and the poller one:
- on_request: Called before each request attempt
- on_retry: Called before each backoff wait
- on_success: Called when a logical call succeeds
- on_failure: Called when a logical call fails for good
- on_poll: Called after each status check of an awaited operation

Example:
    ```pycon
    >>> from arescore.callbacks import RetryInfo
    >>> from arescore.core import ExecutorConfig
    >>> def log_retry(info: RetryInfo) -> None:
    ...     print(f"Retry {info.attempt}/{info.max_retries + 1} in {info.wait_time:.2f}s")
    ...
    >>> config = ExecutorConfig(api_key="key", on_retry=log_retry)

    ```
"""

from __future__ import annotations

__all__ = ["FailureInfo", "PollInfo", "RequestInfo", "ResponseInfo", "RetryInfo"]

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from arescore.exceptions import RemoteCallError
    from arescore.polling.state import PollState


@dataclass
class RequestInfo:
    """Information passed to on_request callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The current attempt number (1-indexed). First attempt is 1.
        max_retries: Maximum number of retry attempts configured.
    """

    url: str
    method: str
    attempt: int
    max_retries: int


@dataclass
class RetryInfo:
    """Information passed to on_retry callback.

    Attributes:
        url: The URL being requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The upcoming attempt number (1-indexed). First retry is attempt 2.
        max_retries: Maximum number of retry attempts configured.
        wait_time: The backoff delay in seconds before this retry.
        error: The error that triggered the retry.
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    wait_time: float
    error: RemoteCallError


@dataclass
class ResponseInfo:
    """Information passed to on_success callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The attempt number that succeeded (1-indexed).
        max_retries: Maximum number of retry attempts configured.
        status_code: The HTTP status code of the successful response.
        total_time: Total time spent on all attempts including backoff (seconds).
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    status_code: int
    total_time: float


@dataclass
class FailureInfo:
    """Information passed to on_failure callback.

    Attributes:
        url: The URL that was requested.
        method: The HTTP method (e.g., "GET", "POST").
        attempt: The final attempt number (1-indexed).
        max_retries: Maximum number of retry attempts configured.
        error: The error surfaced to the caller.
        total_time: Total time spent on all attempts including backoff (seconds).
    """

    url: str
    method: str
    attempt: int
    max_retries: int
    error: RemoteCallError
    total_time: float

    @property
    def status_code(self) -> int | None:
        return self.error.status_code


@dataclass
class PollInfo:
    """Information passed to on_poll callback.

    Attributes:
        operation_id: Identifier of the awaited operation.
        check: The status check number (1-indexed). Check 1 is the
            immediate check made before any wait.
        status: The observed status, ``None`` if the check failed.
        state: The poller state after the check.
        elapsed: Seconds since the wait started.
    """

    operation_id: str
    check: int
    status: str | None
    state: PollState
    elapsed: float
