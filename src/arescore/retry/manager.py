r"""Callback manager for orchestrating retry lifecycle events.

This module provides the CallbackManager class that handles invocation
of user-defined callbacks at various points in the retry lifecycle.
"""

from __future__ import annotations

__all__ = ["CallbackManager"]

import time
from typing import TYPE_CHECKING

from arescore.callbacks import FailureInfo, RequestInfo, ResponseInfo, RetryInfo

if TYPE_CHECKING:
    from arescore.core.config import ExecutorConfig
    from arescore.exceptions import RemoteCallError


class CallbackManager:
    """Manages callback invocations during the retry lifecycle.

    Attempt numbers are 0-indexed internally and passed to the callbacks
    1-indexed.

    Attributes:
        config: The executor configuration holding the callbacks.
    """

    def __init__(self, config: ExecutorConfig) -> None:
        self.config = config

    def on_request(self, url: str, method: str, attempt: int, max_retries: int) -> None:
        if self.config.on_request is not None:
            self.config.on_request(
                RequestInfo(url=url, method=method, attempt=attempt + 1, max_retries=max_retries)
            )

    def on_retry(
        self,
        url: str,
        method: str,
        attempt: int,
        max_retries: int,
        sleep_time: float,
        error: RemoteCallError,
    ) -> None:
        """Invoke on_retry callback.

        Args:
            url: The URL being requested.
            method: The HTTP method.
            attempt: The attempt that just failed (0-indexed). The callback
                receives the number of the upcoming attempt.
            max_retries: Maximum number of retries.
            sleep_time: Backoff delay before the upcoming attempt.
            error: The error that triggered the retry.
        """
        if self.config.on_retry is not None:
            self.config.on_retry(
                RetryInfo(
                    url=url,
                    method=method,
                    attempt=attempt + 2,
                    max_retries=max_retries,
                    wait_time=sleep_time,
                    error=error,
                )
            )

    def on_success(
        self,
        url: str,
        method: str,
        attempt: int,
        max_retries: int,
        status_code: int,
        start_time: float,
    ) -> None:
        if self.config.on_success is not None:
            self.config.on_success(
                ResponseInfo(
                    url=url,
                    method=method,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    status_code=status_code,
                    total_time=time.time() - start_time,
                )
            )

    def on_failure(
        self,
        url: str,
        method: str,
        attempt: int,
        max_retries: int,
        error: RemoteCallError,
        start_time: float,
    ) -> None:
        if self.config.on_failure is not None:
            self.config.on_failure(
                FailureInfo(
                    url=url,
                    method=method,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    error=error,
                    total_time=time.time() - start_time,
                )
            )
