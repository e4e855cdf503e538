r"""Synchronous resilient request executor.

This module provides the ResilientExecutor class that issues one logical
remote call with automatic retry, exponential backoff with jitter and
authenticated redirect following.
"""

from __future__ import annotations

__all__ = ["ResilientExecutor"]

import logging
import threading
import time
from typing import TYPE_CHECKING, Any

import httpx

from arescore.backoff.delay import retry_delay
from arescore.core.config import ExecutorConfig
from arescore.exceptions import RemoteCallError
from arescore.redirects import RedirectAuthorityPreserver, send_following_redirects
from arescore.retry.executor_core import (
    build_headers,
    build_url,
    cancelled_error,
    check_cancelled,
    decode_json,
    request_timeout,
    serialize_body,
    trace_request,
    trace_response,
    transport_error,
)
from arescore.retry.manager import CallbackManager
from arescore.utils.masking import mask_sensitive
from arescore.utils.response import build_status_error

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType
    from typing import Self

    from arescore.cancel import CancelToken
    from arescore.core.config import RetryPolicy

logger: logging.Logger = logging.getLogger(__name__)


class ResilientExecutor:
    r"""Executes remote calls with automatic retry logic.

    Each call to ``execute`` is one logical call made of up to
    ``max_retries + 1`` sequential attempts. Network failures and the
    status codes 429, 502, 503 and 504 are retried after an exponential,
    jittered backoff. Any other failure, and the last failure once the
    attempts are exhausted, is raised verbatim so callers can branch on
    its status code and error code.

    The retry policy is read once when a call starts. Installing a new
    policy with ``with_retry`` affects the calls started afterwards only.

    Every suspension point of a call (before sending, the network wait
    and each backoff wait) observes the optional ``CancelToken`` passed
    to ``execute``. The network wait is bounded by the time left on the
    token.

    Args:
        config: The executor configuration. If ``None``, a default
            ``ExecutorConfig`` is used.
        client: Optional ``httpx.Client`` used to send the requests. If
            ``None``, a client is created and closed with the executor.
        mask: Function applied to request and response bodies before
            they appear in debug logs. It is never applied to the data
            sent or returned.

    Example:
        ```pycon
        >>> from arescore import ExecutorConfig, ResilientExecutor
        >>> config = ExecutorConfig(api_key="secret")
        >>> with ResilientExecutor(config) as executor:  # doctest: +SKIP
        ...     payload = executor.execute("GET", "/api/rest/public/region")
        ...

        ```
    """

    def __init__(
        self,
        config: ExecutorConfig | None = None,
        *,
        client: httpx.Client | None = None,
        mask: Callable[[str], str] = mask_sensitive,
    ) -> None:
        self._config: ExecutorConfig = config or ExecutorConfig()
        self._client: httpx.Client = client or httpx.Client(timeout=self._config.timeout)
        self._close_client = client is None
        self._mask = mask
        self._retry_policy: RetryPolicy = self._config.retry_policy
        self._lock = threading.Lock()
        self._preserver = RedirectAuthorityPreserver(max_redirects=self._config.max_redirects)
        self._callbacks = CallbackManager(self._config)

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(base_url={self._config.base_url!r}, retry_policy={self.retry_policy})"

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    @property
    def retry_policy(self) -> RetryPolicy:
        r"""The policy snapshotted by the calls started from now on."""
        with self._lock:
            return self._retry_policy

    def with_retry(self, policy: RetryPolicy) -> Self:
        """Install a new default retry policy.

        Calls already in flight keep the policy they started with.

        Args:
            policy: The new default policy.

        Returns:
            The executor itself, to allow chaining.
        """
        with self._lock:
            self._retry_policy = policy
        logger.debug(f"Installed retry policy {policy}")
        return self

    def close(self) -> None:
        r"""Close the underlying client if the executor created it."""
        if self._close_client:
            self._client.close()
            self._close_client = False

    def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        cancel: CancelToken | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> bytes:
        """Execute one logical call with automatic retry logic.

        Args:
            method: The HTTP method, e.g. ``"GET"`` or ``"POST"``.
            path: The path appended to the configured base URL, or an
                absolute URL.
            body: Optional JSON-serializable request body.
            cancel: Optional token observed at every suspension point.
            retry_policy: Policy for this call only. Defaults to the
                executor's current policy.

        Returns:
            The raw body of the successful response.

        Raises:
            RemoteCallError: The last error observed, when it is not
                retryable or when all attempts are exhausted. Its
                ``attempts`` attribute holds the number of attempts made.
            RequestCancelledError: If ``cancel`` fired before the call
                completed.
        """
        method = method.upper()
        url = build_url(self._config.base_url, path)
        policy = retry_policy or self.retry_policy
        max_retries = policy.max_retries
        payload = serialize_body(body, method, url)
        start_time = time.time()

        attempt = 0
        while True:
            try:
                status_code, content = self._attempt(method, url, payload, attempt, max_retries, cancel)
            except RemoteCallError as exc:
                exc.attempts = attempt + 1
                if not exc.retryable or attempt >= max_retries:
                    logger.debug(
                        f"{method} request to {url} failed after {attempt + 1} attempt(s): {exc}"
                    )
                    self._callbacks.on_failure(url, method, attempt, max_retries, exc, start_time)
                    raise

                sleep_time = retry_delay(attempt, policy)
                self._callbacks.on_retry(url, method, attempt, max_retries, sleep_time, exc)
                logger.debug(f"{method} request to {url} will retry in {sleep_time:.3f}s ({exc})")
                if self._wait(sleep_time, cancel):
                    error = cancelled_error(cancel, method, url, cause=exc)
                    error.attempts = attempt + 1
                    self._callbacks.on_failure(url, method, attempt, max_retries, error, start_time)
                    raise error from exc
                attempt += 1
                continue

            self._callbacks.on_success(url, method, attempt, max_retries, status_code, start_time)
            return content

    def execute_json(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        cancel: CancelToken | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> Any:
        """Execute one logical call and decode its payload as JSON.

        An empty payload decodes to ``None``. See ``execute`` for the
        arguments.

        Raises:
            MalformedPayloadError: If the payload is not valid JSON.
        """
        url = build_url(self._config.base_url, path)
        content = self.execute(method, path, body, cancel=cancel, retry_policy=retry_policy)
        if not content.strip():
            return None
        return decode_json(content, method.upper(), url)

    def _attempt(
        self,
        method: str,
        url: str,
        payload: bytes | None,
        attempt: int,
        max_retries: int,
        cancel: CancelToken | None,
    ) -> tuple[int, bytes]:
        check_cancelled(cancel, method, url)
        self._callbacks.on_request(url, method, attempt, max_retries)
        trace_request(self._config, self._mask, method, url, attempt, max_retries, payload)
        request = self._client.build_request(
            method,
            url,
            content=payload,
            headers=build_headers(self._config.api_key),
            timeout=request_timeout(self._config.timeout, cancel),
        )
        try:
            status_code, content = self._send(request, method, url, cancel)
        except (httpx.HTTPError, OSError) as exc:
            raise transport_error(exc, method, url, cancel) from exc

        trace_response(self._config, self._mask, method, url, status_code, content)
        if status_code >= 400:
            raise build_status_error(status_code, content, method=method, url=url)
        return status_code, content

    def _send(
        self, request: httpx.Request, method: str, url: str, cancel: CancelToken | None
    ) -> tuple[int, bytes]:
        """Send a request and read its body, racing the exchange against
        ``cancel``.

        The exchange runs on a worker thread so that the calling thread
        can return as soon as the token fires. An abandoned worker stops
        at the next body chunk and closes its response.
        """
        if cancel is None:
            return self._exchange(request, method, url, None)

        outcome: list[tuple[int, bytes] | Exception] = []
        wake = threading.Event()

        def run() -> None:
            try:
                outcome.append(self._exchange(request, method, url, cancel))
            except Exception as exc:  # re-raised by the calling thread
                outcome.append(exc)
            finally:
                wake.set()

        cancel.add_callback(wake.set)
        try:
            threading.Thread(target=run, name=f"arescore-{method}", daemon=True).start()
            while not wake.wait(cancel.bound(None)):
                if cancel.cancelled:
                    break
        finally:
            cancel.remove_callback(wake.set)

        if not outcome:
            logger.debug(f"{method} request to {url} aborted by cancellation")
            raise cancelled_error(cancel, method, url)
        result = outcome[0]
        if isinstance(result, Exception):
            raise result
        return result

    def _exchange(
        self, request: httpx.Request, method: str, url: str, cancel: CancelToken | None
    ) -> tuple[int, bytes]:
        response = send_following_redirects(
            self._client,
            request,
            self._preserver,
            cancel=cancel,
            timeout=self._config.timeout,
            stream=True,
        )
        chunks = []
        try:
            for chunk in response.iter_bytes():
                check_cancelled(cancel, method, url)
                chunks.append(chunk)
        finally:
            response.close()
        return response.status_code, b"".join(chunks)

    @staticmethod
    def _wait(delay: float, cancel: CancelToken | None) -> bool:
        if cancel is None:
            time.sleep(delay)
            return False
        return cancel.wait(delay)
