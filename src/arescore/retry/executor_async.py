r"""Asynchronous resilient request executor.

This module provides the AsyncResilientExecutor class, the asyncio
counterpart of ``ResilientExecutor``. Backoff waits use
``asyncio.sleep()`` or the cancellation token, allowing other tasks to
run while a call is waiting.
"""

from __future__ import annotations

__all__ = ["AsyncResilientExecutor"]

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING, Any

import httpx

from arescore.backoff.delay import retry_delay
from arescore.core.config import ExecutorConfig
from arescore.exceptions import RemoteCallError
from arescore.redirects import RedirectAuthorityPreserver, send_following_redirects_async
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


class AsyncResilientExecutor:
    r"""Executes remote calls with automatic retry logic (asynchronous).

    Behaves like ``ResilientExecutor``. In addition, the network wait is
    raced against the cancellation token, so an explicit ``cancel()``
    aborts an in-flight request instead of waiting for its timeout.

    Args:
        config: The executor configuration. If ``None``, a default
            ``ExecutorConfig`` is used.
        client: Optional ``httpx.AsyncClient`` used to send the requests.
            If ``None``, a client is created and closed with the executor.
        mask: Function applied to bodies before they appear in debug logs.

    Example:
        ```pycon
        >>> import asyncio
        >>> from arescore import AsyncResilientExecutor, ExecutorConfig
        >>> async def main():
        ...     async with AsyncResilientExecutor(ExecutorConfig(api_key="secret")) as executor:
        ...         return await executor.execute("GET", "/api/rest/public/region")
        ...
        >>> asyncio.run(main())  # doctest: +SKIP

        ```
    """

    def __init__(
        self,
        config: ExecutorConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        mask: Callable[[str], str] = mask_sensitive,
    ) -> None:
        self._config: ExecutorConfig = config or ExecutorConfig()
        self._client: httpx.AsyncClient = client or httpx.AsyncClient(timeout=self._config.timeout)
        self._close_client = client is None
        self._mask = mask
        self._retry_policy: RetryPolicy = self._config.retry_policy
        self._preserver = RedirectAuthorityPreserver(max_redirects=self._config.max_redirects)
        self._callbacks = CallbackManager(self._config)

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(base_url={self._config.base_url!r}, retry_policy={self.retry_policy})"

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    @property
    def retry_policy(self) -> RetryPolicy:
        r"""The policy snapshotted by the calls started from now on."""
        return self._retry_policy

    def with_retry(self, policy: RetryPolicy) -> Self:
        r"""Install a new default retry policy and return the executor.

        Calls already in flight keep the policy they started with.
        """
        self._retry_policy = policy
        logger.debug(f"Installed retry policy {policy}")
        return self

    async def aclose(self) -> None:
        r"""Close the underlying client if the executor created it."""
        if self._close_client:
            await self._client.aclose()
            self._close_client = False

    async def execute(
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
                retryable or when all attempts are exhausted.
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
                status_code, content = await self._attempt(
                    method, url, payload, attempt, max_retries, cancel
                )
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
                if await self._wait(sleep_time, cancel):
                    error = cancelled_error(cancel, method, url, cause=exc)
                    error.attempts = attempt + 1
                    self._callbacks.on_failure(url, method, attempt, max_retries, error, start_time)
                    raise error from exc
                attempt += 1
                continue

            self._callbacks.on_success(url, method, attempt, max_retries, status_code, start_time)
            return content

    async def execute_json(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        cancel: CancelToken | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> Any:
        r"""Execute one logical call and decode its payload as JSON.

        An empty payload decodes to ``None``.
        """
        url = build_url(self._config.base_url, path)
        content = await self.execute(method, path, body, cancel=cancel, retry_policy=retry_policy)
        if not content.strip():
            return None
        return decode_json(content, method.upper(), url)

    async def _attempt(
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
            response = await self._send(request, method, url, cancel)
            try:
                content = await response.aread()
            finally:
                await response.aclose()
        except (httpx.HTTPError, OSError) as exc:
            raise transport_error(exc, method, url, cancel) from exc

        trace_response(self._config, self._mask, method, url, response.status_code, content)
        if response.status_code >= 400:
            raise build_status_error(response.status_code, content, method=method, url=url)
        return response.status_code, content

    async def _send(
        self, request: httpx.Request, method: str, url: str, cancel: CancelToken | None
    ) -> httpx.Response:
        if cancel is None:
            return await send_following_redirects_async(self._client, request, self._preserver)

        send_task = asyncio.ensure_future(
            send_following_redirects_async(
                self._client,
                request,
                self._preserver,
                cancel=cancel,
                timeout=self._config.timeout,
            )
        )
        cancel_task = asyncio.ensure_future(cancel.wait_async())
        try:
            done, _ = await asyncio.wait(
                {send_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_task.cancel()
            if not send_task.done():
                send_task.cancel()
        if send_task in done:
            return send_task.result()

        with contextlib.suppress(asyncio.CancelledError, httpx.HTTPError):
            await send_task
        logger.debug(f"{method} request to {url} aborted by cancellation")
        raise cancelled_error(cancel, method, url)

    @staticmethod
    async def _wait(delay: float, cancel: CancelToken | None) -> bool:
        if cancel is None:
            await asyncio.sleep(delay)
            return False
        return await cancel.wait_async(delay)
