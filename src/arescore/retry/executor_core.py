r"""Shared core logic for the sync and async executors.

This module provides the helpers used by both ``ResilientExecutor`` and
``AsyncResilientExecutor``: request construction, body serialization,
mapping of transport exceptions to classified errors, cancellation
checks and the masked diagnostic trace.
"""

from __future__ import annotations

__all__ = [
    "build_headers",
    "build_url",
    "cancelled_error",
    "check_cancelled",
    "decode_json",
    "request_timeout",
    "serialize_body",
    "trace_request",
    "trace_response",
    "transport_error",
]

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from arescore.classify import classify_transport_error
from arescore.exceptions import (
    ErrorKind,
    MalformedPayloadError,
    NetworkError,
    RemoteCallError,
    RequestCancelledError,
)
from arescore.utils.masking import mask_api_key
from arescore.utils.structured_logging import log_structured

if TYPE_CHECKING:
    from collections.abc import Callable

    from arescore.cancel import CancelToken
    from arescore.core.config import ExecutorConfig

logger: logging.Logger = logging.getLogger("arescore.retry.executor")


def build_url(base_url: str, path: str) -> str:
    """Join the base URL and a request path.

    Absolute URLs are returned unchanged.

    Example:
        ```pycon
        >>> from arescore.retry.executor_core import build_url
        >>> build_url("https://api.example.com", "/api/rest/public/region")
        'https://api.example.com/api/rest/public/region'

        ```
    """
    if path.startswith(("http://", "https://")):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def build_headers(api_key: str) -> dict[str, str]:
    r"""Return the credential and content headers of every request."""
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def serialize_body(body: Any, method: str, url: str) -> bytes | None:
    """Serialize a request body to JSON.

    Args:
        body: A JSON-serializable value, or ``None`` for no body.
        method: The HTTP method, used in error messages.
        url: The URL, used in error messages.

    Returns:
        The UTF-8 encoded JSON document, or ``None``.

    Raises:
        MalformedPayloadError: If the body is not JSON-serializable.
    """
    if body is None:
        return None
    try:
        return json.dumps(body).encode("utf-8")
    except (TypeError, ValueError) as exc:
        msg = f"failed to serialize {method} request body for {url}: {exc}"
        raise MalformedPayloadError(method, url, msg, cause=exc) from exc


def decode_json(content: bytes, method: str, url: str) -> Any:
    """Decode a success payload as JSON.

    Raises:
        MalformedPayloadError: If the payload is not valid JSON.
    """
    try:
        return json.loads(content)
    except ValueError as exc:
        msg = f"failed to decode {method} response from {url} as JSON: {exc}"
        raise MalformedPayloadError(method, url, msg, cause=exc) from exc


def request_timeout(timeout: float, cancel: CancelToken | None) -> httpx.Timeout:
    r"""Bound the network timeout of one request by the time left on
    ``cancel``."""
    if cancel is not None:
        timeout = cancel.bound(timeout) or 0.0
    return httpx.Timeout(max(timeout, 0.001))


def cancelled_error(
    cancel: CancelToken, method: str, url: str, cause: BaseException | None = None
) -> RequestCancelledError:
    r"""Create the error reported when ``cancel`` fired during a call."""
    reason = cancel.reason or "cancelled"
    return RequestCancelledError(
        method,
        url,
        f"{method} request to {url} cancelled: {reason}",
        deadline_exceeded=cancel.deadline_exceeded and not cancel.cancel_requested,
        cause=cause,
    )


def check_cancelled(cancel: CancelToken | None, method: str, url: str) -> None:
    """Raise if ``cancel`` already fired.

    Raises:
        RequestCancelledError: If the token fired.
    """
    if cancel is not None and cancel.cancelled:
        raise cancelled_error(cancel, method, url)


def transport_error(
    exc: BaseException, method: str, url: str, cancel: CancelToken | None
) -> RemoteCallError:
    """Classify an exception raised while sending a request.

    A timeout caused by the caller's deadline is reported as a
    cancellation, not as a retryable network error.

    Args:
        exc: The exception raised by the transport.
        method: The HTTP method.
        url: The URL.
        cancel: The caller's cancellation token, if any.

    Returns:
        The classified error, with ``exc`` as its cause.
    """
    if cancel is not None and cancel.cancelled:
        return cancelled_error(cancel, method, url, cause=exc)
    kind = classify_transport_error(exc)
    if kind is ErrorKind.NETWORK:
        return NetworkError(
            method, url, f"{method} request to {url} failed: {type(exc).__name__}: {exc}", cause=exc
        )
    if kind is ErrorKind.CANCELLED:
        return RequestCancelledError(method, url, f"{method} request to {url} cancelled", cause=exc)
    return MalformedPayloadError(
        method, url, f"{method} request to {url} failed: {type(exc).__name__}: {exc}", cause=exc
    )


def trace_request(
    config: ExecutorConfig,
    mask: Callable[[str], str],
    method: str,
    url: str,
    attempt: int,
    max_retries: int,
    payload: bytes | None,
) -> None:
    r"""Emit the diagnostic trace of an outgoing request."""
    log_structured(
        logger,
        logging.DEBUG,
        f"{method} {url} (attempt {attempt + 1}/{max_retries + 1})",
        method=method,
        url=url,
        attempt=attempt + 1,
    )
    if config.debug:
        logger.debug(f"{method} {url} (API key: {mask_api_key(config.api_key)})")
        if payload is not None:
            logger.debug(f"Request body: {mask(payload.decode('utf-8', errors='replace'))}")


def trace_response(
    config: ExecutorConfig,
    mask: Callable[[str], str],
    method: str,
    url: str,
    status_code: int,
    content: bytes,
) -> None:
    r"""Emit the diagnostic trace of a received response."""
    log_structured(
        logger,
        logging.DEBUG,
        f"{method} {url} responded with status {status_code}",
        method=method,
        url=url,
        status_code=status_code,
    )
    if config.debug:
        logger.debug(f"Response body: {mask(content.decode('utf-8', errors='replace'))}")
