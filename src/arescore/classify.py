r"""Retryability classification of remote call failures.

This module maps transport exceptions and HTTP status codes to an
``ErrorKind``, and decides whether a classified error may be retried:

1. Network failures (refused, reset, timeout, DNS, unreachable) are retryable.
2. HTTP 429, 502, 503 and 504 are retryable.
3. Any other HTTP 4xx/5xx is not retryable.
4. Cancellation is never retryable.

Malformed payloads and redirect overflows are not retryable either.
"""

from __future__ import annotations

__all__ = [
    "NETWORK_ERROR_MARKERS",
    "RETRYABLE_STATUS_CODES",
    "classify_status_code",
    "classify_transport_error",
    "is_retryable",
]

import asyncio
import logging

import httpx

from arescore.exceptions import ErrorKind, RemoteCallError

logger: logging.Logger = logging.getLogger(__name__)

# 429: Too Many Requests - Rate limiting
# 502: Bad Gateway - Upstream server error
# 503: Service Unavailable - Server overloaded or down
# 504: Gateway Timeout - Upstream server timeout
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})

# Text of low-level errors that escape httpx's exception hierarchy
NETWORK_ERROR_MARKERS = (
    "connection refused",
    "connection reset",
    "i/o timeout",
    "timed out",
    "temporary failure",
    "no such host",
    "name or service not known",
    "network is unreachable",
)


def classify_status_code(status_code: int) -> ErrorKind:
    """Return the error kind of an HTTP status code >= 400.

    Example:
        ```pycon
        >>> from arescore.classify import classify_status_code
        >>> classify_status_code(404)
        <ErrorKind.CLIENT_ERROR: 'http_client_error'>
        >>> classify_status_code(503)
        <ErrorKind.SERVER_ERROR: 'http_server_error'>

        ```
    """
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.CLIENT_ERROR


def classify_transport_error(exc: BaseException) -> ErrorKind:
    """Return the error kind of an exception raised while sending a
    request.

    Args:
        exc: The exception raised by the transport.

    Returns:
        ``NETWORK`` for connection, timeout and proxy failures,
        ``CANCELLED`` for asyncio cancellation, ``MALFORMED`` for
        undecodable bodies, redirect loops, invalid URLs and anything
        else.

    Example:
        ```pycon
        >>> import httpx
        >>> from arescore.classify import classify_transport_error
        >>> classify_transport_error(httpx.ConnectError("connection refused"))
        <ErrorKind.NETWORK: 'network'>
        >>> classify_transport_error(httpx.DecodingError("bad gzip"))
        <ErrorKind.MALFORMED: 'malformed'>

        ```
    """
    if isinstance(exc, asyncio.CancelledError):
        return ErrorKind.CANCELLED
    if isinstance(exc, (httpx.TooManyRedirects, httpx.DecodingError, httpx.UnsupportedProtocol)):
        return ErrorKind.MALFORMED
    if isinstance(
        exc,
        (httpx.TimeoutException, httpx.NetworkError, httpx.ProxyError, httpx.RemoteProtocolError),
    ):
        return ErrorKind.NETWORK
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return ErrorKind.NETWORK
    text = str(exc).lower()
    if any(marker in text for marker in NETWORK_ERROR_MARKERS):
        logger.debug(f"Classified {type(exc).__name__} as network error from its message")
        return ErrorKind.NETWORK
    return ErrorKind.MALFORMED


def is_retryable(error: BaseException) -> bool:
    """Decide whether a failed call may be attempted again.

    This is a total function: any exception classifies to exactly one
    of retryable or not.

    Args:
        error: A ``RemoteCallError`` or a raw transport exception.

    Returns:
        ``True`` if another attempt may succeed.

    Example:
        ```pycon
        >>> from arescore.classify import is_retryable
        >>> from arescore.exceptions import HttpStatusError, RequestCancelledError
        >>> is_retryable(HttpStatusError("GET", "/x", "503: down", status_code=503))
        True
        >>> is_retryable(HttpStatusError("GET", "/x", "404: missing", status_code=404))
        False
        >>> is_retryable(RequestCancelledError("GET", "/x", "cancelled"))
        False

        ```
    """
    kind = error.kind if isinstance(error, RemoteCallError) else classify_transport_error(error)
    if kind is ErrorKind.NETWORK:
        return True
    if kind in (ErrorKind.CLIENT_ERROR, ErrorKind.SERVER_ERROR):
        return getattr(error, "status_code", None) in RETRYABLE_STATUS_CODES
    return False
