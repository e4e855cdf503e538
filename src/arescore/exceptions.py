r"""Exception hierarchy for remote calls and awaited operations.

Every failure of a remote call surfaces as a ``RemoteCallError`` subclass
carrying an ``ErrorKind`` so that callers (and the retry loop) can branch
on the category instead of on message text. Failures of an awaited
server-side job surface as ``OperationError`` subclasses.
"""

from __future__ import annotations

__all__ = [
    "ArescoreError",
    "ErrorKind",
    "HttpStatusError",
    "MalformedPayloadError",
    "NetworkError",
    "OperationError",
    "OperationFailedError",
    "OperationTimeoutError",
    "RemoteCallError",
    "RequestCancelledError",
    "TooManyRedirectsError",
]

import enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from arescore.operation import Operation


class ErrorKind(str, enum.Enum):
    r"""Category of a failed remote call."""

    NETWORK = "network"
    CLIENT_ERROR = "http_client_error"
    SERVER_ERROR = "http_server_error"
    CANCELLED = "cancelled"
    MALFORMED = "malformed"


class ArescoreError(Exception):
    r"""Base class of all errors raised by this package."""


class RemoteCallError(ArescoreError):
    """Classified failure of a single logical remote call.

    Args:
        method: The HTTP method of the call.
        url: The absolute URL of the call.
        message: Human-readable description of the failure.
        status_code: The HTTP status code, if a response was received.
        code: The error code from the ``{"error": {...}}`` envelope, if any.
        detail: The server's error message, or the raw response text when
            the body did not carry a structured envelope.
        meta: The ``meta`` entry of the error envelope, if any.
        cause: The underlying transport exception, if any.

    Attributes:
        attempts: Number of physical attempts made for the logical call.
            Set by the executor, ``None`` for errors raised outside of it.

    Example:
        ```pycon
        >>> from arescore.exceptions import HttpStatusError
        >>> error = HttpStatusError(
        ...     method="GET", url="https://api.example.com/x", message="404: not found", status_code=404
        ... )
        >>> error.kind
        <ErrorKind.CLIENT_ERROR: 'http_client_error'>
        >>> error.retryable
        False

        ```
    """

    kind: ErrorKind = ErrorKind.MALFORMED

    def __init__(
        self,
        method: str,
        url: str,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        detail: str | None = None,
        meta: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.message = message
        self.status_code = status_code
        self.code = code
        self.detail = detail
        self.meta = meta
        self.cause = cause
        self.attempts: int | None = None

    @property
    def retryable(self) -> bool:
        r"""Whether the retry loop may attempt the call again."""
        from arescore.classify import is_retryable  # noqa: PLC0415

        return is_retryable(self)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__qualname__}(kind={self.kind.value}, method={self.method}, "
            f"url={self.url}, status_code={self.status_code}, message={self.message!r})"
        )


class NetworkError(RemoteCallError):
    r"""Transport-level failure: refused, reset, timed out, DNS, unreachable."""

    kind = ErrorKind.NETWORK


class HttpStatusError(RemoteCallError):
    r"""The server answered with a status code >= 400."""

    def __init__(self, method: str, url: str, message: str, *, status_code: int, **kwargs: Any) -> None:
        super().__init__(method, url, message, status_code=status_code, **kwargs)

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        if self.status_code is not None and self.status_code >= 500:
            return ErrorKind.SERVER_ERROR
        return ErrorKind.CLIENT_ERROR


class RequestCancelledError(RemoteCallError):
    """The caller's cancellation token fired before the call completed.

    Attributes:
        deadline_exceeded: ``True`` when the token's deadline elapsed,
            ``False`` when it was cancelled explicitly.
    """

    kind = ErrorKind.CANCELLED

    def __init__(
        self, method: str, url: str, message: str, *, deadline_exceeded: bool = False, **kwargs: Any
    ) -> None:
        super().__init__(method, url, message, **kwargs)
        self.deadline_exceeded = deadline_exceeded


class MalformedPayloadError(RemoteCallError):
    r"""A request or response body could not be serialized, read or decoded."""

    kind = ErrorKind.MALFORMED


class TooManyRedirectsError(MalformedPayloadError):
    r"""The redirect chain exceeded the configured maximum."""

    def __init__(self, method: str, url: str, message: str, *, redirects: int, **kwargs: Any) -> None:
        super().__init__(method, url, message, **kwargs)
        self.redirects = redirects


class OperationError(ArescoreError):
    r"""Base class for outcomes of awaiting a server-side operation."""


class OperationFailedError(OperationError):
    """The awaited operation reached a failure terminal status.

    This is distinct from a failed status check: the job itself failed.

    Args:
        operation: The last observed snapshot of the operation.
        after_timeout: ``True`` if the failure was only observed by the
            final status check made after the deadline elapsed.
    """

    def __init__(self, operation: Operation, *, after_timeout: bool = False) -> None:
        message = f"operation {operation.id} failed with status: {operation.status}"
        if after_timeout:
            message += " (observed after timeout)"
        super().__init__(message)
        self.operation = operation
        self.after_timeout = after_timeout


class OperationTimeoutError(OperationError):
    """The deadline elapsed before the operation reached a terminal status.

    Args:
        operation_id: Identifier of the awaited operation.
        timeout: The deadline in seconds.
        last_operation: The last snapshot observed, if any status check
            succeeded.
    """

    def __init__(
        self, operation_id: str, timeout: float, last_operation: Operation | None = None
    ) -> None:
        if last_operation is not None:
            message = (
                f"timeout waiting for operation {operation_id} after {timeout:.2f}s "
                f"(last status: {last_operation.status})"
            )
        else:
            message = f"timeout waiting for operation {operation_id} after {timeout:.2f}s"
        super().__init__(message)
        self.operation_id = operation_id
        self.timeout = timeout
        self.last_operation = last_operation

    @property
    def last_status(self) -> str | None:
        r"""Status of the last observed snapshot, if any."""
        return None if self.last_operation is None else self.last_operation.status
