r"""arescore - Resilient remote calls and long-running operation waits.

This package turns unreliable remote operations into dependable,
synchronous-looking calls. Built on top of the httpx library, it provides
two tightly coupled pieces:

Key Features:
    - Resilient executor: one logical call with automatic retry of network
      failures and 429/502/503/504 responses, exponential backoff with
      symmetric jitter, and redirects that keep the caller's credential
    - Operation poller: waits for a server-side job with an immediate
      first check, a deterministic poll schedule and a final check when
      the deadline elapses
    - Cancellation tokens with deadlines, observed at every wait
    - Classified errors carrying status code, error code and message
    - Sync and async flavours with context manager support
    - Callbacks for observability and masked debug traces

Example:
    ```pycon
    >>> from arescore import ExecutorConfig, OperationPoller, ResilientExecutor
    >>> config = ExecutorConfig.from_env()
    >>> with ResilientExecutor(config) as executor:  # doctest: +SKIP
    ...     process = executor.execute_json("PUT", "/api/rest/public/service-stack/id/start")
    ...     result = OperationPoller(executor).wait_for_completion(process["id"], timeout=300)
    ...

    ```
"""

from __future__ import annotations

__all__ = [
    "AsyncOperationPoller",
    "AsyncResilientExecutor",
    "CancelToken",
    "ErrorKind",
    "ExecutorConfig",
    "HttpStatusError",
    "MalformedPayloadError",
    "NetworkError",
    "Operation",
    "OperationError",
    "OperationFailedError",
    "OperationPoller",
    "OperationTimeoutError",
    "PollPolicy",
    "PollResult",
    "PollState",
    "RemoteCallError",
    "RequestCancelledError",
    "ResilientExecutor",
    "RetryPolicy",
    "TooManyRedirectsError",
    "__version__",
]

from importlib.metadata import PackageNotFoundError, version

from arescore.cancel import CancelToken
from arescore.core.config import ExecutorConfig, PollPolicy, RetryPolicy
from arescore.exceptions import (
    ErrorKind,
    HttpStatusError,
    MalformedPayloadError,
    NetworkError,
    OperationError,
    OperationFailedError,
    OperationTimeoutError,
    RemoteCallError,
    RequestCancelledError,
    TooManyRedirectsError,
)
from arescore.operation import Operation
from arescore.polling import AsyncOperationPoller, OperationPoller, PollResult, PollState
from arescore.retry import AsyncResilientExecutor, ResilientExecutor

try:
    __version__ = version(__name__)
except PackageNotFoundError:  # pragma: no cover
    # Package is not installed, fallback if needed
    __version__ = "0.0.0"
