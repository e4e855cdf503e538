r"""Redirect following that keeps requests authenticated.

httpx, like most clients, drops the ``Authorization`` header when a
redirect crosses origins, which would silently turn an authenticated
call into an anonymous one. The executors therefore send with
``follow_redirects=False`` and walk the chain themselves through
``send_following_redirects``, letting ``RedirectAuthorityPreserver``
re-attach the credential of the first request of the chain to every hop
and enforce a cap on the chain length.
"""

from __future__ import annotations

__all__ = [
    "RedirectAuthorityPreserver",
    "send_following_redirects",
    "send_following_redirects_async",
]

import logging
from typing import TYPE_CHECKING

from arescore.core.config import DEFAULT_MAX_REDIRECTS
from arescore.exceptions import TooManyRedirectsError
from arescore.retry.executor_core import check_cancelled, request_timeout

if TYPE_CHECKING:
    from collections.abc import Sequence

    import httpx

    from arescore.cancel import CancelToken

logger: logging.Logger = logging.getLogger(__name__)


class RedirectAuthorityPreserver:
    """Redirect policy preserving the caller's credential header.

    Args:
        max_redirects: Maximum number of redirects to follow. Following
            one more fails the call with ``TooManyRedirectsError``.
        header: Name of the credential header to carry along.

    Example:
        ```pycon
        >>> import httpx
        >>> from arescore.redirects import RedirectAuthorityPreserver
        >>> preserver = RedirectAuthorityPreserver()
        >>> first = httpx.Request(
        ...     "GET", "https://api.example.com/a", headers={"Authorization": "Bearer t"}
        ... )
        >>> hop = preserver.prepare([first], httpx.Request("GET", "https://cdn.example.com/a"))
        >>> hop.headers["Authorization"]
        'Bearer t'

        ```
    """

    def __init__(self, max_redirects: int = DEFAULT_MAX_REDIRECTS, header: str = "Authorization") -> None:
        if max_redirects < 0:
            msg = f"max_redirects must be >= 0, got {max_redirects}"
            raise ValueError(msg)
        self.max_redirects = max_redirects
        self.header = header

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(max_redirects={self.max_redirects}, header={self.header!r})"

    def prepare(self, chain: Sequence[httpx.Request], next_request: httpx.Request) -> httpx.Request:
        """Prepare the next hop of a redirect chain.

        The credential header is copied from the first request of the
        chain, not from the previous hop, so that a header altered or
        stripped along the way is restored to the caller's value.

        Args:
            chain: The requests already sent, the original one first.
            next_request: The request the last redirect response points to.

        Returns:
            ``next_request``, with the credential header set.

        Raises:
            TooManyRedirectsError: If following ``next_request`` would
                exceed ``max_redirects``.
        """
        redirects = len(chain)
        origin = chain[0]
        if redirects > self.max_redirects:
            msg = f"{origin.method} request to {origin.url} stopped after {self.max_redirects} redirects"
            logger.debug(msg)
            raise TooManyRedirectsError(
                origin.method, str(origin.url), msg, redirects=redirects
            )
        logger.debug(f"HTTP redirect {redirects}: {chain[-1].url} -> {next_request.url}")
        credential = origin.headers.get(self.header)
        if credential is not None:
            next_request.headers[self.header] = credential
        return next_request


def send_following_redirects(
    client: httpx.Client,
    request: httpx.Request,
    preserver: RedirectAuthorityPreserver,
    *,
    cancel: CancelToken | None = None,
    timeout: float | None = None,
    stream: bool = False,
) -> httpx.Response:
    """Send ``request`` and follow its redirect chain.

    Every redirect response is closed before the next hop is prepared,
    including when the chain is cut short.

    Args:
        client: The client used to send every hop.
        request: The original request.
        preserver: The redirect policy.
        cancel: Optional token checked before each hop.
        timeout: Network timeout of each hop in seconds, bounded by the
            time left on ``cancel``. If ``None``, every hop keeps the
            timeout of ``request``.
        stream: If ``True``, the body of the final response is not read.

    Returns:
        The first response that is not a redirect.

    Raises:
        TooManyRedirectsError: If the chain is longer than allowed.
        RequestCancelledError: If ``cancel`` fired between two hops.
        httpx.HTTPError: If sending any hop fails.
    """
    chain = [request]
    response = client.send(request, follow_redirects=False, stream=stream)
    while response.next_request is not None:
        response.close()
        next_request = _next_hop(preserver, chain, response.next_request, cancel, timeout)
        chain.append(next_request)
        response = client.send(next_request, follow_redirects=False, stream=stream)
    return response


async def send_following_redirects_async(
    client: httpx.AsyncClient,
    request: httpx.Request,
    preserver: RedirectAuthorityPreserver,
    *,
    cancel: CancelToken | None = None,
    timeout: float | None = None,
) -> httpx.Response:
    """Send ``request`` and follow its redirect chain (asynchronous).

    See ``send_following_redirects``.
    """
    chain = [request]
    response = await client.send(request, follow_redirects=False)
    while response.next_request is not None:
        await response.aclose()
        next_request = _next_hop(preserver, chain, response.next_request, cancel, timeout)
        chain.append(next_request)
        response = await client.send(next_request, follow_redirects=False)
    return response


def _next_hop(
    preserver: RedirectAuthorityPreserver,
    chain: Sequence[httpx.Request],
    next_request: httpx.Request,
    cancel: CancelToken | None,
    timeout: float | None,
) -> httpx.Request:
    origin = chain[0]
    check_cancelled(cancel, origin.method, str(origin.url))
    next_request = preserver.prepare(chain, next_request)
    if timeout is not None:
        # the extensions dict is shared with the previous hop
        next_request.extensions = {
            **next_request.extensions,
            "timeout": request_timeout(timeout, cancel).as_dict(),
        }
    return next_request
