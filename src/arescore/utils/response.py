r"""Interpretation of HTTP error responses.

Response bodies are passed through opaquely except on failure, where
a structured ``{"error": {"code": ..., "message": ...}}`` envelope is
recognized when present.
"""

from __future__ import annotations

__all__ = ["build_status_error", "parse_error_envelope"]

import json
import logging
from typing import Any

from arescore.exceptions import HttpStatusError

logger: logging.Logger = logging.getLogger(__name__)


def parse_error_envelope(body: bytes) -> dict[str, Any] | None:
    """Extract the error envelope from a response body.

    Args:
        body: The raw response body.

    Returns:
        The ``error`` mapping if the body is a JSON object whose ``error``
        entry is an object with a non-empty ``code``, otherwise ``None``.

    Example:
        ```pycon
        >>> from arescore.utils.response import parse_error_envelope
        >>> parse_error_envelope(b'{"error": {"code": "NOT_FOUND", "message": "gone"}}')
        {'code': 'NOT_FOUND', 'message': 'gone'}
        >>> parse_error_envelope(b"<html>Bad Gateway</html>") is None
        True

        ```
    """
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    envelope = payload.get("error")
    if not isinstance(envelope, dict) or not envelope.get("code"):
        return None
    return envelope


def build_status_error(status_code: int, body: bytes, *, method: str, url: str) -> HttpStatusError:
    """Create the classified error for a response with status >= 400.

    The message reads ``"<status>: <code> - <message>"`` when the body
    carries an error envelope, and ``"<status>: <raw body>"`` otherwise.

    Args:
        status_code: The HTTP status code.
        body: The raw response body.
        method: The HTTP method of the request.
        url: The URL of the request.

    Returns:
        The error, ready to be raised.
    """
    envelope = parse_error_envelope(body)
    if envelope is not None:
        code = str(envelope["code"])
        detail = str(envelope.get("message") or "")
        logger.debug(f"{method} request to {url} failed with status {status_code} ({code})")
        return HttpStatusError(
            method,
            url,
            f"{status_code}: {code} - {detail}",
            status_code=status_code,
            code=code,
            detail=detail,
            meta=envelope.get("meta"),
        )
    text = body.decode("utf-8", errors="replace")
    logger.debug(f"{method} request to {url} failed with status {status_code}")
    return HttpStatusError(
        method,
        url,
        f"{status_code}: {text}",
        status_code=status_code,
        detail=text,
    )
