r"""Masking of credentials and secrets in diagnostic output.

These helpers are applied only to text emitted in logs, never to the
data actually sent or returned by the executor.
"""

from __future__ import annotations

__all__ = ["SENSITIVE_FIELDS", "mask_api_key", "mask_sensitive"]

import re

SENSITIVE_FIELDS = (
    "password",
    "secret",
    "token",
    "apiKey",
    "api_key",
    "private_key",
    "privateKey",
    "access_token",
    "accessToken",
    "refresh_token",
    "refreshToken",
    "auth",
    "authorization",
)

_LONG_TOKEN = re.compile(r"[a-zA-Z0-9]{20,}")
_JWT = re.compile(r"eyJ[a-zA-Z0-9._-]+")
_BEARER = re.compile(r"Bearer\s+[\w.*-]+")
_FIELD = re.compile(
    r'"(?P<qname>' + "|".join(SENSITIVE_FIELDS) + r')"\s*:\s*"[^"]*"'
    r"|(?<![\w\"])(?P<name>" + "|".join(SENSITIVE_FIELDS) + r")\s*[:=]\s*(?!Bearer\b)[^,}&\s]+",
    re.IGNORECASE,
)


def mask_api_key(key: str) -> str:
    """Mask an API key, keeping only its first and last four characters.

    Example:
        ```pycon
        >>> from arescore.utils.masking import mask_api_key
        >>> mask_api_key("abcd1234efgh5678")
        'abcd********5678'
        >>> mask_api_key("short")
        '****'

        ```
    """
    if len(key) <= 8:
        return "****"
    return key[:4] + "*" * (len(key) - 8) + key[-4:]


def mask_sensitive(text: str) -> str:
    """Mask credentials and secret-looking values in ``text``.

    Masks JWTs, bearer tokens, long alphanumeric tokens and the values of
    sensitive fields (``password``, ``token``, ``apiKey``, ...) in JSON
    documents and query strings.

    Args:
        text: The text to mask.

    Returns:
        The masked text.

    Example:
        ```pycon
        >>> from arescore.utils.masking import mask_sensitive
        >>> mask_sensitive('{"name": "app", "password": "hunter2"}')
        '{"name": "app", "password": "****"}'
        >>> mask_sensitive("Authorization: Bearer abc.def")
        'Authorization: Bearer ****'

        ```
    """
    if not text:
        return text
    masked = _JWT.sub("eyJ****", text)
    masked = _BEARER.sub("Bearer ****", masked)
    masked = _FIELD.sub(_mask_field, masked)
    return _LONG_TOKEN.sub(lambda match: mask_api_key(match.group(0)), masked)


def _mask_field(match: re.Match[str]) -> str:
    if match.group("qname") is not None:
        return f'"{match.group("qname")}": "****"'
    separator = "=" if "=" in match.group(0) else ": "
    return f"{match.group('name')}{separator}****"
