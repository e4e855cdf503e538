from __future__ import annotations

import pytest

from arescore.exceptions import ErrorKind, HttpStatusError
from arescore.utils.response import build_status_error, parse_error_envelope

URL = "https://api.example.com/x"

##########################################
#     Tests for parse_error_envelope     #
##########################################


def test_parse_error_envelope() -> None:
    """Test a structured error envelope is extracted."""
    body = b'{"error": {"code": "SERVICE_NOT_FOUND", "message": "no such service", "meta": [1]}}'
    assert parse_error_envelope(body) == {
        "code": "SERVICE_NOT_FOUND",
        "message": "no such service",
        "meta": [1],
    }


@pytest.mark.parametrize(
    "body",
    [
        b"",
        b"<html>Bad Gateway</html>",
        b"[1, 2]",
        b'{"message": "no envelope"}',
        b'{"error": "flat string"}',
        b'{"error": {"message": "no code"}}',
        b'{"error": {"code": ""}}',
    ],
)
def test_parse_error_envelope_none(body: bytes) -> None:
    """Test bodies without an envelope with a code yield None."""
    assert parse_error_envelope(body) is None


########################################
#     Tests for build_status_error     #
########################################


def test_build_status_error_with_envelope() -> None:
    """Test the error carries status, code and message."""
    error = build_status_error(
        404,
        b'{"error": {"code": "NOT_FOUND", "message": "gone", "meta": {"id": "x"}}}',
        method="GET",
        url=URL,
    )
    assert isinstance(error, HttpStatusError)
    assert str(error) == "404: NOT_FOUND - gone"
    assert error.status_code == 404
    assert error.code == "NOT_FOUND"
    assert error.detail == "gone"
    assert error.meta == {"id": "x"}
    assert error.kind is ErrorKind.CLIENT_ERROR
    assert not error.retryable


def test_build_status_error_raw_body() -> None:
    """Test an unparseable body is carried as raw text."""
    error = build_status_error(502, b"<html>Bad Gateway</html>", method="POST", url=URL)
    assert str(error) == "502: <html>Bad Gateway</html>"
    assert error.code is None
    assert error.detail == "<html>Bad Gateway</html>"
    assert error.kind is ErrorKind.SERVER_ERROR
    assert error.retryable
    assert error.method == "POST"
    assert error.url == URL
