from __future__ import annotations

import pytest

from arescore.utils.masking import mask_api_key, mask_sensitive

##################################
#     Tests for mask_api_key     #
##################################


def test_mask_api_key_keeps_first_and_last_four() -> None:
    """Test a long key keeps its first and last four characters."""
    assert mask_api_key("abcd1234efgh5678") == "abcd********5678"


@pytest.mark.parametrize("key", ["", "short", "12345678"])
def test_mask_api_key_short(key: str) -> None:
    """Test keys of 8 characters or less are fully masked."""
    assert mask_api_key(key) == "****"


####################################
#     Tests for mask_sensitive     #
####################################


def test_mask_sensitive_empty() -> None:
    """Test empty text is returned unchanged."""
    assert mask_sensitive("") == ""


def test_mask_sensitive_plain_text_unchanged() -> None:
    """Test text without secrets is returned unchanged."""
    assert mask_sensitive('{"name": "app", "mode": "HA"}') == '{"name": "app", "mode": "HA"}'


@pytest.mark.parametrize("field", ["password", "token", "apiKey", "access_token", "secret"])
def test_mask_sensitive_json_fields(field: str) -> None:
    """Test the values of sensitive JSON fields are masked."""
    assert mask_sensitive(f'{{"{field}": "hunter2", "name": "app"}}') == (
        f'{{"{field}": "****", "name": "app"}}'
    )


def test_mask_sensitive_json_field_case_insensitive() -> None:
    """Test sensitive field names match case-insensitively."""
    assert mask_sensitive('{"Password": "hunter2"}') == '{"Password": "****"}'


def test_mask_sensitive_query_string() -> None:
    """Test sensitive query parameters are masked."""
    assert mask_sensitive("/path?token=abc123&page=2") == "/path?token=****&page=2"


def test_mask_sensitive_bearer() -> None:
    """Test bearer credentials are masked."""
    assert mask_sensitive("Authorization: Bearer abc.def") == "Authorization: Bearer ****"


def test_mask_sensitive_jwt() -> None:
    """Test JWTs are masked."""
    assert mask_sensitive("jwt eyJhbGciOi.eyJzdWIi.c2ln") == "jwt eyJ****"


def test_mask_sensitive_long_token() -> None:
    """Test long alphanumeric tokens are partially masked."""
    assert mask_sensitive("key abcdefghijklmnopqrstuvwxyz end") == (
        "key abcd" + "*" * 18 + "wxyz end"
    )
