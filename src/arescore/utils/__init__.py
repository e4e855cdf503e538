r"""Helpers for masking diagnostic output, structured logging and error
response interpretation."""

from __future__ import annotations

__all__ = [
    "StructuredFormatter",
    "build_status_error",
    "clear_correlation_id",
    "get_correlation_id",
    "log_structured",
    "mask_api_key",
    "mask_sensitive",
    "parse_error_envelope",
    "set_correlation_id",
]

from arescore.utils.masking import mask_api_key, mask_sensitive
from arescore.utils.response import build_status_error, parse_error_envelope
from arescore.utils.structured_logging import (
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    log_structured,
    set_correlation_id,
)
