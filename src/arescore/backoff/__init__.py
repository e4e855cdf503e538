r"""Backoff strategies and delay calculation for retries and polling."""

from __future__ import annotations

__all__ = [
    "BaseBackoffStrategy",
    "ExponentialBackoff",
    "calculate_delay",
    "poll_interval",
    "retry_delay",
]

from arescore.backoff.base import BaseBackoffStrategy
from arescore.backoff.delay import calculate_delay, poll_interval, retry_delay
from arescore.backoff.exponential import ExponentialBackoff
