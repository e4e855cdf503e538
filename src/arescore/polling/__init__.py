r"""Waiting for long-running server-side operations."""

from __future__ import annotations

__all__ = [
    "DEFAULT_STATUS_PATH",
    "AsyncOperationPoller",
    "OperationPoller",
    "PollResult",
    "PollState",
]

from arescore.polling.base import DEFAULT_STATUS_PATH
from arescore.polling.poller import OperationPoller
from arescore.polling.poller_async import AsyncOperationPoller
from arescore.polling.state import PollResult, PollState
