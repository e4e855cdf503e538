r"""Resilient request executors and their retry lifecycle helpers."""

from __future__ import annotations

__all__ = ["AsyncResilientExecutor", "CallbackManager", "ResilientExecutor"]

from arescore.retry.executor import ResilientExecutor
from arescore.retry.executor_async import AsyncResilientExecutor
from arescore.retry.manager import CallbackManager
