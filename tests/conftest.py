from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import Mock, patch

import httpx
import pytest

from arescore import AsyncResilientExecutor, ExecutorConfig, ResilientExecutor

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

BASE_URL = "https://api.example.com"
API_KEY = "test-api-key-0123456789"


@pytest.fixture
def mock_sleep() -> Generator[Mock, None, None]:
    """Patch time.sleep to make tests run faster."""
    with patch("time.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def mock_asleep() -> Generator[Mock, None, None]:
    """Patch asyncio.sleep to make tests run faster."""
    with patch("asyncio.sleep", return_value=None) as mock:
        yield mock


@pytest.fixture
def mock_callback() -> Mock:
    """Create a mock callback function for testing callbacks."""
    return Mock()


@pytest.fixture
def config() -> ExecutorConfig:
    """Create an executor configuration pointing to a fake API."""
    return ExecutorConfig(base_url=BASE_URL, api_key=API_KEY)


@pytest.fixture
def make_executor(
    config: ExecutorConfig,
) -> Callable[..., ResilientExecutor]:
    """Create a factory of executors sending requests to a handler.

    The handler receives each ``httpx.Request`` and returns the
    ``httpx.Response`` to answer it, or raises a transport exception.
    """

    def factory(handler: Callable[[httpx.Request], httpx.Response], **overrides: Any) -> ResilientExecutor:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return ResilientExecutor(config.merge(**overrides), client=client)

    return factory


@pytest.fixture
def make_async_executor(
    config: ExecutorConfig,
) -> Callable[..., AsyncResilientExecutor]:
    """Create a factory of async executors sending requests to a
    handler."""

    def factory(handler: Callable[[httpx.Request], Any], **overrides: Any) -> AsyncResilientExecutor:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return AsyncResilientExecutor(config.merge(**overrides), client=client)

    return factory
