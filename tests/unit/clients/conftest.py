"""Shared fixtures for client tests.

This module provides common fixtures used across client test modules,
including a mocked HTTP session and a gateway client wired to in-memory
collaborators.
"""

# pylint: disable=redefined-outer-name
# Pytest fixtures intentionally redefine fixture names - this is expected behavior

from unittest.mock import MagicMock

import pytest
import requests
from doubles import BASE_URL, FIXED_TIMESTAMP, InMemoryCallLogStore

from dict_gateway.clients.dict_gateway import DictGatewayClient
from dict_gateway.core.audit import CallAuditRecorder
from dict_gateway.foundation.rate_limiter import TokenBucketRateLimiter


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock requests.Session.

    Returns:
        MagicMock: A mock requests.Session with a get method.
    """
    session = MagicMock(spec=requests.Session)
    session.get = MagicMock()
    return session


@pytest.fixture
def mock_sleep() -> MagicMock:
    """Sleep replacement recording backoff delays."""
    return MagicMock()


@pytest.fixture
def rate_limiter() -> TokenBucketRateLimiter:
    """Bucket large enough that no test is rate limited by accident."""
    return TokenBucketRateLimiter(capacity=100_000, refill_tokens=0, refill_interval_ms=1000)


@pytest.fixture
def gateway_client(
    mock_session: MagicMock,
    mock_sleep: MagicMock,
    rate_limiter: TokenBucketRateLimiter,
    call_log_store: InMemoryCallLogStore,
) -> DictGatewayClient:
    """Create a DictGatewayClient with mocked transport and in-memory audit store.

    Returns:
        DictGatewayClient: Client using the default retry policy and a fixed
        signing timestamp.
    """
    return DictGatewayClient(
        base_url=BASE_URL,
        app_key="key",
        app_secret="secret",
        rate_limiter=rate_limiter,
        recorder=CallAuditRecorder(store=call_log_store),
        sleep=mock_sleep,
        timestamp_factory=lambda: FIXED_TIMESTAMP,
        session=mock_session,
    )
