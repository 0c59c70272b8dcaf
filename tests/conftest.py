"""Shared pytest configuration and fixtures.

This module provides global fixtures that are available to all tests in the
test suite. Reusable test doubles live in `doubles.py` (on the test path via
`pythonpath` in pyproject.toml).

Fixtures defined here are automatically available to all tests without explicit
import statements. Keep fixtures small, composable, and focused on setup/teardown.
Do NOT put business logic in fixtures.
"""

# pylint: disable=redefined-outer-name

import pytest
from doubles import FakeClock, InMemoryCallLogStore

from dict_gateway.config import get_settings


@pytest.fixture
def call_log_store() -> InMemoryCallLogStore:
    """Empty in-memory audit store."""
    return InMemoryCallLogStore()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Manually advanced clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Settings are cached per process; reset around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
