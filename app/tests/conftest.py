"""Shared fixtures for the escalation engine test suite."""

from datetime import datetime, timezone

import pytest

from infrastructure.idempotency import reset_cache


@pytest.fixture
def fixed_now():
    """A stable, timezone-aware 'now' for time-dependent tests."""
    return datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_idempotency_cache():
    reset_cache()
    yield
    reset_cache()
