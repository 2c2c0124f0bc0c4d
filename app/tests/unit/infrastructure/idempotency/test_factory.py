"""Unit tests for the idempotency cache factory."""

import pytest

from infrastructure.idempotency import InMemoryCache, get_cache, reset_cache

pytestmark = pytest.mark.unit


class TestGetCache:
    def test_returns_in_memory_cache(self):
        assert isinstance(get_cache(), InMemoryCache)

    def test_returns_singleton(self):
        assert get_cache() is get_cache()

    def test_reset_creates_new_instance(self):
        first = get_cache()

        reset_cache()

        assert get_cache() is not first
