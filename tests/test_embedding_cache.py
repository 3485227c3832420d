"""Tests for the in-memory embedding cache."""

import numpy as np
import pytest

from consistency_engine.core.config_loader import CacheConfig
from consistency_engine.core.embedding_cache import EmbeddingCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestEmbeddingCache:
    def test_get_and_set(self, clock):
        cache = EmbeddingCache(clock=clock)
        cache.set("a", np.array([1.0]))
        np.testing.assert_allclose(cache.get("a"), [1.0])
        assert cache.get("b") is None

    def test_expiry(self, clock):
        cache = EmbeddingCache(default_ttl=10, clock=clock)
        cache.set("a", np.array([1.0]))
        clock.now = 10.5
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_custom_ttl(self, clock):
        cache = EmbeddingCache(default_ttl=10, clock=clock)
        cache.set("a", np.array([1.0]), ttl=100)
        clock.now = 50
        assert cache.has("a")

    def test_evicts_oldest_when_full(self, clock):
        cache = EmbeddingCache(max_size=2, clock=clock)
        cache.set("a", np.array([1.0]))
        clock.now = 1
        cache.set("b", np.array([2.0]))
        clock.now = 2
        cache.set("c", np.array([3.0]))

        assert not cache.has("a")
        assert cache.has("b") and cache.has("c")

    def test_full_cache_drops_expired_before_evicting(self, clock):
        cache = EmbeddingCache(max_size=2, default_ttl=10, clock=clock)
        cache.set("old", np.array([1.0]), ttl=1)
        cache.set("keep", np.array([2.0]))
        clock.now = 5
        cache.set("new", np.array([3.0]))

        assert cache.has("keep") and cache.has("new")

    def test_cleanup(self, clock):
        cache = EmbeddingCache(default_ttl=1, clock=clock)
        cache.set("a", np.array([1.0]))
        cache.set("b", np.array([1.0]), ttl=100)
        clock.now = 2
        assert cache.cleanup() == 1
        assert len(cache) == 1

    def test_stats(self, clock):
        cache = EmbeddingCache(clock=clock)
        cache.set("a", np.array([1.0]))
        cache.get("a")
        cache.get("missing")
        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5

    def test_delete_and_clear(self, clock):
        cache = EmbeddingCache(clock=clock)
        cache.set("a", np.array([1.0]))
        assert cache.delete("a")
        assert not cache.delete("a")
        cache.set("b", np.array([1.0]))
        cache.clear()
        assert len(cache) == 0

    def test_from_config(self):
        cache = EmbeddingCache.from_config(CacheConfig(max_size=5, ttl_seconds=60))
        assert cache.max_size == 5
        assert cache.default_ttl == 60

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            EmbeddingCache(max_size=0)
