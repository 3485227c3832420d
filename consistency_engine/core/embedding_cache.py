"""
In-memory cache for extracted embeddings.

Avoids paying for the same content extraction twice within a short window.
Entries expire after a TTL; when full, the oldest entry is evicted.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached embedding with its insertion and expiry times."""

    data: np.ndarray
    timestamp: float
    expires_at: float


class EmbeddingCache:
    """TTL cache of embeddings keyed by string.

    Attributes:
        max_size: Maximum number of entries held.
        default_ttl: Seconds an entry stays valid unless overridden.
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            max_size: Maximum number of entries.
            default_ttl: Default time to live in seconds.
            clock: Time source (injectable for tests).
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_config(cls, config: Any) -> "EmbeddingCache":
        """Build a cache from a CacheConfig model."""
        return cls(max_size=config.max_size, default_ttl=config.ttl_seconds)

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> np.ndarray | None:
        """Return the cached embedding, or None if missing or expired."""
        entry = self._live_entry(key)
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry.data

    def set(self, key: str, embedding: np.ndarray, ttl: float | None = None) -> None:
        """Store an embedding, evicting the oldest entry when full."""
        if key not in self._entries and len(self._entries) >= self.max_size:
            self.cleanup()
            if len(self._entries) >= self.max_size:
                self._evict_oldest()

        now = self._clock()
        self._entries[key] = CacheEntry(
            data=embedding,
            timestamp=now,
            expires_at=now + (ttl if ttl is not None else self.default_ttl),
        )

    def has(self, key: str) -> bool:
        """Check if a key exists and has not expired."""
        return self._live_entry(key) is not None

    def delete(self, key: str) -> bool:
        """Delete a key, returning whether it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry and reset statistics."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def cleanup(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now > e.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Removed %d expired embeddings from cache", len(expired))
        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        """Return size and hit-rate statistics."""
        lookups = self._hits + self._misses
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }

    def _evict_oldest(self) -> None:
        oldest_key = min(self._entries, key=lambda k: self._entries[k].timestamp)
        del self._entries[oldest_key]
        logger.debug("Evicted oldest cache entry: %s", oldest_key)

    def __len__(self) -> int:
        return len(self._entries)
