"""Cache abstraction layer for the gateway.

Provides a pluggable transient store with in-memory and Redis
implementations. Entries expire lazily: an expired entry is treated as
absent the next time it is read.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable
import asyncio
import time

import redis.asyncio as aioredis


@dataclass
class _CacheEntry:
    """Internal cache entry with TTL tracking."""

    value: bytes
    expires_at: float | None = None

    def is_expired(self, now: float | None = None) -> bool:
        """Check if the entry has expired."""
        if self.expires_at is None:
            return False
        if now is None:
            now = time.time()
        return now >= self.expires_at


class CacheBackend(ABC):
    """Abstract base class for cache backends.

    All cache implementations must inherit from this class and implement
    the abstract methods.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Retrieve a value from the cache.

        Args:
            key: The cache key to look up.

        Returns:
            The cached value as bytes, or None if not found or expired.
        """

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl: int) -> None:
        """Store a value in the cache.

        Args:
            key: The cache key.
            value: The value to store (as bytes).
            ttl: Time-to-live in seconds.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value from the cache."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a key exists in the cache and is not expired."""

    @abstractmethod
    async def clear(self) -> None:
        """Clear all entries from the cache."""


class InMemoryCache(CacheBackend):
    """In-memory cache implementation with TTL support.

    This is the default cache backend. Data is lost when the process
    restarts and is not shared between workers.

    Args:
        clock: Callable returning the current epoch time. Tests pass a
            controllable clock to step over the TTL window.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._data: dict[str, _CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._data[key]
                return None
            return entry.value

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        async with self._lock:
            expires_at = self._clock() + ttl if ttl > 0 else None
            self._data[key] = _CacheEntry(value=value, expires_at=expires_at)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def exists(self, key: str) -> bool:
        async with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._data[key]
                return False
            return True

    async def clear(self) -> None:
        async with self._lock:
            self._data.clear()


class RedisCache(CacheBackend):
    """Redis-based cache implementation.

    Expiry is delegated to Redis via SETEX.

    Example:
        >>> cache = RedisCache("redis://localhost:6379/0")
        >>> await cache.set("key", b"value", ttl=3600)
    """

    def __init__(self, redis_url: str, client: aioredis.Redis | None = None) -> None:
        self._redis_url = redis_url
        self._redis = client

    def _get_client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    async def get(self, key: str) -> bytes | None:
        return await self._get_client().get(key)

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        client = self._get_client()
        if ttl > 0:
            await client.setex(key, ttl, value)
        else:
            await client.set(key, value)

    async def delete(self, key: str) -> None:
        await self._get_client().delete(key)

    async def exists(self, key: str) -> bool:
        return await self._get_client().exists(key) > 0

    async def clear(self) -> None:
        """Clear all entries from the cache.

        WARNING: This uses FLUSHDB which clears the entire Redis database.
        """
        await self._get_client().flushdb()

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


# Global cache instance (singleton pattern)
_cache_instance: CacheBackend | None = None


def get_cache(
    backend: str | None = None,
    redis_url: str | None = None,
    force_new: bool = False,
) -> CacheBackend:
    """Get or create the global cache instance.

    Args:
        backend: Cache backend to use ('memory', 'redis', or None for auto).
            When None, checks settings.redis_enabled.
        redis_url: Redis connection URL. If not provided, uses settings.redis_url.
        force_new: If True, create a new instance even if one exists.

    Returns:
        A CacheBackend instance (InMemoryCache or RedisCache).
    """
    global _cache_instance

    if _cache_instance is not None and not force_new:
        return _cache_instance

    from guardian.app.core.config import settings

    if backend == "redis":
        use_redis = True
    elif backend == "memory":
        use_redis = False
    else:
        use_redis = settings.redis_enabled

    if use_redis:
        _cache_instance = RedisCache(redis_url or settings.redis_url)
    else:
        _cache_instance = InMemoryCache()
    return _cache_instance


def reset_cache() -> None:
    """Reset the global cache instance.

    This is primarily useful for testing.
    """
    global _cache_instance
    _cache_instance = None
