"""Tests for the cache abstraction layer."""

from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeClock
from guardian.app.core.cache import (
    CacheBackend,
    InMemoryCache,
    RedisCache,
    _CacheEntry,
    get_cache,
    reset_cache,
)


class TestCacheEntry:
    """Tests for the internal _CacheEntry class."""

    def test_cache_entry_no_expiry(self):
        entry = _CacheEntry(value=b"test", expires_at=None)
        assert not entry.is_expired(now=10**12)

    def test_cache_entry_expired_at_boundary(self):
        entry = _CacheEntry(value=b"test", expires_at=100.0)
        assert not entry.is_expired(now=99.9)
        assert entry.is_expired(now=100.0)


class TestInMemoryCache:
    """Tests for the InMemoryCache implementation."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return InMemoryCache(clock=clock.now)

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache):
        await cache.set("key1", b"value1", ttl=60)
        assert await cache.get("key1") == b"value1"

    @pytest.mark.asyncio
    async def test_get_nonexistent_key(self, cache):
        assert await cache.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, cache, clock):
        await cache.set("key", b"value", ttl=3600)

        clock.advance(seconds=3599)
        assert await cache.get("key") == b"value"

        clock.advance(seconds=1)
        assert await cache.get("key") is None
        assert "key" not in cache._data

    @pytest.mark.asyncio
    async def test_zero_ttl_never_expires(self, cache, clock):
        await cache.set("key", b"value", ttl=0)
        clock.advance(days=30)
        assert await cache.get("key") == b"value"

    @pytest.mark.asyncio
    async def test_overwrite_resets_ttl(self, cache, clock):
        await cache.set("key", b"old", ttl=10)
        clock.advance(seconds=8)
        await cache.set("key", b"new", ttl=10)
        clock.advance(seconds=8)
        assert await cache.get("key") == b"new"

    @pytest.mark.asyncio
    async def test_delete_and_exists(self, cache, clock):
        await cache.set("key", b"value", ttl=5)
        assert await cache.exists("key") is True

        await cache.delete("key")
        assert await cache.exists("key") is False
        await cache.delete("key")

        await cache.set("short", b"value", ttl=5)
        clock.advance(seconds=6)
        assert await cache.exists("short") is False

    @pytest.mark.asyncio
    async def test_clear(self, cache):
        await cache.set("a", b"1", ttl=60)
        await cache.set("b", b"2", ttl=60)
        await cache.clear()
        assert await cache.get("a") is None
        assert await cache.get("b") is None


class TestRedisCache:
    """RedisCache against a mocked redis.asyncio client."""

    @pytest.fixture
    def client(self):
        return AsyncMock()

    @pytest.fixture
    def cache(self, client):
        return RedisCache("redis://localhost:6379/0", client=client)

    @pytest.mark.asyncio
    async def test_set_uses_setex(self, cache, client):
        await cache.set("wpaig_ai_abc", b"text", ttl=3600)
        client.setex.assert_awaited_once_with("wpaig_ai_abc", 3600, b"text")

    @pytest.mark.asyncio
    async def test_set_without_ttl(self, cache, client):
        await cache.set("k", b"v", ttl=0)
        client.set.assert_awaited_once_with("k", b"v")
        client.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_and_exists(self, cache, client):
        client.get.return_value = b"text"
        client.exists.return_value = 1

        assert await cache.get("k") == b"text"
        assert await cache.exists("k") is True

        client.exists.return_value = 0
        assert await cache.exists("k") is False

    @pytest.mark.asyncio
    async def test_close_releases_client(self, cache, client):
        await cache.close()
        client.aclose.assert_awaited_once()
        assert cache._redis is None

    def test_lazy_client_from_url(self):
        cache = RedisCache("redis://cache.internal:6379/1")
        with patch("guardian.app.core.cache.aioredis.from_url") as from_url:
            first = cache._get_client()
            second = cache._get_client()
        from_url.assert_called_once_with("redis://cache.internal:6379/1")
        assert first is second


class TestGetCache:
    """Tests for the global cache factory."""

    def setup_method(self):
        reset_cache()

    def teardown_method(self):
        reset_cache()

    def test_default_is_memory(self):
        with patch("guardian.app.core.config.settings.redis_enabled", False):
            cache = get_cache()
        assert isinstance(cache, InMemoryCache)
        assert isinstance(cache, CacheBackend)

    def test_singleton(self):
        assert get_cache(backend="memory") is get_cache(backend="memory")

    def test_force_new(self):
        first = get_cache(backend="memory")
        second = get_cache(backend="memory", force_new=True)
        assert first is not second

    def test_redis_backend(self):
        cache = get_cache(backend="redis", redis_url="redis://example:6379/0")
        assert isinstance(cache, RedisCache)
        assert cache._redis_url == "redis://example:6379/0"

    def test_redis_enabled_setting(self):
        with patch("guardian.app.core.config.settings.redis_enabled", True):
            cache = get_cache()
        assert isinstance(cache, RedisCache)
