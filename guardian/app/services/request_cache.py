"""Prompt-keyed response cache."""

import hashlib
import logging
from typing import Optional

from guardian.app.core.cache import CacheBackend, get_cache
from guardian.app.core.config import settings

logger = logging.getLogger(__name__)


class RequestCache:
    """Maps a prompt fingerprint to the text the model produced for it.

    Design principles:
    - Keyed by prompt text only (shared across callers); provider can be
      mixed in via ``include_provider``
    - Only successful results are stored
    - A broken backing store degrades to "no cache", never to an error
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        ttl: Optional[int] = None,
        prefix: Optional[str] = None,
        include_provider: Optional[bool] = None,
    ):
        self._backend = backend
        self.ttl = ttl if ttl is not None else settings.cache_ttl
        self.prefix = prefix if prefix is not None else settings.cache_prefix
        self.include_provider = (
            include_provider
            if include_provider is not None
            else settings.cache_key_include_provider
        )

    @property
    def backend(self) -> CacheBackend:
        if self._backend is None:
            self._backend = get_cache()
        return self._backend

    @staticmethod
    def normalize(prompt: str) -> str:
        return prompt.strip()

    def fingerprint(self, prompt: str, provider: Optional[str] = None) -> str:
        """Derive the cache key for a prompt.

        The provider only affects the key when ``include_provider`` is on.
        """
        key_content = self.normalize(prompt)
        if self.include_provider and provider:
            key_content = f"{provider}:{key_content}"
        key_hash = hashlib.sha256(key_content.encode("utf-8")).hexdigest()
        return f"{self.prefix}{key_hash}"

    async def lookup(self, fingerprint: str) -> Optional[str]:
        """Return the cached text, or None on miss, expiry or store failure."""
        try:
            cached = await self.backend.get(fingerprint)
        except Exception as e:
            logger.warning(f"Cache get failed: {e}")
            return None
        if cached is None:
            return None
        logger.debug(f"Cache hit for key: {fingerprint[:24]}...")
        return cached.decode("utf-8") if isinstance(cached, bytes) else str(cached)

    async def store(self, fingerprint: str, value: str, ttl: Optional[int] = None) -> bool:
        """Cache ``value``; returns False instead of raising if the store is down."""
        ttl = ttl if ttl is not None else self.ttl
        try:
            await self.backend.set(fingerprint, value.encode("utf-8"), ttl)
        except Exception as e:
            logger.warning(f"Cache set failed: {e}")
            return False
        logger.debug(f"Cached response with TTL {ttl}s: {fingerprint[:24]}...")
        return True

    async def invalidate(self, fingerprint: str) -> None:
        """Drop a single entry (admin operation)."""
        try:
            await self.backend.delete(fingerprint)
        except Exception as e:
            logger.warning(f"Cache invalidation failed: {e}")
