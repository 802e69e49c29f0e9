"""Persistent named-option storage.

Options are small named values (credential, premium flag, quota counter,
last reset date) read with default-value semantics. The store is shared by
every request, so counters go through ``increment`` rather than a
get-then-set from the caller.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any

import redis.asyncio as aioredis

from guardian.app.core.config import settings

# Compare-and-reset in one step so a late reset from another worker cannot
# wipe calls already counted for today. Values are JSON-encoded, as in set().
RESET_IF_STALE_SCRIPT = """
    local options_key = KEYS[1]
    local counter_field = ARGV[1]
    local date_field = ARGV[2]
    local today = ARGV[3]

    if redis.call('HGET', options_key, date_field) == today then
        return 0
    end
    redis.call('HSET', options_key, counter_field, '0', date_field, today)
    return 1
"""


class OptionsStore(ABC):
    """Abstract named-value store."""

    @abstractmethod
    async def get(self, name: str, default: Any = None) -> Any:
        """Return the stored value, or ``default`` when the option is unset."""

    @abstractmethod
    async def set(self, name: str, value: Any) -> None:
        """Create or overwrite an option. Values must be JSON-serializable."""

    @abstractmethod
    async def delete(self, name: str) -> None:
        """Remove an option. Missing options are ignored."""

    @abstractmethod
    async def increment(self, name: str, amount: int = 1) -> int:
        """Atomically add ``amount`` to an integer option and return the new value.

        An unset option counts as 0.
        """

    async def set_many(self, values: dict[str, Any]) -> None:
        for name, value in values.items():
            await self.set(name, value)

    @abstractmethod
    async def reset_if_stale(self, counter_name: str, date_name: str, today: str) -> bool:
        """Atomically zero ``counter_name`` unless ``date_name`` already equals ``today``.

        Writes ``today`` to ``date_name`` together with the zeroed counter.

        Returns:
            True if this call performed the reset
        """

    async def health_check(self) -> bool:
        return True


class InMemoryOptionsStore(OptionsStore):
    """Process-local options store.

    A single lock serializes writers so read-modify-write updates cannot
    interleave between coroutines.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    async def set(self, name: str, value: Any) -> None:
        async with self._lock:
            self._data[name] = value

    async def delete(self, name: str) -> None:
        async with self._lock:
            self._data.pop(name, None)

    async def increment(self, name: str, amount: int = 1) -> int:
        async with self._lock:
            value = int(self._data.get(name, 0) or 0) + amount
            self._data[name] = value
            return value

    async def set_many(self, values: dict[str, Any]) -> None:
        async with self._lock:
            self._data.update(values)

    async def reset_if_stale(self, counter_name: str, date_name: str, today: str) -> bool:
        async with self._lock:
            if self._data.get(date_name) == today:
                return False
            self._data[counter_name] = 0
            self._data[date_name] = today
            return True


class RedisOptionsStore(OptionsStore):
    """Options stored as JSON-encoded fields of one Redis hash.

    Counters use HINCRBY so concurrent workers never undercount.
    """

    def __init__(
        self,
        redis_url: str,
        hash_key: str = "wpaig:options",
        client: aioredis.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._hash_key = hash_key
        self._redis = client

    def _get_client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url)
        return self._redis

    async def get(self, name: str, default: Any = None) -> Any:
        raw = await self._get_client().hget(self._hash_key, name)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            # HINCRBY writes bare integers; anything else unparsable is returned as text
            return raw.decode() if isinstance(raw, bytes) else raw

    async def set(self, name: str, value: Any) -> None:
        await self._get_client().hset(self._hash_key, name, json.dumps(value))

    async def delete(self, name: str) -> None:
        await self._get_client().hdel(self._hash_key, name)

    async def increment(self, name: str, amount: int = 1) -> int:
        return int(await self._get_client().hincrby(self._hash_key, name, amount))

    async def set_many(self, values: dict[str, Any]) -> None:
        mapping = {name: json.dumps(value) for name, value in values.items()}
        await self._get_client().hset(self._hash_key, mapping=mapping)

    async def reset_if_stale(self, counter_name: str, date_name: str, today: str) -> bool:
        result = await self._get_client().eval(
            RESET_IF_STALE_SCRIPT,
            1,
            self._hash_key,
            counter_name,
            date_name,
            json.dumps(today),
        )
        return int(result) == 1

    async def health_check(self) -> bool:
        try:
            return bool(await self._get_client().ping())
        except Exception:
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


_options_store: OptionsStore | None = None


def get_options_store(force_new: bool = False) -> OptionsStore:
    """Get or create the global options store, chosen by ``settings.redis_enabled``."""
    global _options_store
    if _options_store is not None and not force_new:
        return _options_store

    if settings.redis_enabled:
        _options_store = RedisOptionsStore(settings.redis_url, settings.options_hash_key)
    else:
        _options_store = InMemoryOptionsStore()
    return _options_store


def reset_options_store() -> None:
    """Reset the global options store (testing helper)."""
    global _options_store
    _options_store = None
