"""Core utilities for the gateway application."""

from guardian.app.core.cache import (
    CacheBackend,
    InMemoryCache,
    RedisCache,
    get_cache,
    reset_cache,
)
from guardian.app.core.clock import Clock, SystemClock
from guardian.app.core.config import settings
from guardian.app.core.logging import get_logger, setup_logging
from guardian.app.core.options import (
    InMemoryOptionsStore,
    OptionsStore,
    RedisOptionsStore,
    get_options_store,
    reset_options_store,
)

__all__ = [
    "CacheBackend",
    "InMemoryCache",
    "RedisCache",
    "get_cache",
    "reset_cache",
    "Clock",
    "SystemClock",
    "settings",
    "get_logger",
    "setup_logging",
    "InMemoryOptionsStore",
    "OptionsStore",
    "RedisOptionsStore",
    "get_options_store",
    "reset_options_store",
]
