"""Shared fixtures: a controllable clock and in-memory collaborators."""

from datetime import date, timedelta

import pytest

from guardian.app.core.cache import InMemoryCache
from guardian.app.core.config import Settings
from guardian.app.core.options import InMemoryOptionsStore
from guardian.app.services.dispatcher import Dispatcher
from guardian.app.services.quota import QuotaTracker
from guardian.app.services.request_cache import RequestCache

GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"
PERPLEXITY_URL = "https://api.perplexity.ai/chat/completions"
HUGGINGFACE_URL = "https://router.huggingface.co/v1/chat/completions"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


class FakeClock:
    """Clock whose date and epoch time only move when a test says so."""

    def __init__(self, today: date = date(2026, 10, 18), now: float = 1_800_000_000.0):
        self._today = today
        self._now = now

    def today(self) -> date:
        return self._today

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float = 0, days: int = 0) -> None:
        self._now += seconds + days * 86400
        self._today += timedelta(days=days)


def completion(content: str = "AI says hi") -> dict:
    """Minimal successful chat-completion body."""
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def options():
    return InMemoryOptionsStore()


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, environment="production", api_key="", default_provider="groq")


@pytest.fixture
def cache_backend(clock):
    return InMemoryCache(clock=clock.now)


@pytest.fixture
def request_cache(cache_backend):
    return RequestCache(cache_backend, ttl=3600, prefix="wpaig_ai_", include_provider=False)


@pytest.fixture
def quota(options, clock):
    return QuotaTracker(options, clock)


@pytest.fixture
def make_dispatcher(options, request_cache, quota, test_settings):
    """Build a Dispatcher over the shared in-memory fixtures."""

    def _make(http_client=None, config=None, cache=None):
        return Dispatcher(
            options=options,
            cache=cache or request_cache,
            quota=quota,
            http_client=http_client,
            config=config or test_settings,
        )

    return _make


@pytest.fixture
def dispatcher(make_dispatcher):
    return make_dispatcher()
