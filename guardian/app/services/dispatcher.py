"""AI-call gateway used by every diagnostic feature.

``generate`` runs one prompt through cache lookup, quota check, credential
classification and the upstream call, and always returns a
``DispatchResult``. Upstream and configuration failures come back as
``Fallback``; only caller misuse raises.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from guardian.app.core.config import Settings, settings
from guardian.app.core.logging import get_log_context
from guardian.app.core.options import OptionsStore, get_options_store
from guardian.app.exceptions import (
    ConfigurationError,
    InvalidPromptError,
    ProviderError,
    ProviderProtocolError,
)
from guardian.app.providers.base import BaseProvider
from guardian.app.providers.classifier import ProviderTag, classify
from guardian.app.providers.factory import create_provider, resolve_tag
from guardian.app.services.quota import QuotaTracker
from guardian.app.services.request_cache import RequestCache
from guardian.app.services.results import (
    ConnectionStatus,
    DispatchResult,
    Fallback,
    QuotaExceeded,
    Success,
    UsageStats,
)

logger = logging.getLogger(__name__)

API_KEY_OPTION = "wpaig_hf_api_key"
CONNECTION_PROBE_PROMPT = 'Say "Connection successful" if you can read this.'


class Dispatcher:
    """Prompt dispatcher with caching, free-tier quota and fallback.

    Collaborators are injected so tests can run against in-memory stores,
    a fixed clock and a mocked HTTP transport.
    """

    def __init__(
        self,
        options: Optional[OptionsStore] = None,
        cache: Optional[RequestCache] = None,
        quota: Optional[QuotaTracker] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[Settings] = None,
    ):
        self.config = config or settings
        self._options = options
        self.cache = cache or RequestCache(
            ttl=self.config.cache_ttl,
            prefix=self.config.cache_prefix,
            include_provider=self.config.cache_key_include_provider,
        )
        self.quota = quota or QuotaTracker(options)
        self.http_client = http_client
        self.singleflight = self.config.cache_singleflight_enabled
        # fingerprint -> (lock, number of holders/waiters)
        self._inflight: dict[str, tuple[asyncio.Lock, int]] = {}
        self._inflight_lock = asyncio.Lock()

    @property
    def options(self) -> OptionsStore:
        if self._options is None:
            self._options = get_options_store()
        return self._options

    async def get_credential(self) -> str:
        credential = await self.options.get(API_KEY_OPTION, "")
        if not isinstance(credential, str):
            credential = ""
        return credential.strip() or self.config.api_key.strip()

    async def set_credential(self, credential: str) -> ProviderTag:
        """Store the site's API key and return the provider it will be sent to.

        Cached responses are kept: they are keyed by prompt, not by key.
        """
        credential = credential.strip()
        if not credential:
            raise InvalidPromptError("API key is required")
        await self.options.set(API_KEY_OPTION, credential)
        tag = resolve_tag(classify(credential), self.config)
        logger.info("AI API key updated", extra=get_log_context(provider=tag.value))
        return tag

    async def clear_credential(self) -> None:
        """Remove the stored key; ``GUARDIAN_API_KEY`` applies again, if set."""
        await self.options.delete(API_KEY_OPTION)
        logger.info("AI API key cleared")

    async def is_premium(self) -> bool:
        return await self.quota.is_premium()

    async def usage_stats(self) -> UsageStats:
        return await self.quota.usage_stats()

    async def calls_remaining(self, max_calls: Optional[int] = None) -> Optional[int]:
        if max_calls is None:
            max_calls = self.config.default_max_calls
        return await self.quota.calls_remaining(max_calls)

    async def fingerprint_for(self, prompt: str) -> str:
        provider = None
        if self.cache.include_provider:
            provider = classify(await self.get_credential()).value
        return self.cache.fingerprint(prompt, provider)

    async def generate(self, prompt: str, max_calls: Optional[int] = None) -> DispatchResult:
        """Produce an AI response for ``prompt``.

        Args:
            prompt: Non-empty prompt text
            max_calls: Daily ceiling for this call site against the shared
                counter; defaults to ``settings.default_max_calls`` (3)

        Returns:
            Success, Fallback or QuotaExceeded

        Raises:
            InvalidPromptError: Empty prompt or negative ``max_calls``
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvalidPromptError("Prompt is required")
        if max_calls is None:
            max_calls = self.config.default_max_calls
        if max_calls < 0:
            raise InvalidPromptError("max_calls must not be negative")

        try:
            fingerprint = await self.fingerprint_for(prompt)
        except Exception as e:
            logger.warning(f"Options store read failed, using fallback: {e}")
            return Fallback()

        cached = await self._cached_result(fingerprint)
        if cached is not None:
            return cached

        if not self.singleflight:
            return await self._dispatch(prompt, fingerprint, max_calls)

        async with self._flight(fingerprint):
            # A concurrent request for the same prompt may have filled the cache
            cached = await self._cached_result(fingerprint)
            if cached is not None:
                return cached
            return await self._dispatch(prompt, fingerprint, max_calls)

    async def _cached_result(self, fingerprint: str) -> Optional[Success]:
        text = await self.cache.lookup(fingerprint)
        if text is None:
            return None
        logger.info(
            "Served from cache",
            extra=get_log_context(fingerprint=fingerprint[:24], cache_hit=True),
        )
        return Success(text, cached=True)

    async def _dispatch(self, prompt: str, fingerprint: str, max_calls: int) -> DispatchResult:
        try:
            premium = await self.quota.is_premium()
            if not premium:
                calls_today = await self.quota.current_count()
                if calls_today >= max_calls:
                    logger.info(
                        f"Free tier limit reached: {calls_today}/{max_calls}",
                        extra=get_log_context(fingerprint=fingerprint[:24], calls_today=calls_today),
                    )
                    return QuotaExceeded()
            credential = await self.get_credential()
        except Exception as e:
            logger.warning(
                f"Options store read failed, using fallback: {e}",
                extra=get_log_context(fingerprint=fingerprint[:24]),
            )
            return Fallback()

        try:
            provider = self._build_provider(credential)
            text = await self._call(provider, prompt, fingerprint)
        except ProviderError as e:
            self._log_provider_error(e, fingerprint)
            return Fallback()
        except ConfigurationError as e:
            logger.warning(f"AI dispatch skipped: {e.message}")
            return Fallback()

        await self.cache.store(fingerprint, text)
        if not premium:
            try:
                await self.quota.increment()
            except Exception as e:
                # The upstream call already happened; the text is still returned
                logger.error(
                    f"Failed to record AI call in the daily counter: {e}",
                    extra=get_log_context(fingerprint=fingerprint[:24], provider=provider.name),
                )
        return Success(text)

    def _build_provider(self, credential: str) -> BaseProvider:
        if not credential:
            raise ConfigurationError()
        return create_provider(classify(credential), credential, self.http_client, self.config)

    async def _call(self, provider: BaseProvider, prompt: str, fingerprint: str) -> str:
        start = time.perf_counter()
        text = await provider.complete(prompt)
        logger.info(
            "Upstream call completed",
            extra=get_log_context(
                provider=provider.name,
                fingerprint=fingerprint[:24],
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            ),
        )
        return text

    def _log_provider_error(self, error: ProviderError, fingerprint: str) -> None:
        if isinstance(error, ProviderProtocolError):
            logger.error(
                f"AI API error ({error.provider}): {error.message} - Response: {error.body}",
                extra=get_log_context(
                    provider=error.provider,
                    fingerprint=fingerprint[:24],
                    status_code=error.upstream_status,
                    error_code=error.code,
                ),
            )
        else:
            logger.error(
                f"AI API transport error ({error.provider}): {error.message}",
                extra=get_log_context(
                    provider=error.provider,
                    fingerprint=fingerprint[:24],
                    error_code=error.code,
                ),
            )

    @asynccontextmanager
    async def _flight(self, fingerprint: str) -> AsyncIterator[None]:
        """Serialize upstream calls for one fingerprint (single-flight)."""
        async with self._inflight_lock:
            lock, holders = self._inflight.get(fingerprint, (asyncio.Lock(), 0))
            self._inflight[fingerprint] = (lock, holders + 1)
        try:
            async with lock:
                yield
        finally:
            async with self._inflight_lock:
                lock, holders = self._inflight[fingerprint]
                if holders <= 1:
                    del self._inflight[fingerprint]
                else:
                    self._inflight[fingerprint] = (lock, holders - 1)

    async def test_connection(self) -> ConnectionStatus:
        """Probe the configured provider without touching cache or quota."""
        try:
            credential = await self.get_credential()
        except Exception as e:
            logger.warning(f"Options store read failed: {e}")
            return ConnectionStatus(False, ProviderTag.UNKNOWN.value, "Settings store unavailable")
        if not credential:
            return ConnectionStatus(False, classify(credential).value, "API key not configured")

        provider = create_provider(classify(credential), credential, self.http_client, self.config)
        start = time.perf_counter()
        try:
            await provider.complete(CONNECTION_PROBE_PROMPT)
        except ProviderError as e:
            self._log_provider_error(e, "connection-test")
            return ConnectionStatus(
                success=False,
                provider=provider.name,
                message="Connection failed",
                model=provider.model,
                response_time_ms=round((time.perf_counter() - start) * 1000, 2),
            )
        return ConnectionStatus(
            success=True,
            provider=provider.name,
            message="API connected successfully",
            model=provider.model,
            response_time_ms=round((time.perf_counter() - start) * 1000, 2),
        )


# Global instance (initialized with the shared HTTP client on startup)
_dispatcher: Optional[Dispatcher] = None


def get_dispatcher(http_client: Optional[httpx.AsyncClient] = None) -> Dispatcher:
    """Get or create the dispatcher instance."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = Dispatcher(http_client=http_client)
    elif http_client is not None and _dispatcher.http_client is None:
        _dispatcher.http_client = http_client
    return _dispatcher


def reset_dispatcher() -> None:
    """Reset the global dispatcher (testing helper)."""
    global _dispatcher
    _dispatcher = None
