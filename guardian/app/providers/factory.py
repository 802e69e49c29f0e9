"""Provider factory for creating upstream provider instances.

Maps each classified provider tag to its endpoint and model, with optional
per-tag overrides from settings.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from guardian.app.core.config import Settings, settings
from guardian.app.core.http_client import should_verify_tls
from guardian.app.core.logging import get_logger
from guardian.app.providers.base import BaseProvider
from guardian.app.providers.chat import ChatCompletionProvider
from guardian.app.providers.classifier import ProviderTag

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    """Endpoint and model for one provider.

    Attributes:
        tag: The provider this configuration addresses
        endpoint: Full chat-completions URL
        model: Model id sent in the request body
    """

    tag: ProviderTag
    endpoint: str
    model: str


# Provider registry with built-in defaults
_PROVIDER_REGISTRY: Dict[ProviderTag, ProviderConfig] = {
    ProviderTag.GROQ: ProviderConfig(
        ProviderTag.GROQ,
        "https://api.groq.com/openai/v1/chat/completions",
        "llama-3.1-8b-instant",
    ),
    ProviderTag.PERPLEXITY: ProviderConfig(
        ProviderTag.PERPLEXITY,
        "https://api.perplexity.ai/chat/completions",
        "llama-3.1-sonar-small-128k-online",
    ),
    ProviderTag.HUGGINGFACE: ProviderConfig(
        ProviderTag.HUGGINGFACE,
        "https://router.huggingface.co/v1/chat/completions",
        "meta-llama/Llama-3.1-8B-Instruct",
    ),
    ProviderTag.OPENAI: ProviderConfig(
        ProviderTag.OPENAI,
        "https://api.openai.com/v1/chat/completions",
        "gpt-4o-mini",
    ),
}


def resolve_tag(tag: ProviderTag, config: Settings | None = None) -> ProviderTag:
    """Map ``UNKNOWN`` to the configured default provider."""
    config = config or settings
    if tag is ProviderTag.UNKNOWN:
        return ProviderTag(config.default_provider)
    return tag


def get_provider_config(tag: ProviderTag, config: Settings | None = None) -> ProviderConfig:
    """Return the registry entry for ``tag`` with settings overrides applied.

    ``UNKNOWN`` resolves to the configured default provider.
    """
    config = config or settings
    tag = resolve_tag(tag, config)
    default = _PROVIDER_REGISTRY[tag]
    endpoint = getattr(config, f"{tag.value}_endpoint", "") or default.endpoint
    model = getattr(config, f"{tag.value}_model", "") or default.model
    return ProviderConfig(tag, endpoint, model)


def create_provider(
    tag: ProviderTag,
    api_key: str,
    http_client: Optional[httpx.AsyncClient] = None,
    config: Settings | None = None,
) -> BaseProvider:
    """Create a provider instance for a classified credential.

    Args:
        tag: Classified provider; ``UNKNOWN`` uses the default provider
        api_key: Credential sent as the Bearer token
        http_client: Optional shared HTTP client
        config: Settings to read endpoints and request parameters from

    Returns:
        A ready-to-use provider
    """
    config = config or settings
    provider_config = get_provider_config(tag, config)
    if provider_config.tag is not tag:
        logger.debug(
            f"Unrecognised credential prefix, using default provider {provider_config.tag.value}"
        )
    return ChatCompletionProvider(
        tag=provider_config.tag,
        endpoint=provider_config.endpoint,
        model=provider_config.model,
        api_key=api_key,
        http_client=http_client,
        timeout=config.request_timeout,
        verify=should_verify_tls(config),
        temperature=config.temperature,
        max_tokens=config.max_tokens,
    )
