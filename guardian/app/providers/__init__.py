"""Upstream providers package for the AI Guardian gateway.

This package provides:
- Credential classification (ProviderTag, classify)
- Base provider interface (BaseProvider)
- OpenAI-compatible implementation (ChatCompletionProvider)
- Provider factory (ProviderConfig, create_provider)
"""

from guardian.app.providers.base import BaseProvider
from guardian.app.providers.chat import ChatCompletionProvider
from guardian.app.providers.classifier import KEY_PREFIXES, ProviderTag, classify
from guardian.app.providers.factory import (
    ProviderConfig,
    create_provider,
    get_provider_config,
    resolve_tag,
)

__all__ = [
    # Classifier
    "KEY_PREFIXES",
    "ProviderTag",
    "classify",
    # Providers
    "BaseProvider",
    "ChatCompletionProvider",
    # Factory
    "ProviderConfig",
    "create_provider",
    "get_provider_config",
    "resolve_tag",
]
