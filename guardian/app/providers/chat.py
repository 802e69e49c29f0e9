"""OpenAI-compatible chat-completions provider.

Groq, Perplexity, the Hugging Face router and OpenAI all accept the same
request body and answer with the same ``choices`` shape, so one class
serves every tag.
"""

from typing import Any, Dict, Optional

import httpx

from guardian.app.providers.base import BaseProvider
from guardian.app.providers.classifier import ProviderTag


class ChatCompletionProvider(BaseProvider):
    """Single-turn chat completion against an OpenAI-compatible endpoint."""

    def __init__(
        self,
        tag: ProviderTag,
        endpoint: str,
        model: str,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        verify: bool = True,
        temperature: float = 0.7,
        max_tokens: int = 800,
    ):
        super().__init__(tag, endpoint, model, api_key, http_client, timeout, verify)
        self.temperature = temperature
        self.max_tokens = max_tokens

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
