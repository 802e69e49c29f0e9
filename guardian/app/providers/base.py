from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from guardian.app.exceptions import ProviderProtocolError, ProviderTransportError
from guardian.app.providers.classifier import ProviderTag


class BaseProvider(ABC):
    """Base class for upstream chat-completion providers.

    Subclasses can accept an external httpx.AsyncClient for connection pooling,
    or create their own per request if not provided.

    ``complete`` never returns a partial result: it returns the message text
    or raises a ``ProviderError`` subclass.
    """

    def __init__(
        self,
        tag: ProviderTag,
        endpoint: str,
        model: str,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        verify: bool = True,
    ):
        """Initialize the provider.

        Args:
            tag: Provider this instance talks to
            endpoint: Full chat-completions URL
            model: Provider-specific model id
            api_key: The API key for authentication
            http_client: Optional shared HTTP client for connection pooling
            timeout: Request timeout in seconds
            verify: Verify TLS certificates (only for self-created clients)
        """
        self.tag = tag
        self.endpoint = endpoint
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.verify = verify
        self._http_client = http_client
        self.headers = self._build_headers()

    @property
    def name(self) -> str:
        return self.tag.value

    def _build_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the shared client, or a short-lived one closed on exit."""
        if self._http_client is not None:
            yield self._http_client
            return
        client = httpx.AsyncClient(timeout=self.timeout, verify=self.verify)
        try:
            yield client
        finally:
            await client.aclose()

    @abstractmethod
    def build_payload(self, prompt: str) -> Dict[str, Any]:
        """Build the JSON request body for a single user prompt."""

    def extract_content(self, data: Any) -> str:
        """Pull ``choices[0].message.content`` out of a decoded response.

        Raises:
            ProviderProtocolError: If the field is missing or not a string
        """
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise ProviderProtocolError(
                self.name,
                ProviderProtocolError.MISSING_CONTENT,
                "No content in API response",
                status_code=200,
                body=str(data),
            )
        return content

    async def complete(self, prompt: str) -> str:
        """Send a non-streaming chat completion request and return its text.

        Raises:
            ProviderTransportError: Connection, DNS or timeout failure
            ProviderProtocolError: Non-200 status, malformed JSON, or no content
        """
        payload = self.build_payload(prompt)
        try:
            async with self._client_context() as client:
                resp = await client.post(
                    self.endpoint, headers=self.headers, json=payload, timeout=self.timeout
                )
        except httpx.HTTPError as e:
            raise ProviderTransportError(self.name, f"{type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise ProviderProtocolError(
                self.name,
                ProviderProtocolError.HTTP_STATUS,
                f"API returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderProtocolError(
                self.name,
                ProviderProtocolError.INVALID_JSON,
                f"Failed to parse JSON response: {e}",
                status_code=resp.status_code,
                body=resp.text,
            ) from e

        return self.extract_content(data)
