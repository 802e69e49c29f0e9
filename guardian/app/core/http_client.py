"""Shared HTTP client management for upstream provider calls.

The client is created once in the application lifespan and reused by
every dispatch for connection pooling.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from guardian.app.core.config import Settings, settings


# Shared HTTP client for connection pooling
_shared_http_client: httpx.AsyncClient | None = None


def is_local_host(host: str, local_hosts: list[str] | None = None) -> bool:
    """Return True when ``host`` names a local development machine.

    Matches the configured local host names exactly (port ignored), and any
    host under a ``.local`` domain.
    """
    host = (host or "").strip().lower()
    if not host:
        return False
    if host.startswith("["):
        # Bracketed IPv6 literal, e.g. "[::1]:8080"
        host = host[1:host.index("]")] if "]" in host else host[1:]
    elif host.count(":") == 1:
        host = host.split(":", 1)[0]
    if local_hosts is None:
        local_hosts = settings.local_hosts
    return host in local_hosts or ".local" in host


def should_verify_tls(config: Settings | None = None) -> bool:
    """Decide whether upstream TLS certificates are verified.

    Verification is only ever skipped outside production, and only when the
    site itself is served from a local host.
    """
    config = config or settings
    if config.is_production:
        return True
    return not is_local_host(config.site_host, config.local_hosts)


def create_http_client(timeout: float | None = None, verify: bool | None = None) -> httpx.AsyncClient:
    """Create a new HTTP client with gateway defaults.

    The returned client should be closed when done:
        async with create_http_client() as client:
            ...
    """
    if timeout is None:
        timeout = settings.request_timeout
    if verify is None:
        verify = should_verify_tls()
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout), verify=verify)


def get_http_client() -> httpx.AsyncClient:
    """Get the shared HTTP client instance.

    Raises:
        RuntimeError: If the HTTP client has not been initialized.
    """
    if _shared_http_client is None:
        raise RuntimeError(
            "HTTP client not initialized. Ensure lifespan context is active."
        )
    return _shared_http_client


@asynccontextmanager
async def init_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Initialize and yield the shared HTTP client.

    Used in the FastAPI lifespan:

        async with init_http_client():
            yield
    """
    global _shared_http_client

    _shared_http_client = create_http_client()
    try:
        yield _shared_http_client
    finally:
        if _shared_http_client is not None:
            await _shared_http_client.aclose()
            _shared_http_client = None
