"""Shared httpx client for connection pooling.

Every upstream GraphQL call goes through one ``httpx.AsyncClient`` so that
TCP/TLS connections are kept alive and reused across requests. The client is
created once per process, normally at application startup, and closed on
shutdown.
"""

import logging
import threading
from typing import Optional

import httpx

from magento_gateway.vars import (
    POOL_KEEPALIVE_EXPIRY,
    POOL_MAX_CONNECTIONS,
    POOL_MAX_KEEPALIVE_CONNECTIONS,
    UPSTREAM_BASE_URL,
    UPSTREAM_TIMEOUT,
)

logger = logging.getLogger("uvicorn.error")

# Module-level client, initialized at startup
_client: Optional[httpx.AsyncClient] = None
_client_lock = threading.Lock()


def create_client(
    base_url: str = UPSTREAM_BASE_URL,
    max_connections: Optional[int] = POOL_MAX_CONNECTIONS,
    max_keepalive_connections: Optional[int] = POOL_MAX_KEEPALIVE_CONNECTIONS,
    keepalive_expiry: Optional[float] = POOL_KEEPALIVE_EXPIRY,
    timeout: float = UPSTREAM_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build a keep-alive client bound to the upstream base address."""
    limits = httpx.Limits(
        max_connections=max_connections,
        max_keepalive_connections=max_keepalive_connections,
        keepalive_expiry=keepalive_expiry,
    )
    return httpx.AsyncClient(
        base_url=base_url,
        limits=limits,
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        transport=transport,
    )


def init_client(**kwargs) -> httpx.AsyncClient:
    """Initialize the shared HTTP client. Call at application startup.

    Safe to call from several places at once: only the first caller creates
    the client, everybody gets the same instance back. Creation errors
    propagate; there is no retry.
    """
    global _client
    if _client is not None:
        return _client
    with _client_lock:
        if _client is None:
            logger.info(
                f"[Pool] Initializing upstream HTTP connection pool (once per process): "
                f"base_url={kwargs.get('base_url', UPSTREAM_BASE_URL)}"
            )
            _client = create_client(**kwargs)
    return _client


def get_client() -> httpx.AsyncClient:
    """Get the shared httpx client.

    If init_client() wasn't called, creates client lazily.
    """
    if _client is None:
        return init_client()
    return _client


async def close_client() -> None:
    """Close the shared client. Call on application shutdown."""
    global _client
    with _client_lock:
        client, _client = _client, None
    if client is not None:
        await client.aclose()
