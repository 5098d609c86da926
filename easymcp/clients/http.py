"""
HTTP Client Module

This module provides the factory for the one httpx.AsyncClient shared by
every HTTP tool. Sharing the client gives connection pooling across calls;
each call still builds its own request from scratch.

Pattern: Factory pattern for creating configured HTTP clients
"""

from typing import Optional

import httpx

from easymcp import __version__
from easymcp.core.config import Settings


# =============================================================================
# Default Configuration Constants
# =============================================================================


DEFAULT_TIMEOUT_SECONDS: float = 30.0
"""Default connect/read/write/pool timeout in seconds."""

DEFAULT_MAX_CONNECTIONS: int = 100
"""Maximum number of connections in the pool."""

DEFAULT_MAX_KEEPALIVE: int = 20
"""Maximum number of keepalive connections."""

DEFAULT_RETRY_COUNT: int = 0
"""Connection-level retries. Zero keeps a single attempt per call."""

USER_AGENT = f"easymcp/{__version__}"


# =============================================================================
# HTTP Client Factory
# =============================================================================


def create_http_client(
    timeout_seconds: Optional[float] = None,
    max_connections: Optional[int] = None,
    max_keepalive: Optional[int] = None,
    retries: Optional[int] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Create a configured HTTP client with connection pooling and timeouts.

    Unlike a service client, no base URL or Accept header is set: tools send
    exactly the URL and headers their templates render.

    Args:
        timeout_seconds: Request timeout in seconds (default: 30.0)
        max_connections: Maximum connections in pool (default: 100)
        max_keepalive: Maximum keepalive connections (default: 20)
        retries: Connection-level retries (default: 0)
        transport: Replacement transport, e.g. httpx.MockTransport in tests

    Returns:
        httpx.AsyncClient: Configured async HTTP client

    Example:
        >>> client = create_http_client(timeout_seconds=10.0)
        >>> async with client:
        ...     response = await client.get("https://api.example.com/items/1")
    """
    timeout = timeout_seconds if timeout_seconds is not None else DEFAULT_TIMEOUT_SECONDS
    max_conn = max_connections if max_connections is not None else DEFAULT_MAX_CONNECTIONS
    max_keep = max_keepalive if max_keepalive is not None else DEFAULT_MAX_KEEPALIVE
    retry_count = retries if retries is not None else DEFAULT_RETRY_COUNT

    if transport is None:
        # Pattern: Bulkhead - the pool bounds concurrent sockets
        limits = httpx.Limits(
            max_connections=max_conn,
            max_keepalive_connections=max_keep,
        )
        transport = httpx.AsyncHTTPTransport(retries=retry_count, limits=limits)

    timeout_config = httpx.Timeout(
        connect=timeout,
        read=timeout,
        write=timeout,
        pool=timeout,
    )

    return httpx.AsyncClient(
        timeout=timeout_config,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
        follow_redirects=True,
    )


def create_http_client_from_settings(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the shared client using the EASYMCP_HTTP_* settings."""
    return create_http_client(
        timeout_seconds=settings.http_timeout_seconds,
        max_connections=settings.http_max_connections,
        max_keepalive=settings.http_max_keepalive,
        retries=settings.http_retries,
        transport=transport,
    )
