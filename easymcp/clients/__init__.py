"""
Clients Package - shared HTTP client setup for HTTP tools.
"""

from easymcp.clients.http import (
    create_http_client,
    create_http_client_from_settings,
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_MAX_KEEPALIVE,
    DEFAULT_RETRY_COUNT,
    DEFAULT_TIMEOUT_SECONDS,
)

__all__ = [
    "create_http_client",
    "create_http_client_from_settings",
    "DEFAULT_MAX_CONNECTIONS",
    "DEFAULT_MAX_KEEPALIVE",
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_TIMEOUT_SECONDS",
]
