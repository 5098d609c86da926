"""Models Package - catalog file models and internal domain models."""

from easymcp.models.catalog import (
    Catalog,
    CommandMetadata,
    HttpMetadata,
    HttpMethod,
    ServerInfo,
    SseConfig,
    ToolAnnotations,
    ToolData,
    ToolType,
    TransportConfig,
    TransportType,
    load_catalog,
    parse_catalog,
)
from easymcp.models.domain import (
    ContentKind,
    RegisteredTool,
    StructuredContent,
    ToolResult,
    ToolSchema,
)

__all__ = [
    # Catalog
    "Catalog",
    "CommandMetadata",
    "HttpMetadata",
    "HttpMethod",
    "ServerInfo",
    "SseConfig",
    "ToolAnnotations",
    "ToolData",
    "ToolType",
    "TransportConfig",
    "TransportType",
    "load_catalog",
    "parse_catalog",
    # Domain
    "ContentKind",
    "RegisteredTool",
    "StructuredContent",
    "ToolResult",
    "ToolSchema",
]
