"""
Core module for EasyMCP.

This module contains configuration and the exception hierarchy.
"""

from easymcp.core.config import Settings, get_settings
from easymcp.core.exceptions import (
    ConfigError,
    DuplicateToolError,
    EasyMCPException,
    ErrorCode,
    ParseError,
    RenderError,
    ResponseError,
    TemplateError,
    TransportError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "EasyMCPException",
    "ConfigError",
    "DuplicateToolError",
    "TemplateError",
    "RenderError",
    "TransportError",
    "ResponseError",
    "ParseError",
]
