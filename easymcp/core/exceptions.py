"""
Custom exceptions for EasyMCP.

This module provides the exception hierarchy used by the tool server.
All exceptions inherit from EasyMCPException and carry an error code so
that failures are classified the same way whether they come from the
network (HTTP tools) or from a child process (command tools).

Fatal at startup:
- ConfigError / DuplicateToolError: the catalog cannot be used at all.

Isolated to one tool at startup:
- TemplateError: the tool is left out of the dispatch table.

Per call (returned to the caller as a tool error):
- RenderError, TransportError, ResponseError, ParseError
"""

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error codes for EasyMCP exceptions.

    These codes identify the error kind in tool results and in logs.
    """

    EASYMCP_ERROR = "EASYMCP_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    DUPLICATE_TOOL = "DUPLICATE_TOOL"
    TEMPLATE_ERROR = "TEMPLATE_ERROR"
    RENDER_ERROR = "RENDER_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    RESPONSE_ERROR = "RESPONSE_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Base Exception
# =============================================================================


class EasyMCPException(Exception):
    """
    Base exception for all EasyMCP errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.EASYMCP_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Startup Errors
# =============================================================================


class ConfigError(EasyMCPException):
    """
    Exception for an unusable catalog file.

    Raised when the catalog is missing, unreadable, not valid YAML, or
    does not match the catalog schema. Fatal at startup.

    Attributes:
        path: Path of the offending catalog file (if known).
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        error_code: str = ErrorCode.CONFIG_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.path = path


class DuplicateToolError(ConfigError):
    """
    Raised when two catalog entries share a tool name.

    Attributes:
        tool_name: The duplicated name.
        first_index: Catalog index of the first entry with that name.
        second_index: Catalog index of the conflicting entry.
    """

    def __init__(self, tool_name: str, first_index: int, second_index: int) -> None:
        super().__init__(
            f"Duplicate tool name '{tool_name}' at tool index {first_index} "
            f"and tool index {second_index}",
            error_code=ErrorCode.DUPLICATE_TOOL,
        )
        self.tool_name = tool_name
        self.first_index = first_index
        self.second_index = second_index


class TemplateError(EasyMCPException):
    """
    Exception for template text that fails to compile.

    Attributes:
        slot: Template slot name (url, body, header_<name>, command, args_<i>, stdin).
        tool_index: Catalog index of the tool owning the template.
    """

    def __init__(
        self,
        message: str,
        slot: str,
        tool_index: int | None = None,
        error_code: str = ErrorCode.TEMPLATE_ERROR,
        **kwargs: Any,
    ) -> None:
        if tool_index is not None:
            message = f"Error registering {slot} template, tool index {tool_index}: {message}"
        else:
            message = f"Error registering {slot} template: {message}"
        super().__init__(message, error_code, **kwargs)
        self.slot = slot
        self.tool_index = tool_index


# =============================================================================
# Per-call Errors
# =============================================================================


class RenderError(EasyMCPException):
    """
    Exception for a template that cannot be rendered against a call input.

    Attributes:
        slot: Template slot that failed to render.
    """

    def __init__(
        self,
        message: str,
        slot: str,
        error_code: str = ErrorCode.RENDER_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Error while rendering {slot} template: {message}", error_code, **kwargs
        )
        self.slot = slot


class TransportError(EasyMCPException):
    """
    Exception for a failed HTTP exchange or process I/O.

    Attributes:
        target: URL or command the call was aimed at.
    """

    def __init__(
        self,
        message: str,
        target: str | None = None,
        error_code: str = ErrorCode.TRANSPORT_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.target = target


class ResponseError(EasyMCPException):
    """
    Exception for a non-2xx HTTP status or a non-zero process exit.

    Attributes:
        status_code: HTTP status code or process exit status.
        body: Parsed response body, or captured stderr for commands.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
        error_code: str = ErrorCode.RESPONSE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.status_code = status_code
        self.body = body


class ParseError(EasyMCPException):
    """
    Exception for a response declared as JSON that does not parse.

    Attributes:
        target: URL the response came from.
    """

    def __init__(
        self,
        message: str,
        target: str | None = None,
        error_code: str = ErrorCode.PARSE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.target = target
