"""
Domain Models - dispatch table entries and call results

This module contains the internal models shared by the dispatcher, the
executors and the protocol adapter:

- StructuredContent: the one result shape both backends normalize to.
- ToolSchema: what a caller sees about a tool.
- RegisteredTool: a ToolSchema bound to its handler (one dispatch entry).
- ToolResult: the outcome of one call at the executor boundary.

Pattern: Domain models as value objects (immutable once built)
"""

import json
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from easymcp.models.catalog import ToolType


def to_json_text(value: Any) -> str:
    """Serialize a JSON value compactly, keeping non-ASCII characters."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


# =============================================================================
# StructuredContent
# =============================================================================


class ContentKind(str, Enum):
    """Whether a result carries a JSON value or opaque text."""

    JSON = "json"
    TEXT = "text"


class StructuredContent(BaseModel):
    """
    Normalized call result, independent of the backend kind.

    Attributes:
        kind: JSON for parsed values, TEXT for opaque output.
        value: The JSON value, or the text itself.

    Example:
        >>> StructuredContent.from_json_value({"x": 1}).as_text()
        '{"x":1}'
        >>> StructuredContent.from_text("hi\\n").as_text()
        'hi\\n'
    """

    kind: ContentKind
    value: Any = None

    model_config = {"frozen": True}

    @classmethod
    def from_json_value(cls, value: Any) -> "StructuredContent":
        return cls(kind=ContentKind.JSON, value=value)

    @classmethod
    def from_text(cls, text: str) -> "StructuredContent":
        return cls(kind=ContentKind.TEXT, value=text)

    @property
    def is_json(self) -> bool:
        return self.kind is ContentKind.JSON

    def as_text(self) -> str:
        """Text form of the content: compact JSON for values, the text otherwise."""
        if self.is_json:
            return to_json_text(self.value)
        return self.value


# =============================================================================
# ToolSchema
# =============================================================================


class ToolSchema(BaseModel):
    """
    Caller-visible description of one tool.

    Attributes:
        name: Unique tool identifier.
        description: Human-readable description.
        input_schema: JSON Schema of the call input.
        output_schema: Optional JSON Schema of the structured result.
        annotations: Optional behavioral hints (protocol field names).
    """

    name: str = Field(..., description="Unique tool identifier")
    description: str = Field(default="", description="Human-readable description")
    input_schema: dict[str, Any] = Field(..., description="JSON Schema for the call input")
    output_schema: Optional[dict[str, Any]] = Field(
        default=None, description="JSON Schema for the structured result"
    )
    annotations: Optional[dict[str, Any]] = Field(
        default=None, description="Behavioral hints for callers"
    )

    model_config = {"frozen": True}


# =============================================================================
# RegisteredTool (dispatch entry)
# =============================================================================


ToolHandler = Callable[[dict[str, Any]], Awaitable[StructuredContent]]


class RegisteredTool(BaseModel):
    """
    A tool schema paired with the handler that executes it.

    The handler is an HttpExecutor or CommandExecutor instance; each holds
    the tool's compiled templates and is shared by every call to the tool.

    Attributes:
        definition: The caller-visible schema.
        kind: Backend kind the handler runs.
        handler: Async callable taking the call input, returning StructuredContent.
    """

    definition: ToolSchema
    kind: ToolType
    handler: ToolHandler = Field(..., description="Tool execution callable")

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    @property
    def name(self) -> str:
        """Get tool name from definition."""
        return self.definition.name


# =============================================================================
# ToolResult
# =============================================================================


class ToolResult(BaseModel):
    """
    Outcome of one call, success or failure.

    Attributes:
        tool_name: Name of the tool that was called.
        call_id: Correlation id of the call.
        content: Normalized content on success.
        is_error: Whether the call failed.
        error_code: ErrorCode value on failure.
        error: Error message on failure.
    """

    tool_name: str
    call_id: str
    content: Optional[StructuredContent] = None
    is_error: bool = False
    error_code: Optional[str] = None
    error: Optional[str] = None
