"""
Tool Catalog Models

This module contains the Pydantic models for the catalog file: the list of
tool definitions plus the optional server metadata and transport settings.
The models are pure data; turning them into callable tools is the job of
easymcp.tools.registry.

The catalog file is YAML (JSON is accepted as well, being a YAML subset):

    tools:
      - name: get_item
        description: Fetch one item
        tool_type: HTTP
        http_metadata:
          url: https://api.example.com/items/{input.id}
          method: GET
          input_schema: {type: object, properties: {id: {type: integer}}}
    transport_config:
      transport_type: STDIO

Pattern: Pydantic for validation at the configuration boundary
"""

import re
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from easymcp import __version__
from easymcp.core.exceptions import ConfigError


# =============================================================================
# Enumerations
# =============================================================================


class ToolType(str, Enum):
    """Backend kind of a tool."""

    HTTP = "HTTP"
    COMMAND = "COMMAND"


class HttpMethod(str, Enum):
    """HTTP methods an HTTP tool may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class TransportType(str, Enum):
    """Transport the protocol server listens on."""

    STDIO = "STDIO"
    SSE = "SSE"


# =============================================================================
# Tool Definitions
# =============================================================================


def check_output_schema(schema: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Structured results are JSON objects, so an output schema must describe one."""
    if schema is not None and schema.get("type") != "object":
        raise ValueError(
            f"output_schema must have \"type\": \"object\", got {schema.get('type')!r}"
        )
    return schema


class HttpMetadata(BaseModel):
    """
    HTTP backend of a tool.

    Attributes:
        url: Template text of the request URL.
        method: HTTP method.
        body: Optional template text of the request body.
        headers: Optional mapping of header name to template text.
        input_schema: JSON Schema of the call input.
        output_schema: Optional JSON Schema of the structured result.
    """

    url: str
    method: HttpMethod
    body: Optional[str] = None
    headers: Optional[dict[str, str]] = None
    input_schema: dict[str, Any]
    output_schema: Optional[dict[str, Any]] = None

    @field_validator("output_schema")
    @classmethod
    def validate_output_schema(cls, v: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        return check_output_schema(v)

    model_config = {"frozen": True}


class CommandMetadata(BaseModel):
    """
    Command backend of a tool.

    Attributes:
        command: Template text of the program to run.
        args: Optional ordered template texts, one per argument.
        stdin: Optional template text written to the child's standard input.
        input_schema: JSON Schema of the call input.
        output_schema: Optional JSON Schema of the structured result.
    """

    command: str
    args: Optional[list[str]] = None
    stdin: Optional[str] = None
    input_schema: dict[str, Any]
    output_schema: Optional[dict[str, Any]] = None

    @field_validator("output_schema")
    @classmethod
    def validate_output_schema(cls, v: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        return check_output_schema(v)

    model_config = {"frozen": True}


class ToolAnnotations(BaseModel):
    """Behavioral hints for callers, in the protocol's camelCase field names."""

    title: Optional[str] = None
    read_only_hint: Optional[bool] = Field(default=None, alias="readOnlyHint")
    destructive_hint: Optional[bool] = Field(default=None, alias="destructiveHint")
    idempotent_hint: Optional[bool] = Field(default=None, alias="idempotentHint")
    open_world_hint: Optional[bool] = Field(default=None, alias="openWorldHint")

    model_config = {"frozen": True, "populate_by_name": True}

    def to_dict(self) -> dict[str, Any]:
        """Dump the hints that are set, using protocol field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ToolData(BaseModel):
    """
    One catalog entry.

    Exactly one of http_metadata / command_metadata is expected, matching
    tool_type. Entries that break this rule still load; the dispatcher skips
    them.
    """

    name: str = Field(..., min_length=1, description="Unique, caller-visible tool name")
    description: str = Field(default="", description="Human-readable description")
    tool_type: ToolType
    http_metadata: Optional[HttpMetadata] = None
    command_metadata: Optional[CommandMetadata] = None
    tool_annotations: Optional[ToolAnnotations] = None

    model_config = {"frozen": True}

    @property
    def metadata(self) -> Optional[Union[HttpMetadata, CommandMetadata]]:
        """Kind-specific metadata matching tool_type, or None when absent."""
        if self.tool_type is ToolType.HTTP:
            return self.http_metadata
        return self.command_metadata

    def skip_reason(self) -> Optional[str]:
        """Why the dispatcher must skip this entry, or None when it is usable."""
        if self.metadata is None:
            return f"{self.tool_type.value} tool has no {self.tool_type.value.lower()}_metadata"
        if self.http_metadata is not None and self.command_metadata is not None:
            return "tool defines both http_metadata and command_metadata"
        return None


# =============================================================================
# Server and Transport Settings
# =============================================================================


_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, "d": 86400.0}


def parse_duration(text: str) -> float:
    """
    Parse a duration string such as "15s", "500ms" or "1m30s" into seconds.

    Raises:
        ValueError: If the text is not a sequence of <number><unit> parts.
    """
    compact = text.strip()
    position = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(compact):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if not compact or position != len(compact):
        raise ValueError(f"Invalid duration: {text!r}")
    return total


class ServerInfo(BaseModel):
    """Name and version the server reports to callers."""

    name: str = "easymcp"
    version: str = __version__


class SseConfig(BaseModel):
    """
    Network (SSE) transport settings.

    Attributes:
        address: Bind address as host:port.
        sse_path: Path of the event-stream endpoint.
        post_path: Path clients POST messages to.
        keep_alive_duration: Optional keep-alive duration string (e.g. "15s").
    """

    address: str
    sse_path: str = "/sse"
    post_path: str = "/message"
    keep_alive_duration: Optional[str] = None

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Require host:port with a numeric port."""
        host, sep, port = v.rpartition(":")
        if not sep or not host or not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"address must be host:port, got {v!r}")
        return v

    @field_validator("sse_path", "post_path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"path must start with '/', got {v!r}")
        return v

    @field_validator("keep_alive_duration")
    @classmethod
    def validate_keep_alive(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_duration(v)
        return v

    @property
    def host(self) -> str:
        return self.address.rpartition(":")[0].strip("[]")

    @property
    def port(self) -> int:
        return int(self.address.rpartition(":")[2])

    @property
    def keep_alive_seconds(self) -> Optional[float]:
        if self.keep_alive_duration is None:
            return None
        return parse_duration(self.keep_alive_duration)


class TransportConfig(BaseModel):
    """Transport selection; STDIO unless configured otherwise."""

    transport_type: TransportType = TransportType.STDIO
    sse_config: Optional[SseConfig] = None

    @model_validator(mode="after")
    def check_sse_config(self) -> "TransportConfig":
        if self.transport_type is TransportType.SSE and self.sse_config is None:
            raise ValueError("sse_config is required when transport_type is SSE")
        return self


class Catalog(BaseModel):
    """
    The whole catalog file.

    Attributes:
        tools: Ordered tool definitions.
        instruction: Optional instructions reported to callers.
        server_info: Optional server name/version.
        server_capabilities: Optional protocol capabilities object, passed through.
        transport_config: Transport selection (defaults to STDIO).
    """

    tools: list[ToolData]
    instruction: Optional[str] = None
    server_info: Optional[ServerInfo] = None
    server_capabilities: Optional[dict[str, Any]] = None
    transport_config: TransportConfig = Field(default_factory=TransportConfig)


# =============================================================================
# Loading
# =============================================================================


def parse_catalog(data: Any, source: str = "<memory>") -> Catalog:
    """
    Validate already-parsed catalog data.

    Args:
        data: Parsed YAML/JSON document.
        source: Name used in error messages.

    Raises:
        ConfigError: If the document does not match the catalog schema.
    """
    if not isinstance(data, dict):
        raise ConfigError(
            f"Error while parsing the config file {source}: top level must be a mapping",
            path=source,
        )
    try:
        return Catalog.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Error while parsing the config file {source}: {e}", path=source
        ) from e


def load_catalog(file_path: Union[str, Path]) -> Catalog:
    """
    Read and validate a catalog file.

    Args:
        file_path: Path to a YAML or JSON catalog.

    Returns:
        The validated Catalog.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed.
    """
    path = Path(file_path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(
            f"Error while reading the config file {path}: {e}", path=str(path)
        ) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Error while parsing the config file {path}: {e}", path=str(path)
        ) from e

    return parse_catalog(data, source=str(path))
