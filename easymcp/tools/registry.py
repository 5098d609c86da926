"""
Tool Registry - dispatch table built from the catalog

This module turns the catalog's tool definitions into the name-keyed
dispatch table handed to the protocol layer. Each entry pairs the tool's
caller-visible schema with an executor holding its compiled templates.

Build rules:
- Duplicate names anywhere in the catalog reject the whole catalog.
- An entry without metadata matching its kind is skipped (disabled tool).
- An entry whose templates fail to compile is excluded with a warning; the
  remaining tools are still served.
- The registry is frozen once built and never changes afterwards.

Pattern: Service Registry (tool inventory with callable handlers)
"""

import logging
from collections.abc import Sequence
from typing import Optional, Union

import httpx

from easymcp.core.exceptions import (
    DuplicateToolError,
    EasyMCPException,
    ErrorCode,
    TemplateError,
)
from easymcp.models.catalog import CommandMetadata, HttpMetadata, ToolData, ToolType
from easymcp.models.domain import RegisteredTool, ToolSchema
from easymcp.tools.command_executor import CommandExecutor
from easymcp.tools.http_executor import HttpExecutor

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class ToolNotFoundError(EasyMCPException):
    """Raised when a requested tool is not found in the registry."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool not found: {tool_name}", error_code=ErrorCode.TOOL_NOT_FOUND)
        self.tool_name = tool_name


# =============================================================================
# ToolRegistry Class
# =============================================================================


class ToolRegistry:
    """
    Name-keyed dispatch table of registered tools.

    Tools keep their registration (catalog) order. Once frozen the registry
    refuses further registrations, so it can be read from any number of
    concurrent calls.

    Attributes:
        _tools: Dictionary mapping tool names to RegisteredTool instances.
        _frozen: Whether registration is closed.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register(tool)
        >>> registry.freeze()
        >>> content = await registry.get("get_item").handler({"id": 1})
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, RegisteredTool] = {}
        self._indexes: dict[str, int] = {}
        self._attempts = 0
        self._frozen = False

    def register(self, tool: RegisteredTool, index: Optional[int] = None) -> None:
        """
        Register a tool under its name.

        Args:
            tool: The tool to register.
            index: Catalog index of the tool. Defaults to the number of
                registration attempts so far.

        Raises:
            DuplicateToolError: If the name is already registered.
            RuntimeError: If the registry is frozen.
        """
        if self._frozen:
            raise RuntimeError("Cannot register tools on a frozen registry")
        if index is None:
            index = self._attempts
        self._attempts += 1
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name, self._indexes[tool.name], index)
        self._tools[tool.name] = tool
        self._indexes[tool.name] = index
        logger.debug(f"Registered tool: {tool.name}")

    def freeze(self) -> None:
        """Close registration."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> RegisteredTool:
        """
        Get a registered tool by name.

        Raises:
            ToolNotFoundError: If the tool is not registered.
        """
        if name not in self._tools:
            raise ToolNotFoundError(name)
        return self._tools[name]

    def names(self) -> list[str]:
        return list(self._tools)

    # Defined after names(): inside the class body `list` refers to this
    # method from here on.
    def list(self) -> list[ToolSchema]:
        """
        List all registered tool schemas, in registration order.

        Returns:
            List of ToolSchema instances.
        """
        return [tool.definition for tool in self._tools.values()]

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


# =============================================================================
# Dispatcher
# =============================================================================


def check_duplicate_names(tools: Sequence[ToolData]) -> None:
    """
    Reject a catalog in which two entries share a name.

    Raises:
        DuplicateToolError: Naming the tool and both catalog indexes.
    """
    seen: dict[str, int] = {}
    for index, entry in enumerate(tools):
        if entry.name in seen:
            raise DuplicateToolError(entry.name, seen[entry.name], index)
        seen[entry.name] = index


def generate_tool_schema(
    entry: ToolData, metadata: Union[HttpMetadata, CommandMetadata]
) -> ToolSchema:
    """Assemble the caller-visible schema of one catalog entry."""
    return ToolSchema(
        name=entry.name,
        description=entry.description,
        input_schema=metadata.input_schema,
        output_schema=metadata.output_schema,
        annotations=entry.tool_annotations.to_dict() if entry.tool_annotations else None,
    )


def build_tool(
    tool_index: int, entry: ToolData, http_client: httpx.AsyncClient
) -> RegisteredTool:
    """
    Compile one usable catalog entry into a dispatch entry.

    Raises:
        TemplateError: If any of the tool's templates fails to compile.
    """
    handler: Union[HttpExecutor, CommandExecutor]
    if entry.tool_type is ToolType.HTTP:
        metadata: Union[HttpMetadata, CommandMetadata] = entry.http_metadata
        handler = HttpExecutor.from_metadata(tool_index, entry.http_metadata, http_client)
    else:
        metadata = entry.command_metadata
        handler = CommandExecutor.from_metadata(tool_index, entry.command_metadata)

    return RegisteredTool(
        definition=generate_tool_schema(entry, metadata),
        kind=entry.tool_type,
        handler=handler,
    )


def build_registry(
    tools: Sequence[ToolData], http_client: httpx.AsyncClient
) -> ToolRegistry:
    """
    Build the frozen dispatch table from catalog entries.

    Args:
        tools: Catalog entries, in catalog order.
        http_client: Shared client used by every HTTP tool.

    Returns:
        The frozen ToolRegistry.

    Raises:
        DuplicateToolError: If two entries share a name.
    """
    check_duplicate_names(tools)

    registry = ToolRegistry()
    for index, entry in enumerate(tools):
        reason = entry.skip_reason()
        if reason is not None:
            logger.warning(f"Skipping tool '{entry.name}' (tool index {index}): {reason}")
            continue
        try:
            tool = build_tool(index, entry, http_client)
        except TemplateError as e:
            logger.warning(f"Excluding tool '{entry.name}' from the dispatch table: {e}")
            continue
        registry.register(tool, index)

    registry.freeze()
    logger.info(f"Dispatch table ready: {len(registry)} of {len(tools)} tools registered")
    return registry
