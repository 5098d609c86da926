"""
Protocol Server - exposes the dispatch table over MCP

This module adapts the frozen ToolRegistry and the ToolExecutor to the MCP
Python SDK. The SDK owns framing, input-schema validation and transport;
this module only supplies the tool list and routes each call to the
executor, then maps the ToolResult back to protocol content.

Transports:
- stdio: run_stdio()
- SSE: create_sse_app() builds a FastAPI app (event-stream GET route,
  message POST mount, /health), served by run_sse() with uvicorn.
"""

import math
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional, Union

import mcp.types as types
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.server.sse import SseServerTransport
from mcp.server.stdio import stdio_server
from pydantic import BaseModel

from easymcp import __version__
from easymcp.core.exceptions import EasyMCPException, ErrorCode
from easymcp.models.catalog import Catalog, ServerInfo, SseConfig
from easymcp.models.domain import ToolResult, ToolSchema
from easymcp.tools.executor import ToolExecutor

logger = structlog.get_logger(__name__)

CallToolOutput = Union[
    list[types.TextContent],
    tuple[list[types.TextContent], dict[str, Any]],
]


# =============================================================================
# Schema and Result Mapping
# =============================================================================


def to_mcp_tool(schema: ToolSchema) -> types.Tool:
    """Convert a dispatch-table schema to the protocol's Tool model."""
    annotations = (
        types.ToolAnnotations.model_validate(schema.annotations)
        if schema.annotations
        else None
    )
    return types.Tool(
        name=schema.name,
        description=schema.description or None,
        inputSchema=schema.input_schema,
        outputSchema=schema.output_schema,
        annotations=annotations,
    )


def to_call_tool_output(
    result: ToolResult, output_schema: Optional[dict[str, Any]] = None
) -> CallToolOutput:
    """
    Map a ToolResult to what the SDK's call_tool handler returns.

    JSON content becomes one text item holding the compact JSON text, plus
    structured content when the value is an object. Text content becomes one
    text item.

    Raises:
        EasyMCPException: For error results, and for a tool that declares an
            output schema but produced something other than a JSON object.
            The SDK reports either with isError.
    """
    if result.is_error or result.content is None:
        raise EasyMCPException(
            result.error or "Tool execution failed",
            error_code=result.error_code or "EASYMCP_ERROR",
        )

    content = result.content
    text_items = [types.TextContent(type="text", text=content.as_text())]
    if content.is_json and isinstance(content.value, dict):
        return text_items, content.value
    if output_schema is not None:
        kind = "JSON " + type(content.value).__name__ if content.is_json else "text"
        raise EasyMCPException(
            f"Tool '{result.tool_name}' declares an output_schema but returned {kind}, "
            "not a JSON object",
            error_code=ErrorCode.RESPONSE_ERROR.value,
        )
    return text_items


# =============================================================================
# Server Construction
# =============================================================================


def create_server(catalog: Catalog, executor: ToolExecutor) -> Server:
    """
    Build the MCP server for a catalog.

    Args:
        catalog: Loaded catalog (server info and instructions).
        executor: Executor bound to the frozen dispatch table.
    """
    info = catalog.server_info or ServerInfo()
    server: Server = Server(info.name, version=info.version, instructions=catalog.instruction)
    schemas = executor.registry.list()
    tools = [to_mcp_tool(schema) for schema in schemas]
    output_schemas = {schema.name: schema.output_schema for schema in schemas}

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return tools

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolOutput:
        result = await executor.execute(name, arguments)
        return to_call_tool_output(result, output_schemas.get(name))

    return server


def initialization_options(server: Server, catalog: Catalog) -> InitializationOptions:
    """
    Initialization options, honoring the catalog's server_capabilities.

    Without server_capabilities the SDK derives them from the registered
    handlers, which advertises the tools capability.
    """
    options = server.create_initialization_options(NotificationOptions(), {})
    if catalog.server_capabilities is not None:
        capabilities = types.ServerCapabilities.model_validate(catalog.server_capabilities)
        options = options.model_copy(update={"capabilities": capabilities})
    return options


# =============================================================================
# stdio Transport
# =============================================================================


async def run_stdio(server: Server, options: InitializationOptions) -> None:
    """Serve over stdin/stdout until the client disconnects."""
    logger.info("serving over stdio", server=options.server_name)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, options)


# =============================================================================
# SSE Transport
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    tools: int


def message_endpoint(sse_config: SseConfig) -> str:
    """POST path announced to clients; mounted with a trailing slash."""
    return sse_config.post_path.rstrip("/") + "/"


def create_sse_app(
    server: Server,
    options: InitializationOptions,
    sse_config: SseConfig,
    tool_count: int,
) -> FastAPI:
    """
    Build the FastAPI app serving the event-stream transport.

    Args:
        server: MCP server from create_server().
        options: Initialization options.
        sse_config: Paths of the event-stream and message endpoints.
        tool_count: Number of served tools, reported by /health.
    """
    endpoint = message_endpoint(sse_config)
    transport = SseServerTransport(endpoint)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info(
            "sse server started",
            sse_path=sse_config.sse_path,
            post_path=endpoint,
            tools=tool_count,
        )
        yield
        logger.info("sse server cancelled")

    app = FastAPI(
        title=options.server_name,
        version=options.server_version,
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )

    async def handle_sse(request: Request) -> Response:
        async with transport.connect_sse(
            request.scope, request.receive, request._send
        ) as (read_stream, write_stream):
            await server.run(read_stream, write_stream, options)
        return Response()

    app.add_route(sse_config.sse_path, handle_sse, methods=["GET"])
    app.mount(endpoint, app=transport.handle_post_message)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__, tools=tool_count)

    return app


async def run_sse(
    server: Server,
    options: InitializationOptions,
    sse_config: SseConfig,
    tool_count: int,
) -> None:
    """Serve the event-stream transport with uvicorn until interrupted."""
    app = create_sse_app(server, options, sse_config, tool_count)
    keep_alive: Optional[float] = sse_config.keep_alive_seconds
    config = uvicorn.Config(
        app,
        host=sse_config.host,
        port=sse_config.port,
        timeout_keep_alive=max(1, math.ceil(keep_alive)) if keep_alive else 5,
        log_config=None,
    )
    logger.info("server listening", address=sse_config.address)
    await uvicorn.Server(config).serve()
