"""
EasyMCP - command-line entry point

Usage:
    easymcp -f catalog.yaml [--log-level DEBUG]

Loads the catalog, builds the dispatch table and serves it over the
transport the catalog selects (stdio by default, or SSE). Catalog errors
and invalid EASYMCP_* settings are fatal: they are logged and the process
exits with status 1.
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from easymcp import __version__
from easymcp.clients.http import create_http_client_from_settings
from easymcp.core.config import Settings, get_settings
from easymcp.core.exceptions import ConfigError
from easymcp.models.catalog import Catalog, TransportType, load_catalog
from easymcp.observability.logging import configure_logging, get_logger
from easymcp.server import create_server, initialization_options, run_sse, run_stdio
from easymcp.tools.executor import ToolExecutor
from easymcp.tools.registry import build_registry


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="easymcp",
        description="Serve a catalog of HTTP and command tools over MCP",
    )
    parser.add_argument(
        "-f",
        "--file_path",
        required=True,
        help="File path to the yaml file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override EASYMCP_LOG_LEVEL",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


async def serve(catalog: Catalog, settings: Settings) -> None:
    """
    Build the dispatch table and serve it until the transport closes.

    Raises:
        ConfigError: If the catalog cannot be turned into a dispatch table.
    """
    logger = get_logger(__name__)
    async with create_http_client_from_settings(settings) as http_client:
        registry = build_registry(catalog.tools, http_client)
        executor = ToolExecutor.from_settings(registry, settings)
        server = create_server(catalog, executor)
        options = initialization_options(server, catalog)

        transport = catalog.transport_config
        logger.info(
            "starting server",
            transport=transport.transport_type.value,
            tools=registry.names(),
        )
        if transport.transport_type is TransportType.SSE:
            await run_sse(server, options, transport.sse_config, len(registry))
        else:
            await run_stdio(server, options)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging(level=args.log_level or "INFO")
        get_logger(__name__).error("invalid settings", error=str(e))
        return 1
    configure_logging(
        level=args.log_level or settings.log_level,
        json_output=settings.log_json,
    )
    logger = get_logger(__name__)

    try:
        catalog = load_catalog(args.file_path)
        logger.info("catalog loaded", path=args.file_path, tools=len(catalog.tools))
        asyncio.run(serve(catalog, settings))
    except ConfigError as e:
        logger.error("startup failed", error=e.message, path=e.path)
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
