"""
Pytest configuration and shared fixtures.

Fixtures build catalog entries, mock HTTP transports and dispatch tables
without touching the network. Command tools run the current interpreter
(sys.executable) so the suite does not depend on system utilities.
"""

import json
import sys
from typing import Any, Callable

import httpx
import pytest

from easymcp.clients.http import create_http_client
from easymcp.models.catalog import ToolData, parse_catalog
from easymcp.tools.registry import ToolRegistry, build_registry


PYTHON = sys.executable


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """
    Register custom markers for test categorization.

    - unit: Tests for individual components
    - integration: Tests that wire the dispatch table to real processes
    - slow: Tests that take a long time to run
    """
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Dispatch table with real processes and mocked HTTP")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# =============================================================================
# HTTP Fixtures
# =============================================================================


def echo_request(request: httpx.Request) -> httpx.Response:
    """Mock transport handler answering with a JSON description of the request."""
    return httpx.Response(
        200,
        json={
            "method": request.method,
            "url": str(request.url),
            "headers": {
                key: value
                for key, value in request.headers.items()
                if key.startswith("x-") or key == "content-type"
            },
            "body": request.content.decode("utf-8"),
        },
    )


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory for shared clients wired to an httpx.MockTransport."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return create_http_client(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def echo_client(make_client) -> httpx.AsyncClient:
    """Client whose every request is echoed back as JSON."""
    return make_client(echo_request)


# =============================================================================
# Catalog Fixtures
# =============================================================================


@pytest.fixture
def catalog_data() -> dict[str, Any]:
    """A catalog with one HTTP tool and two command tools."""
    return {
        "instruction": "Test tools",
        "server_info": {"name": "test-server", "version": "9.9.9"},
        "tools": [
            {
                "name": "get_item",
                "description": "Fetch one item",
                "tool_type": "HTTP",
                "http_metadata": {
                    "url": "https://api.example.com/items/{input.id}",
                    "method": "GET",
                    "headers": {"X-Request-Id": "{input.request_id}"},
                    "input_schema": {
                        "type": "object",
                        "properties": {
                            "id": {"type": "integer"},
                            "request_id": {"type": "string"},
                        },
                        "required": ["id", "request_id"],
                    },
                },
                "tool_annotations": {"title": "Get item", "readOnlyHint": True},
            },
            {
                "name": "shout",
                "description": "Upper-case a word",
                "tool_type": "COMMAND",
                "command_metadata": {
                    "command": PYTHON,
                    "args": ["-c", "import sys; print(sys.argv[1].upper())", "{input.word}"],
                    "input_schema": {
                        "type": "object",
                        "properties": {"word": {"type": "string"}},
                        "required": ["word"],
                    },
                },
            },
            {
                "name": "describe",
                "description": "Echo the input back as JSON",
                "tool_type": "COMMAND",
                "command_metadata": {
                    "command": PYTHON,
                    "args": [
                        "-c",
                        "import json, sys; print(json.dumps(json.loads(sys.stdin.read())))",
                    ],
                    "stdin": '{"name": "{input.name}", "count": {input.count}}',
                    "input_schema": {"type": "object"},
                    "output_schema": {"type": "object"},
                },
            },
        ],
    }


@pytest.fixture
def tool_entries(catalog_data: dict[str, Any]) -> list[ToolData]:
    """Parsed ToolData entries of catalog_data."""
    return parse_catalog(catalog_data).tools


@pytest.fixture
def registry(tool_entries: list[ToolData], echo_client: httpx.AsyncClient) -> ToolRegistry:
    """Frozen dispatch table built from catalog_data."""
    return build_registry(tool_entries, echo_client)


@pytest.fixture
def catalog_file(tmp_path, catalog_data: dict[str, Any]):
    """catalog_data written to a temporary file (JSON is valid YAML)."""
    path = tmp_path / "catalog.yaml"
    path.write_text(json.dumps(catalog_data), encoding="utf-8")
    return path
