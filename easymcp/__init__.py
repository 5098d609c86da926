"""EasyMCP - serve a declarative catalog of HTTP and command tools over MCP.

Note: Import the CLI from `easymcp.main` directly to avoid circular imports.
"""

__version__ = "0.1.0"

__all__ = ["main", "server", "core", "models", "tools"]
