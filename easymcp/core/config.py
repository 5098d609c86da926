"""
Core configuration module for EasyMCP.

This module provides process settings using Pydantic Settings. The tool
catalog itself is a file passed on the command line (see
easymcp.models.catalog); the settings here tune how the catalog is served.
All settings are loaded from environment variables with the EASYMCP_ prefix.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Process settings loaded from environment variables.

    All fields use the EASYMCP_ prefix for environment variables.
    Example: EASYMCP_LOG_LEVEL=DEBUG
    """

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_json: bool = Field(
        default=True,
        description="Render log events as JSON lines instead of console text",
    )

    # =========================================================================
    # Shared HTTP client
    # =========================================================================
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=3600.0,
        description="Connect/read/write/pool timeout for HTTP tools",
    )
    http_max_connections: int = Field(
        default=100,
        ge=1,
        description="Maximum connections in the shared HTTP pool",
    )
    http_max_keepalive: int = Field(
        default=20,
        ge=0,
        description="Maximum keep-alive connections in the shared HTTP pool",
    )
    http_retries: int = Field(
        default=0,
        ge=0,
        le=10,
        description="Connection-level retries for HTTP tools (0 keeps one attempt per call)",
    )

    # =========================================================================
    # Call execution
    # =========================================================================
    call_timeout_seconds: float = Field(
        default=120.0,
        ge=0.0,
        description="Upper bound for one tool call in seconds (0 disables the limit)",
    )
    max_concurrent_calls: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum tool calls running at once (unset means unbounded)",
    )

    model_config = {
        "env_prefix": "EASYMCP_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize the log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = v.upper()
        if level not in valid_levels:
            raise ValueError(f"Log level must be one of: {sorted(valid_levels)}")
        return level


# =============================================================================
# Settings Singleton
# =============================================================================


@lru_cache
def get_settings() -> Settings:
    """
    Get the process settings singleton.

    Returns:
        Settings: The settings instance.
    """
    return Settings()
