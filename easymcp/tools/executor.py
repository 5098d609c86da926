"""
Tool Executor - the per-call error boundary

This module runs one tool call against the dispatch table and always
returns a ToolResult: per-call failures (render, transport, response,
parse, timeout, unknown tool) come back as error results instead of
exceptions, so one failing call never affects the server or other calls.

Each call gets its own correlation id; calls share nothing except the
read-only registry and the pooled HTTP client.

Pattern: Command Executor (executes tool calls as commands)
Pattern: Fail-fast validation with graceful error wrapping
"""

import asyncio
import time
import uuid
from collections.abc import Mapping
from contextlib import AsyncExitStack
from typing import Any, Optional

import structlog

from easymcp.core.config import Settings
from easymcp.core.exceptions import EasyMCPException, ErrorCode
from easymcp.models.domain import ToolResult
from easymcp.observability.logging import correlation_id_context
from easymcp.tools.registry import ToolNotFoundError, ToolRegistry

logger = structlog.get_logger(__name__)

# Default execution timeout in seconds
DEFAULT_TIMEOUT = 120.0


class ToolExecutor:
    """
    Executor for calls routed through the dispatch table.

    Attributes:
        registry: The frozen ToolRegistry to look tools up in.
        timeout: Per-call limit in seconds, None for no limit.
        max_concurrency: Maximum calls running at once, None for unbounded.

    Example:
        >>> executor = ToolExecutor(registry=registry)
        >>> result = await executor.execute("get_item", {"id": 42})
        >>> result.is_error
        False
    """

    def __init__(
        self,
        registry: ToolRegistry,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        max_concurrency: Optional[int] = None,
    ) -> None:
        """
        Initialize the executor with a registry.

        Args:
            registry: The ToolRegistry to use for tool lookup.
            timeout: Maximum execution time in seconds (None or 0 disables it).
            max_concurrency: Bound on simultaneous calls (None for unbounded).
        """
        self.registry = registry
        self.timeout = timeout if timeout else None
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    @classmethod
    def from_settings(cls, registry: ToolRegistry, settings: Settings) -> "ToolExecutor":
        return cls(
            registry=registry,
            timeout=settings.call_timeout_seconds,
            max_concurrency=settings.max_concurrent_calls,
        )

    async def execute(
        self, name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> ToolResult:
        """
        Execute one call and return its result.

        Never raises for per-call failures. Cancellation from the caller
        still propagates.

        Args:
            name: Tool name.
            arguments: Call input (the JSON object from the caller).

        Returns:
            ToolResult with content on success, or error fields on failure.
        """
        call_id = uuid.uuid4().hex[:16]
        with correlation_id_context(call_id):
            return await self._execute(call_id, name, dict(arguments or {}))

    async def _execute(self, call_id: str, name: str, arguments: dict[str, Any]) -> ToolResult:
        started = time.perf_counter()
        try:
            tool = self.registry.get(name)
        except ToolNotFoundError as e:
            logger.warning("tool call rejected", tool=name, error=e.message)
            return _error_result(name, call_id, e.error_code, e.message)

        logger.debug("tool call received", tool=name, kind=tool.kind.value)
        try:
            async with AsyncExitStack() as stack:
                if self._semaphore is not None:
                    await stack.enter_async_context(self._semaphore)
                content = await asyncio.wait_for(tool.handler(arguments), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("tool call timed out", tool=name, timeout_seconds=self.timeout)
            return _error_result(
                name,
                call_id,
                ErrorCode.TIMEOUT,
                f"Tool execution timeout after {self.timeout}s",
            )
        except EasyMCPException as e:
            logger.warning(
                "tool call failed",
                tool=name,
                error_code=_code_value(e.error_code),
                error=e.message,
            )
            return _error_result(name, call_id, e.error_code, e.message)
        except Exception as e:
            logger.exception("tool call crashed", tool=name)
            return _error_result(
                name, call_id, ErrorCode.INTERNAL_ERROR, f"Tool execution failed: {e}"
            )

        logger.info(
            "tool call completed",
            tool=name,
            content_kind=content.kind.value,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return ToolResult(tool_name=name, call_id=call_id, content=content)


def _code_value(error_code: Any) -> str:
    return error_code.value if isinstance(error_code, ErrorCode) else str(error_code)


def _error_result(name: str, call_id: str, error_code: Any, message: str) -> ToolResult:
    return ToolResult(
        tool_name=name,
        call_id=call_id,
        is_error=True,
        error_code=_code_value(error_code),
        error=message,
    )
