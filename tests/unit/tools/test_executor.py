"""
Tests for ToolExecutor - the per-call error boundary

Test Categories:
- Successful calls
- Error results (unknown tool, executor errors, unexpected exceptions)
- Timeout handling
- Concurrency (independent calls, bounded concurrency)
- Correlation IDs
"""

import asyncio
import time
from typing import Any

import pytest
from structlog.testing import capture_logs

from easymcp.core.config import Settings
from easymcp.core.exceptions import ErrorCode, ResponseError
from easymcp.models.catalog import ToolType
from easymcp.models.domain import ContentKind, RegisteredTool, StructuredContent, ToolSchema
from easymcp.observability.logging import get_correlation_id
from easymcp.tools.executor import DEFAULT_TIMEOUT, ToolExecutor
from easymcp.tools.registry import ToolRegistry


# =============================================================================
# Fixtures
# =============================================================================


def make_registry(**handlers) -> ToolRegistry:
    registry = ToolRegistry()
    for name, handler in handlers.items():
        registry.register(
            RegisteredTool(
                definition=ToolSchema(name=name, input_schema={"type": "object"}),
                kind=ToolType.HTTP,
                handler=handler,
            )
        )
    registry.freeze()
    return registry


async def echo(arguments: dict[str, Any]) -> StructuredContent:
    return StructuredContent.from_json_value(arguments)


async def slow(arguments: dict[str, Any]) -> StructuredContent:
    await asyncio.sleep(10)
    return StructuredContent.from_text("late")


async def rejected(arguments: dict[str, Any]) -> StructuredContent:
    raise ResponseError("Error while executing a command: nope", status_code=2, body="nope")


async def crashing(arguments: dict[str, Any]) -> StructuredContent:
    raise ValueError("unexpected")


async def correlation(arguments: dict[str, Any]) -> StructuredContent:
    return StructuredContent.from_text(get_correlation_id() or "")


# =============================================================================
# Construction
# =============================================================================


class TestToolExecutorClass:
    """Tests for ToolExecutor construction."""

    def test_default_timeout(self) -> None:
        """The default per-call timeout applies."""
        executor = ToolExecutor(registry=make_registry())

        assert executor.timeout == DEFAULT_TIMEOUT
        assert executor.max_concurrency is None

    def test_zero_timeout_disables_limit(self) -> None:
        """A timeout of 0 means no limit."""
        executor = ToolExecutor(registry=make_registry(), timeout=0)

        assert executor.timeout is None

    def test_from_settings(self) -> None:
        """Timeout and concurrency come from Settings."""
        settings = Settings(call_timeout_seconds=5, max_concurrent_calls=2)

        executor = ToolExecutor.from_settings(make_registry(), settings)

        assert executor.timeout == 5
        assert executor.max_concurrency == 2


# =============================================================================
# Results
# =============================================================================


class TestExecute:
    """Tests for execute() results."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        """A successful call carries the handler's content."""
        executor = ToolExecutor(registry=make_registry(echo=echo))

        result = await executor.execute("echo", {"x": 1})

        assert result.is_error is False
        assert result.tool_name == "echo"
        assert result.content.kind is ContentKind.JSON
        assert result.content.value == {"x": 1}

    @pytest.mark.asyncio
    async def test_missing_arguments_default_to_empty(self) -> None:
        """No arguments means an empty input object."""
        executor = ToolExecutor(registry=make_registry(echo=echo))

        result = await executor.execute("echo")

        assert result.content.value == {}

    @pytest.mark.asyncio
    async def test_unknown_tool(self) -> None:
        """Calling an unregistered name is an error result, not an exception."""
        executor = ToolExecutor(registry=make_registry())

        result = await executor.execute("missing", {})

        assert result.is_error is True
        assert result.error_code == ErrorCode.TOOL_NOT_FOUND.value
        assert "missing" in result.error

    @pytest.mark.asyncio
    async def test_executor_error_keeps_code_and_message(self) -> None:
        """Executor exceptions map to their error code and message."""
        executor = ToolExecutor(registry=make_registry(rejected=rejected))

        result = await executor.execute("rejected", {})

        assert result.is_error is True
        assert result.error_code == "RESPONSE_ERROR"
        assert result.error == "Error while executing a command: nope"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_internal_error(self) -> None:
        """Anything else becomes INTERNAL_ERROR and is logged."""
        executor = ToolExecutor(registry=make_registry(crashing=crashing))

        with capture_logs() as logs:
            result = await executor.execute("crashing", {})

        assert result.error_code == ErrorCode.INTERNAL_ERROR.value
        assert "unexpected" in result.error
        assert any(entry["event"] == "tool call crashed" for entry in logs)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """A call exceeding the timeout is a TIMEOUT error result."""
        executor = ToolExecutor(registry=make_registry(slow=slow), timeout=0.1)

        result = await executor.execute("slow", {})

        assert result.is_error is True
        assert result.error_code == ErrorCode.TIMEOUT.value
        assert "0.1" in result.error

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_next_call(self) -> None:
        """A failed call leaves the executor usable."""
        executor = ToolExecutor(registry=make_registry(crashing=crashing, echo=echo))

        await executor.execute("crashing", {})
        result = await executor.execute("echo", {"ok": True})

        assert result.is_error is False


# =============================================================================
# Concurrency and Correlation
# =============================================================================


class TestConcurrency:
    """Tests for concurrent calls."""

    @pytest.mark.asyncio
    async def test_slow_call_does_not_block_fast_call(self) -> None:
        """A fast call completes while a slow one is still running."""
        executor = ToolExecutor(registry=make_registry(slow=slow, echo=echo))

        slow_task = asyncio.create_task(executor.execute("slow", {}))
        fast = await asyncio.wait_for(executor.execute("echo", {"n": 1}), timeout=2)

        assert fast.is_error is False
        assert not slow_task.done()
        slow_task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await slow_task

    @pytest.mark.asyncio
    async def test_max_concurrency_bounds_running_calls(self) -> None:
        """With max_concurrency=1 calls run one after another."""
        running = 0
        peak = 0

        async def tracked(arguments: dict[str, Any]) -> StructuredContent:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.05)
            running -= 1
            return StructuredContent.from_text("done")

        executor = ToolExecutor(registry=make_registry(tracked=tracked), max_concurrency=1)

        results = await asyncio.gather(*(executor.execute("tracked", {}) for _ in range(3)))

        assert peak == 1
        assert all(not result.is_error for result in results)

    @pytest.mark.asyncio
    async def test_calls_run_in_parallel_without_bound(self) -> None:
        """Unbounded calls overlap."""
        executor = ToolExecutor(registry=make_registry(nap=_nap))

        started = time.perf_counter()
        await asyncio.gather(*(executor.execute("nap", {}) for _ in range(5)))

        assert time.perf_counter() - started < 1.0


async def _nap(arguments: dict[str, Any]) -> StructuredContent:
    await asyncio.sleep(0.3)
    return StructuredContent.from_text("rested")


class TestCorrelation:
    """Tests for per-call correlation IDs."""

    @pytest.mark.asyncio
    async def test_each_call_has_its_own_id(self) -> None:
        """Handlers see the call id; ids differ between calls."""
        executor = ToolExecutor(registry=make_registry(correlation=correlation))

        first, second = await asyncio.gather(
            executor.execute("correlation", {}),
            executor.execute("correlation", {}),
        )

        assert first.content.value == first.call_id
        assert second.content.value == second.call_id
        assert first.call_id != second.call_id

    @pytest.mark.asyncio
    async def test_id_cleared_after_call(self) -> None:
        """The correlation id does not leak out of the call."""
        executor = ToolExecutor(registry=make_registry(echo=echo))

        await executor.execute("echo", {})

        assert get_correlation_id() is None
