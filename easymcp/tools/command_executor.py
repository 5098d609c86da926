"""
Command Executor

Renders a command tool's templates against one call input, runs the
program as a child process and normalizes its output into
StructuredContent.

Per call:
1. Render command, each args_<i> slot in index order, and stdin if declared.
2. Spawn the child with stdout and stderr captured. Standard input is a pipe
   only when a stdin slot exists; otherwise it is /dev/null.
3. Write the rendered stdin payload while draining stdout and stderr, close
   it and wait for the exit status. A child that closes its stdin before the
   payload is written is a TransportError.
4. A non-zero exit becomes ResponseError carrying stderr.
5. stdout that parses as JSON is returned as a JSON value, anything else as
   text.

The program is executed directly, never through a shell, so rendered values
cannot inject extra shell syntax.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Optional

from easymcp.core.exceptions import ResponseError, TransportError
from easymcp.models.catalog import CommandMetadata
from easymcp.models.domain import StructuredContent
from easymcp.tools.template import (
    COMMAND_TEMPLATE_NAME,
    STDIN_TEMPLATE_NAME,
    CompiledTemplateSet,
    args_template_name,
    make_call_context,
)

logger = logging.getLogger(__name__)


class CommandExecutor:
    """
    Executes one command tool.

    Attributes:
        templates: Compiled command/args_<i>/stdin slots.
        arg_count: Number of declared args templates.

    Example:
        >>> executor = CommandExecutor.from_metadata(0, metadata)
        >>> content = await executor({"msg": "hi"})
    """

    def __init__(self, templates: CompiledTemplateSet, arg_count: int) -> None:
        self.templates = templates
        self.arg_count = arg_count

    @classmethod
    def from_metadata(cls, tool_index: int, metadata: CommandMetadata) -> "CommandExecutor":
        """
        Compile a command tool's templates.

        Raises:
            TemplateError: If any slot fails to compile.
        """
        args = metadata.args or []
        sources = [(COMMAND_TEMPLATE_NAME, metadata.command)]
        if metadata.stdin is not None:
            sources.append((STDIN_TEMPLATE_NAME, metadata.stdin))
        sources.extend((args_template_name(i), arg) for i, arg in enumerate(args))

        templates = CompiledTemplateSet.compile(sources, tool_index=tool_index)
        return cls(templates, len(args))

    @property
    def has_stdin(self) -> bool:
        return STDIN_TEMPLATE_NAME in self.templates

    async def __call__(self, arguments: Mapping[str, Any]) -> StructuredContent:
        return await self.execute(arguments)

    def render_invocation(
        self, arguments: Mapping[str, Any]
    ) -> tuple[str, list[str], Optional[str]]:
        """
        Render program, argument vector and stdin payload.

        Raises:
            RenderError: If any slot fails to render.
        """
        context = make_call_context(arguments)
        command = self.templates.render(COMMAND_TEMPLATE_NAME, context)
        args = [
            self.templates.render(args_template_name(i), context)
            for i in range(self.arg_count)
        ]
        stdin = None
        if self.has_stdin:
            stdin = self.templates.render(STDIN_TEMPLATE_NAME, context)
        return command, args, stdin

    async def execute(self, arguments: Mapping[str, Any]) -> StructuredContent:
        """
        Run one call.

        Raises:
            RenderError, TransportError, ResponseError
        """
        command, args, stdin = self.render_invocation(arguments)

        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TransportError(
                f"Error while spawning a process: {e}", target=command
            ) from e

        logger.debug(f"Spawned {command} with {len(args)} args (pid {process.pid})")

        payload = stdin.encode("utf-8") if stdin is not None else None
        try:
            stdout_bytes, stderr_bytes = await _communicate(process, payload)
        except asyncio.CancelledError:
            await _terminate(process)
            raise
        except (BrokenPipeError, ConnectionResetError) as e:
            await _terminate(process)
            raise TransportError(f"Error while writing stdin: {e}", target=command) from e
        except OSError as e:
            await _terminate(process)
            raise TransportError(
                f"Error while reading output of {command}: {e}", target=command
            ) from e

        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        if process.returncode != 0:
            raise ResponseError(
                f"Error while executing a command: {stderr}",
                status_code=process.returncode,
                body=stderr,
            )

        try:
            return StructuredContent.from_json_value(json.loads(stdout))
        except ValueError:
            return StructuredContent.from_text(stdout)


async def _write_stdin(stream: asyncio.StreamWriter, payload: bytes) -> None:
    try:
        stream.write(payload)
        await stream.drain()
    finally:
        stream.close()


async def _communicate(
    process: asyncio.subprocess.Process, payload: Optional[bytes]
) -> tuple[bytes, bytes]:
    """
    Feed stdin while draining stdout and stderr, then wait for exit.

    Unlike Process.communicate(), a child that closes its stdin before the
    payload is written surfaces as BrokenPipeError or ConnectionResetError.
    """
    reads = asyncio.gather(process.stdout.read(), process.stderr.read())
    try:
        if payload is not None:
            await _write_stdin(process.stdin, payload)
        stdout, stderr = await reads
        await process.wait()
    except BaseException:
        reads.cancel()
        raise
    return stdout, stderr


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill a child that is still running and reap it."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
