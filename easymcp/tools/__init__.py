"""
Tools Package - template compilation, backend executors and dispatch

This package turns catalog tool definitions into callable tools:
- template: compiles url/body/header/command/args/stdin template text
- http_executor / command_executor: render and perform one call
- registry: builds the name-keyed dispatch table
- executor: per-call error boundary used by the protocol server
"""

from easymcp.tools.command_executor import CommandExecutor
from easymcp.tools.executor import ToolExecutor
from easymcp.tools.http_executor import HttpExecutor
from easymcp.tools.registry import (
    ToolNotFoundError,
    ToolRegistry,
    build_registry,
)
from easymcp.tools.template import (
    CompiledTemplate,
    CompiledTemplateSet,
    compile_template,
    sanitize_template_text,
)

__all__ = [
    "CommandExecutor",
    "CompiledTemplate",
    "CompiledTemplateSet",
    "HttpExecutor",
    "ToolExecutor",
    "ToolNotFoundError",
    "ToolRegistry",
    "build_registry",
    "compile_template",
    "sanitize_template_text",
]
