"""
Template Compiler - request synthesis templates

This module turns the dynamic text fields of a tool definition (url, body,
headers, command, args, stdin) into compiled templates that are rendered
once per call against the caller's input.

Syntax:
- `{input.field}` is replaced by the field's value (default formatter);
  `{input.user.name}` and `{input.items.0}` reach into objects and arrays.
- `{input.field | url_encode}` selects the URL-encode formatter.
- `\\{` is a literal brace.

Raw text goes through a sanitization pass before compiling: every `{` that
does not open one of the placeholder forms above is escaped, so literal JSON
in a body or command argument survives unchanged. Closing braces are never
escaped.

Call input is always addressed under the constant `input` key; the call
context is `{"input": <arguments>}`.

Pattern: Compile once, render many (templates are immutable after compile)
"""

import re
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any, Callable, NamedTuple, Optional, Union
from urllib.parse import quote

from easymcp.core.exceptions import RenderError, TemplateError
from easymcp.models.domain import to_json_text


INPUT_NAME = "input"

URL_TEMPLATE_NAME = "url"
BODY_TEMPLATE_NAME = "body"
COMMAND_TEMPLATE_NAME = "command"
STDIN_TEMPLATE_NAME = "stdin"


def header_template_name(header_name: str) -> str:
    return f"header_{header_name}"


def args_template_name(index: int) -> str:
    return f"args_{index}"


# =============================================================================
# Sanitization Pass
# =============================================================================

# Group 1: a supported placeholder, kept as is. Group 2: any other `{`.
_ESCAPE_BRACKET_RE = re.compile(r"(\{\s*input(?:\.\w+)+\s*(?:\|\s*\w+\s*)?\})|(\{)")


def sanitize_template_text(text: str) -> str:
    """
    Escape every `{` that does not open a supported placeholder.

    Example:
        >>> sanitize_template_text('{"id": {input.id}}')
        '\\\\{"id": {input.id}}'
    """
    return _ESCAPE_BRACKET_RE.sub(
        lambda m: "\\{" if m.group(2) is not None else m.group(0), text
    )


# =============================================================================
# Formatters
# =============================================================================


Formatter = Callable[[Any], str]


def default_formatter(value: Any) -> str:
    """JSON text of the value with one surrounding pair of quotes removed."""
    text = to_json_text(value)
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text


def url_encode_formatter(value: Any) -> str:
    """JSON text of the value, percent-encoded for use in a URL."""
    return quote(to_json_text(value), safe="")


FORMATTERS: Mapping[str, Formatter] = MappingProxyType(
    {
        "url_encode": url_encode_formatter,
    }
)


# =============================================================================
# CompiledTemplate
# =============================================================================


_TOKEN_RE = re.compile(r"\\\{|\{(?P<expr>[^{}]*)\}|\{")
_EXPR_RE = re.compile(r"\s*(?P<path>\w+(?:\.\w+)*)\s*(?:\|\s*(?P<formatter>\w+)\s*)?")


class _Expression(NamedTuple):
    path: tuple[str, ...]
    formatter: Formatter

    @property
    def dotted(self) -> str:
        return ".".join(self.path)


_Segment = Union[str, _Expression]


def _parse(slot: str, text: str, tool_index: Optional[int]) -> list[_Segment]:
    segments: list[_Segment] = []
    literal: list[str] = []
    position = 0

    for match in _TOKEN_RE.finditer(text):
        literal.append(text[position : match.start()])
        position = match.end()
        token = match.group(0)

        if token == "\\{":
            literal.append("{")
            continue
        if match.group("expr") is None:
            raise TemplateError(
                f"unescaped '{{' at offset {match.start()}", slot, tool_index
            )

        expr = _EXPR_RE.fullmatch(match.group("expr"))
        if expr is None:
            raise TemplateError(f"malformed expression {token!r}", slot, tool_index)
        path = tuple(expr.group("path").split("."))
        if path[0] != INPUT_NAME or len(path) < 2:
            raise TemplateError(
                f"expression {token!r} must reference {INPUT_NAME}.<field>",
                slot,
                tool_index,
            )
        formatter_name = expr.group("formatter")
        if formatter_name is None:
            formatter = default_formatter
        elif formatter_name in FORMATTERS:
            formatter = FORMATTERS[formatter_name]
        else:
            raise TemplateError(f"unknown formatter '{formatter_name}'", slot, tool_index)

        if literal:
            segments.append("".join(literal))
            literal = []
        segments.append(_Expression(path, formatter))

    literal.append(text[position:])
    tail = "".join(literal)
    if tail:
        segments.append(tail)
    return segments


def _lookup(context: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    value: Any = context
    for depth, part in enumerate(path):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            raise KeyError(".".join(path[: depth + 1]))
    return value


class CompiledTemplate:
    """
    One compiled template slot.

    Holds its source text next to the parsed segments; both are owned by
    the instance and never change after construction.
    """

    __slots__ = ("name", "source", "_segments")

    def __init__(self, name: str, source: str, segments: list[_Segment]) -> None:
        self.name = name
        self.source = source
        self._segments = tuple(segments)

    @property
    def fields(self) -> tuple[str, ...]:
        """Dotted paths referenced by the template, in order of appearance."""
        return tuple(s.dotted for s in self._segments if isinstance(s, _Expression))

    def render(self, context: Mapping[str, Any]) -> str:
        """
        Render against a call context.

        Raises:
            RenderError: If a referenced field is missing or cannot be formatted.
        """
        parts: list[str] = []
        for segment in self._segments:
            if isinstance(segment, str):
                parts.append(segment)
                continue
            try:
                value = _lookup(context, segment.path)
            except KeyError as e:
                raise RenderError(
                    f"field '{e.args[0]}' not found in call input", self.name
                ) from e
            try:
                parts.append(segment.formatter(value))
            except (TypeError, ValueError) as e:
                raise RenderError(
                    f"cannot format '{segment.dotted}': {e}", self.name
                ) from e
        return "".join(parts)

    def __repr__(self) -> str:
        return f"CompiledTemplate(name={self.name!r}, source={self.source!r})"


def compile_template(
    name: str, raw_text: str, tool_index: Optional[int] = None
) -> CompiledTemplate:
    """
    Sanitize and compile one template slot.

    Args:
        name: Slot name (url, body, header_<name>, command, args_<i>, stdin).
        raw_text: Template text as written in the catalog.
        tool_index: Catalog index of the owning tool, for error messages.

    Raises:
        TemplateError: If the text does not compile.
    """
    sanitized = sanitize_template_text(raw_text)
    return CompiledTemplate(name, raw_text, _parse(name, sanitized, tool_index))


def make_call_context(arguments: Mapping[str, Any]) -> Mapping[str, Any]:
    """Wrap call arguments under the constant input key."""
    return MappingProxyType({INPUT_NAME: arguments})


# =============================================================================
# CompiledTemplateSet
# =============================================================================


class CompiledTemplateSet:
    """
    All compiled templates of one tool, keyed by slot name.

    Built once at startup and read-only afterwards, so a single instance is
    shared by every concurrent call to the tool.

    Example:
        >>> templates = CompiledTemplateSet.compile([("url", "https://x/{input.id}")])
        >>> templates.render("url", make_call_context({"id": 42}))
        'https://x/42'
    """

    __slots__ = ("_templates",)

    def __init__(self, templates: Mapping[str, CompiledTemplate]) -> None:
        self._templates: Mapping[str, CompiledTemplate] = MappingProxyType(dict(templates))

    @classmethod
    def compile(
        cls,
        sources: Iterable[tuple[str, str]],
        tool_index: Optional[int] = None,
    ) -> "CompiledTemplateSet":
        """
        Compile (slot name, raw text) pairs into a set.

        Raises:
            TemplateError: If a slot name repeats or any text fails to compile.
        """
        compiled: dict[str, CompiledTemplate] = {}
        for name, raw_text in sources:
            if name in compiled:
                raise TemplateError("duplicate template slot", name, tool_index)
            compiled[name] = compile_template(name, raw_text, tool_index)
        return cls(compiled)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __iter__(self) -> Iterator[str]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, name: str) -> CompiledTemplate:
        return self._templates[name]

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        """
        Render one slot.

        Raises:
            RenderError: If the slot does not exist or fails to render.
        """
        template = self._templates.get(name)
        if template is None:
            raise RenderError("no such template", name)
        return template.render(context)
