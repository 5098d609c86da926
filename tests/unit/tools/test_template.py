"""
Tests for the Template Compiler

Test Categories:
- Sanitization pass (literal braces vs placeholders)
- Formatters (default, url_encode)
- Compilation errors (TemplateError)
- Rendering against call input (RenderError on missing fields)
- CompiledTemplateSet slot handling
"""

import pytest

from easymcp.core.exceptions import ErrorCode, RenderError, TemplateError
from easymcp.tools.template import (
    CompiledTemplateSet,
    compile_template,
    default_formatter,
    make_call_context,
    sanitize_template_text,
    url_encode_formatter,
)


def render(text: str, **arguments) -> str:
    return compile_template("body", text).render(make_call_context(arguments))


# =============================================================================
# Sanitization Pass
# =============================================================================


class TestSanitizeTemplateText:
    """Tests for escaping braces that do not open a placeholder."""

    def test_literal_brace_is_escaped(self) -> None:
        """A JSON object brace is escaped."""
        assert sanitize_template_text('{"a": 1}') == '\\{"a": 1}'

    def test_placeholder_is_kept(self) -> None:
        """A placeholder passes through unchanged."""
        assert sanitize_template_text("{input.id}") == "{input.id}"

    def test_placeholder_with_spaces_and_formatter_is_kept(self) -> None:
        """Whitespace and a formatter suffix are part of the placeholder form."""
        text = "{ input.q | url_encode }"
        assert sanitize_template_text(text) == text

    def test_mixed_text(self) -> None:
        """Only the non-placeholder brace is escaped."""
        assert sanitize_template_text('{"id": {input.id}}') == '\\{"id": {input.id}}'

    def test_closing_braces_untouched(self) -> None:
        """Closing braces are never escaped."""
        assert sanitize_template_text("}}") == "}}"

    def test_non_input_reference_is_escaped(self) -> None:
        """A brace before a non-input name is treated as literal text."""
        assert sanitize_template_text("{other.id}") == "\\{other.id}"

    def test_dotted_path_and_any_formatter_name_are_kept(self) -> None:
        """Dotted paths and any word after `|` count as placeholders."""
        assert sanitize_template_text("{input.a.b}") == "{input.a.b}"
        assert sanitize_template_text("{input.a | foo}") == "{input.a | foo}"
        assert sanitize_template_text("{other | foo}") == "\\{other | foo}"


# =============================================================================
# Formatters
# =============================================================================


class TestFormatters:
    """Tests for the default and url_encode formatters."""

    def test_default_strips_string_quotes(self) -> None:
        """Strings render without their JSON quotes."""
        assert default_formatter("x") == "x"

    def test_default_keeps_inner_escapes(self) -> None:
        """Only the surrounding quote pair is removed; escapes stay."""
        assert default_formatter('say "hi"') == 'say \\"hi\\"'

    @pytest.mark.parametrize(
        "value,expected",
        [
            (42, "42"),
            (1.5, "1.5"),
            (True, "true"),
            (None, "null"),
            ([1, 2], "[1,2]"),
            ({"a": "b"}, '{"a":"b"}'),
        ],
    )
    def test_default_renders_json_text(self, value, expected) -> None:
        """Non-string values render as compact JSON."""
        assert default_formatter(value) == expected

    def test_default_keeps_non_ascii(self) -> None:
        """Non-ASCII characters are not escaped."""
        assert default_formatter("héllo") == "héllo"

    def test_url_encode_percent_encodes_json_text(self) -> None:
        """url_encode encodes the JSON text, quotes included."""
        assert url_encode_formatter("a b/c") == "%22a%20b%2Fc%22"

    def test_url_encode_number(self) -> None:
        """Numbers have nothing to encode."""
        assert url_encode_formatter(7) == "7"


# =============================================================================
# Rendering
# =============================================================================


class TestRender:
    """Tests for rendering compiled templates against call input."""

    def test_single_field_renders_unquoted(self) -> None:
        """{input.field} with a string value yields the bare string."""
        assert render("{input.field}", field="x") == "x"

    def test_url_with_integer(self) -> None:
        """A numeric field inside a URL path."""
        rendered = compile_template("url", "https://api.example.com/items/{input.id}").render(
            make_call_context({"id": 42})
        )
        assert rendered == "https://api.example.com/items/42"

    def test_json_body_keeps_literal_braces(self) -> None:
        """Literal JSON around placeholders survives rendering."""
        text = '{"title": "{input.title}", "tags": {input.tags}}'
        assert render(text, title="hi", tags=["a", "b"]) == '{"title": "hi", "tags": ["a","b"]}'

    def test_object_value_renders_as_json(self) -> None:
        """Object values render as compact JSON text."""
        assert render("{input.obj}", obj={"a": [1, 2]}) == '{"a":[1,2]}'

    def test_url_encode_formatter_selected(self) -> None:
        """The | url_encode suffix selects the url_encode formatter."""
        text = "https://x/search?q={input.q | url_encode}"
        assert render(text, q="a&b") == "https://x/search?q=%22a%26b%22"

    def test_nested_field(self) -> None:
        """Dotted paths reach into nested objects."""
        assert render("{input.user.name}", user={"name": "ada"}) == "ada"

    def test_list_index(self) -> None:
        """Numeric path parts index into arrays."""
        assert render("{input.items.1}", items=["a", "b"]) == "b"

    def test_same_field_twice(self) -> None:
        """A field may be referenced more than once."""
        assert render("{input.a}-{input.a}", a=1) == "1-1"

    def test_text_without_placeholders(self) -> None:
        """Plain text renders unchanged."""
        assert render("plain text") == "plain text"

    def test_missing_field_raises_render_error(self) -> None:
        """A field absent from the call input is a RenderError naming it."""
        template = compile_template("url", "https://x/{input.id}")

        with pytest.raises(RenderError) as exc_info:
            template.render(make_call_context({}))

        assert exc_info.value.error_code == ErrorCode.RENDER_ERROR
        assert exc_info.value.slot == "url"
        assert "input.id" in exc_info.value.message
        assert exc_info.value.message.startswith("Error while rendering url template")

    def test_extra_input_fields_are_ignored(self) -> None:
        """Fields the template does not reference are ignored."""
        assert render("{input.a}", a="x", b="y") == "x"

    def test_fields_lists_references(self) -> None:
        """CompiledTemplate.fields reports referenced paths in order."""
        template = compile_template("body", "{input.b} {input.a | url_encode}")
        assert template.fields == ("input.b", "input.a")

    def test_source_is_kept(self) -> None:
        """The raw source text is kept next to the compiled form."""
        template = compile_template("body", '{"a": {input.a}}')
        assert template.source == '{"a": {input.a}}'


# =============================================================================
# Compilation Errors
# =============================================================================


class TestCompileErrors:
    """Tests for template text that must not compile."""

    def test_unknown_formatter(self) -> None:
        """An unknown formatter name is a TemplateError."""
        with pytest.raises(TemplateError) as exc_info:
            compile_template("url", "{input.q | shout}", tool_index=3)

        assert exc_info.value.error_code == ErrorCode.TEMPLATE_ERROR
        assert exc_info.value.tool_index == 3
        assert "tool index 3" in exc_info.value.message
        assert "shout" in exc_info.value.message

    def test_template_error_names_slot(self) -> None:
        """The message names the offending slot."""
        with pytest.raises(TemplateError) as exc_info:
            compile_template("header_Authorization", "{input.t | nope}")

        assert exc_info.value.slot == "header_Authorization"
        assert "header_Authorization template" in exc_info.value.message

    def test_placeholder_shaped_literal_with_unknown_formatter(self) -> None:
        """Body text shaped like `{input.x | word}` is a placeholder, not a literal."""
        with pytest.raises(TemplateError) as exc_info:
            compile_template("body", '{"note": "{input.a | foo}"}')

        assert "unknown formatter 'foo'" in exc_info.value.message

    def test_escaped_placeholder_shape_renders_literally(self) -> None:
        """A leading backslash keeps the placeholder-shaped text as literal text."""
        template = compile_template("body", "see \\{input.a | foo}")

        assert template.render({"input": {}}) == "see {input.a | foo}"

    def test_dotted_path_shaped_literal_is_a_placeholder(self) -> None:
        """`{input.a.b}` reaches into the call input rather than staying literal."""
        template = compile_template("body", "value={input.a.b}")

        assert template.render({"input": {"a": {"b": 5}}}) == "value=5"
        with pytest.raises(RenderError):
            template.render({"input": {"a": 1}})


# =============================================================================
# CompiledTemplateSet
# =============================================================================


class TestCompiledTemplateSet:
    """Tests for the per-tool template set."""

    def test_compile_and_render_slots(self) -> None:
        """Each slot renders independently."""
        templates = CompiledTemplateSet.compile(
            [("url", "https://x/{input.id}"), ("body", '{"n": {input.n}}')]
        )
        context = make_call_context({"id": 1, "n": 2})

        assert templates.render("url", context) == "https://x/1"
        assert templates.render("body", context) == '{"n": 2}'

    def test_membership_and_len(self) -> None:
        """Slots are addressable by name."""
        templates = CompiledTemplateSet.compile([("command", "ls"), ("args_0", "-l")])

        assert "command" in templates
        assert "stdin" not in templates
        assert len(templates) == 2
        assert list(templates) == ["command", "args_0"]

    def test_duplicate_slot_rejected(self) -> None:
        """A slot name may appear only once."""
        with pytest.raises(TemplateError):
            CompiledTemplateSet.compile([("url", "a"), ("url", "b")], tool_index=0)

    def test_render_unknown_slot(self) -> None:
        """Rendering a slot that was never compiled is a RenderError."""
        templates = CompiledTemplateSet.compile([("url", "https://x")])

        with pytest.raises(RenderError):
            templates.render("body", make_call_context({}))

    def test_set_is_reusable(self) -> None:
        """The same set renders different inputs without carrying state over."""
        templates = CompiledTemplateSet.compile([("url", "https://x/{input.id}")])

        first = templates.render("url", make_call_context({"id": "a"}))
        second = templates.render("url", make_call_context({"id": "b"}))

        assert (first, second) == ("https://x/a", "https://x/b")
