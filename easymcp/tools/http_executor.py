"""
HTTP Executor

Renders an HTTP tool's templates against one call input, sends the
request through the shared httpx client and normalizes the response into
StructuredContent.

Per call:
1. Render headers, url and (if declared) body. A render failure aborts the
   call before anything is sent.
2. Send. Connection, DNS and TLS failures become TransportError.
3. Read the body as text. A read failure is only an error when the server
   announced a non-empty body.
4. application/json bodies are parsed (ParseError on failure); anything else
   is kept as a string.
5. A status outside 200-299 becomes ResponseError carrying status and body.

Pattern: Service Proxy (one templated request per call)
"""

import json
import logging
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from easymcp.core.exceptions import ParseError, RenderError, ResponseError, TransportError
from easymcp.models.catalog import HttpMetadata, HttpMethod
from easymcp.models.domain import StructuredContent, to_json_text
from easymcp.tools.template import (
    BODY_TEMPLATE_NAME,
    URL_TEMPLATE_NAME,
    CompiledTemplateSet,
    header_template_name,
    make_call_context,
)

logger = logging.getLogger(__name__)


def _content_length(response: httpx.Response) -> int:
    try:
        return int(response.headers.get("content-length", "0"))
    except ValueError:
        return 0


class HttpExecutor:
    """
    Executes one HTTP tool.

    The executor owns the tool's compiled templates and borrows the shared
    client; it keeps no per-call state, so concurrent calls are safe.

    Attributes:
        templates: Compiled url/body/header_<name> slots.
        method: HTTP method of every request.
        header_names: Declared header names, in catalog order.
        client: Shared httpx.AsyncClient.

    Example:
        >>> executor = HttpExecutor.from_metadata(0, metadata, client)
        >>> content = await executor({"id": 42})
    """

    def __init__(
        self,
        templates: CompiledTemplateSet,
        method: HttpMethod,
        header_names: tuple[str, ...],
        client: httpx.AsyncClient,
    ) -> None:
        self.templates = templates
        self.method = method
        self.header_names = header_names
        self.client = client

    @classmethod
    def from_metadata(
        cls, tool_index: int, metadata: HttpMetadata, client: httpx.AsyncClient
    ) -> "HttpExecutor":
        """
        Compile an HTTP tool's templates.

        Raises:
            TemplateError: If any slot fails to compile.
        """
        headers = metadata.headers or {}
        sources = [(URL_TEMPLATE_NAME, metadata.url)]
        if metadata.body is not None:
            sources.append((BODY_TEMPLATE_NAME, metadata.body))
        sources.extend((header_template_name(name), value) for name, value in headers.items())

        templates = CompiledTemplateSet.compile(sources, tool_index=tool_index)
        return cls(templates, metadata.method, tuple(headers), client)

    @property
    def has_body(self) -> bool:
        return BODY_TEMPLATE_NAME in self.templates

    async def __call__(self, arguments: Mapping[str, Any]) -> StructuredContent:
        return await self.execute(arguments)

    def render_request(self, arguments: Mapping[str, Any]) -> httpx.Request:
        """
        Render every slot and build the outgoing request without sending it.

        Raises:
            RenderError: If a slot fails to render or the URL is unusable.
        """
        context = make_call_context(arguments)

        headers = {
            name: self.templates.render(header_template_name(name), context)
            for name in self.header_names
        }
        url = self.templates.render(URL_TEMPLATE_NAME, context)
        body: Optional[str] = None
        if self.has_body:
            body = self.templates.render(BODY_TEMPLATE_NAME, context)

        try:
            return self.client.build_request(
                self.method.value,
                url,
                headers=headers,
                content=body.encode("utf-8") if body is not None else None,
            )
        except httpx.InvalidURL as e:
            raise RenderError(f"rendered value {url!r} is not a valid URL: {e}", URL_TEMPLATE_NAME) from e
        except ValueError as e:
            # httpx rejects header values it cannot encode
            raise RenderError(f"rendered headers are not valid: {e}", "headers") from e

    async def execute(self, arguments: Mapping[str, Any]) -> StructuredContent:
        """
        Run one call.

        Raises:
            RenderError, TransportError, ParseError, ResponseError
        """
        request = self.render_request(arguments)
        url = str(request.url)

        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(
                f"Error while sending a request to {url}: {e}", target=url
            ) from e

        try:
            status_code = response.status_code
            content_type = response.headers.get("content-type", "")
            content_length = _content_length(response)
            try:
                await response.aread()
                text = response.text
            except httpx.HTTPError as e:
                if content_length > 0:
                    raise TransportError(
                        f"Error while reading content from {url}: {e}", target=url
                    ) from e
                text = ""
        finally:
            await response.aclose()

        logger.debug(f"{self.method.value} {url} -> {status_code} ({content_type or 'no content type'})")

        value: Any
        if "application/json" in content_type:
            try:
                value = json.loads(text)
            except ValueError as e:
                raise ParseError(
                    f"Error while parsing json content from {url}: {e}", target=url
                ) from e
        else:
            value = text

        if not 200 <= status_code <= 299:
            body_text = value if isinstance(value, str) else to_json_text(value)
            raise ResponseError(
                f"Error while sending a request to {url}, got status code : {status_code}, "
                f"response body : {body_text}",
                status_code=status_code,
                body=value,
            )

        return StructuredContent.from_json_value(value)
