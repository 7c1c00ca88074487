"""BrowserTools — typed wrappers over ``tools/call`` for MCP-Chrome hosts.

Content items returned by the host are decoded by probing a fixed set of
field names in a fixed order. The host's naming is not consistent across
versions, so the probing order below is part of the contract:

* text mode: ``text`` (or the item itself when it is a plain string);
* HTML mode: ``html``, then ``htmlContent``, then ``text``. A ``text`` value
  that looks like a JSON object is parsed once and its ``htmlContent``
  returned; otherwise the text is returned unchanged;
* raw responses (network requests): ``text``, then ``data``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from browser_relay.protocols.errors import (
    BrowserToolError,
    DecodeError,
    ProtocolError,
    ToolExecutionError,
)
from browser_relay.protocols.mcp.client import MCPClient
from browser_relay.protocols.mcp.models import ToolResult


@dataclass(frozen=True)
class ToolNames:
    """Host-specific tool names."""

    get_windows_and_tabs: str
    navigate: str
    get_web_content: str
    network_request: str
    network_capture_start: str
    network_capture_stop: str
    fill_or_select: str
    click_element: str
    keyboard: str

    def required(self) -> list[str]:
        """Tools a host must expose for browser-relayed fetching to work."""
        return [
            self.navigate,
            self.get_web_content,
            self.network_request,
            self.fill_or_select,
            self.click_element,
        ]


CHROME_TOOLS = ToolNames(
    get_windows_and_tabs="get_windows_and_tabs",
    navigate="chrome_navigate",
    get_web_content="chrome_get_web_content",
    network_request="chrome_network_request",
    network_capture_start="chrome_network_capture_start",
    network_capture_stop="chrome_network_capture_stop",
    fill_or_select="chrome_fill_or_select",
    click_element="chrome_click_element",
    keyboard="chrome_keyboard",
)


@dataclass
class NetworkRequestOptions:
    """A request performed by the browser, with its cookies and session."""

    url: str
    method: str = ""
    headers: dict[str, str] | None = None
    body: Any = None

    def to_arguments(self) -> dict[str, Any]:
        args: dict[str, Any] = {"url": self.url}
        if self.method:
            args["method"] = self.method
        if self.headers is not None:
            args["headers"] = self.headers
        if self.body is not None:
            args["body"] = self.body
        return args


# ---------------------------------------------------------------------------
# Content probing
# ---------------------------------------------------------------------------


def _first_item(result: ToolResult) -> Any:
    if not result.content:
        msg = "no content returned"
        raise DecodeError(msg)
    return result.content[0]


def _describe(item: Any) -> str:
    if isinstance(item, dict):
        return f"got keys: {sorted(item)}"
    return f"got {type(item).__name__}"


def extract_text(result: ToolResult) -> str:
    """Return the text of the first content item."""
    item = _first_item(result)
    if isinstance(item, str):
        return item
    if isinstance(item, dict) and isinstance(item.get("text"), str):
        return item["text"]
    msg = f"unexpected content format, {_describe(item)}"
    raise DecodeError(msg)


def extract_html(result: ToolResult) -> str:
    """Return the HTML of the first content item (see module docstring)."""
    item = _first_item(result)
    if isinstance(item, str):
        return _unwrap_html(item)
    if not isinstance(item, dict):
        msg = f"unexpected content format, {_describe(item)}"
        raise DecodeError(msg)

    for key in ("html", "htmlContent"):
        value = item.get(key)
        if isinstance(value, str):
            return value
    text = item.get("text")
    if isinstance(text, str):
        return _unwrap_html(text)

    msg = f"unexpected content format, {_describe(item)}"
    raise DecodeError(msg)


def _unwrap_html(text: str) -> str:
    if text.startswith("{"):
        try:
            nested = json.loads(text)
        except ValueError:
            return text
        if isinstance(nested, dict) and isinstance(nested.get("htmlContent"), str):
            return nested["htmlContent"]
    return text


def extract_response_body(result: ToolResult) -> str:
    """Return the body of a relayed network response (``text`` then ``data``)."""
    item = result.first_item()
    if isinstance(item, dict):
        for key in ("text", "data"):
            value = item.get(key)
            if isinstance(value, str):
                return value
    msg = "failed to extract response from browser"
    raise DecodeError(msg)


# ---------------------------------------------------------------------------
# Tool wrappers
# ---------------------------------------------------------------------------


class BrowserTools:
    """Domain operations on a browser exposed through an MCP host.

    Every failure is re-raised as :class:`BrowserToolError` naming the
    operation and its URL or selector. Nothing is retried here.
    """

    def __init__(
        self,
        client: MCPClient,
        tool_names: ToolNames = CHROME_TOOLS,
        *,
        timeout: float | None = None,
    ) -> None:
        self.client = client
        self.tool_names = tool_names
        self.timeout = timeout

    async def navigate(self, url: str) -> None:
        await self.navigate_with_result(url)

    async def navigate_with_result(self, url: str) -> ToolResult:
        """Navigate and return the raw result (it may embed a tab id)."""
        return await self._invoke("navigate", url, self.tool_names.navigate, {"url": url})

    async def get_web_content(self, url: str) -> str:
        """Return the visible text of the page at *url*."""
        result = await self._invoke(
            "get_web_content", url, self.tool_names.get_web_content,
            {"url": url, "textContent": True},
        )
        return self._decode("get_web_content", url, extract_text, result)

    async def get_web_content_html(self, url: str) -> str:
        """Return the HTML of the page at *url*."""
        result = await self._invoke(
            "get_web_content_html", url, self.tool_names.get_web_content,
            {"url": url, "htmlContent": True},
        )
        return self._decode("get_web_content_html", url, extract_html, result)

    async def network_request(self, options: NetworkRequestOptions) -> ToolResult:
        """Perform a request as the browser."""
        return await self._invoke(
            "network_request", options.url, self.tool_names.network_request,
            options.to_arguments(),
        )

    async def fill(self, selector: str, value: str) -> None:
        await self._invoke(
            "fill", selector, self.tool_names.fill_or_select,
            {"selector": selector, "value": value},
        )

    async def click(self, selector: str) -> None:
        await self._invoke("click", selector, self.tool_names.click_element, {"selector": selector})

    async def keyboard(self, keys: str) -> None:
        await self._invoke("keyboard", keys, self.tool_names.keyboard, {"keys": keys})

    async def get_windows_and_tabs(self) -> ToolResult:
        return await self._invoke("get_windows_and_tabs", "", self.tool_names.get_windows_and_tabs, {})

    async def network_capture_start(self, url: str | None = None) -> ToolResult:
        args = {"url": url} if url else {}
        return await self._invoke(
            "network_capture_start", url or "", self.tool_names.network_capture_start, args
        )

    async def network_capture_stop(self) -> ToolResult:
        return await self._invoke("network_capture_stop", "", self.tool_names.network_capture_stop, {})

    async def _invoke(
        self, operation: str, target: str, tool: str, arguments: dict[str, Any]
    ) -> ToolResult:
        try:
            result = await self.client.call_tool(tool, arguments, timeout=self.timeout)
        except ProtocolError as exc:
            raise BrowserToolError(operation, target, exc) from exc
        if result.is_error:
            cause = ToolExecutionError(tool, result.error_message())
            raise BrowserToolError(operation, target, cause) from cause
        return result

    @staticmethod
    def _decode(operation: str, target: str, extractor: Any, result: ToolResult) -> str:
        try:
            return extractor(result)  # type: ignore[no-any-return]
        except DecodeError as exc:
            raise BrowserToolError(operation, target, exc) from exc
