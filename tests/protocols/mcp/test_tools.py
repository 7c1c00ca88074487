"""Tests for BrowserTools and the content probing contract."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from browser_relay.protocols.errors import (
    BrowserToolError,
    CorrelationTimeoutError,
    DecodeError,
    NotInitializedError,
    ToolExecutionError,
    TransportError,
)
from browser_relay.protocols.mcp.client import MCPClient
from browser_relay.protocols.mcp.models import ToolResult
from browser_relay.protocols.mcp.tools import (
    CHROME_TOOLS,
    BrowserTools,
    NetworkRequestOptions,
    extract_html,
    extract_response_body,
    extract_text,
)
from tests.fakes.hosts import fake_host_transport


def _tools_with_result(result: ToolResult | Exception) -> tuple[BrowserTools, MagicMock]:
    client = MagicMock(spec=MCPClient)
    if isinstance(result, Exception):
        client.call_tool = AsyncMock(side_effect=result)
    else:
        client.call_tool = AsyncMock(return_value=result)
    return BrowserTools(client), client


def _result(*items: object, is_error: bool = False) -> ToolResult:
    return ToolResult(content=list(items), is_error=is_error)


class TestExtractHtml:
    def test_nested_html_content_inside_text(self) -> None:
        result = _result({"text": '{"htmlContent":"<p>ok</p>"}'})
        assert extract_html(result) == "<p>ok</p>"

    def test_html_field_wins_without_nested_parse(self) -> None:
        result = _result({"html": "<b>direct</b>", "text": '{"htmlContent":"<p>nested</p>"}'})
        assert extract_html(result) == "<b>direct</b>"

    def test_html_content_field(self) -> None:
        assert extract_html(_result({"htmlContent": "<i>x</i>"})) == "<i>x</i>"

    def test_html_before_html_content(self) -> None:
        assert extract_html(_result({"htmlContent": "second", "html": "first"})) == "first"

    def test_text_json_without_html_content_is_returned_as_is(self) -> None:
        text = json.dumps({"textContent": "hello"})
        assert extract_html(_result({"text": text})) == text

    def test_text_that_is_not_json(self) -> None:
        assert extract_html(_result({"text": "{broken"})) == "{broken"
        assert extract_html(_result({"text": "<p>raw</p>"})) == "<p>raw</p>"

    def test_plain_string_item(self) -> None:
        assert extract_html(_result('{"htmlContent":"<p>s</p>"}')) == "<p>s</p>"

    def test_unknown_keys_raise_naming_them(self) -> None:
        with pytest.raises(DecodeError, match="image"):
            extract_html(_result({"type": "image", "image": "..."}))

    def test_empty_content_raises(self) -> None:
        with pytest.raises(DecodeError, match="no content"):
            extract_html(_result())


class TestExtractText:
    def test_text_field(self) -> None:
        assert extract_text(_result({"type": "text", "text": "Hello"})) == "Hello"

    def test_plain_string(self) -> None:
        assert extract_text(_result("Hello")) == "Hello"

    def test_missing_text_raises(self) -> None:
        with pytest.raises(DecodeError, match="unexpected content format"):
            extract_text(_result({"data": "x"}))


class TestExtractResponseBody:
    def test_text_then_data(self) -> None:
        assert extract_response_body(_result({"text": "t", "data": "d"})) == "t"
        assert extract_response_body(_result({"data": "d"})) == "d"

    def test_nothing_to_extract(self) -> None:
        with pytest.raises(DecodeError, match="failed to extract response from browser"):
            extract_response_body(_result({"html": "<p/>"}))
        with pytest.raises(DecodeError):
            extract_response_body(_result())


class TestBrowserTools:
    async def test_navigate_uses_chrome_tool(self) -> None:
        tools, client = _tools_with_result(_result({"text": "ok"}))
        await tools.navigate("https://example.test")
        client.call_tool.assert_awaited_once_with(
            "chrome_navigate", {"url": "https://example.test"}, timeout=None
        )

    async def test_navigate_with_result_surfaces_raw_result(self) -> None:
        raw = _result({"text": '{"tabId": 7}'})
        tools, _ = _tools_with_result(raw)
        assert await tools.navigate_with_result("https://example.test") is raw

    async def test_get_web_content_requests_text_mode(self) -> None:
        tools, client = _tools_with_result(_result({"text": "Page text"}))
        assert await tools.get_web_content("https://example.test") == "Page text"
        client.call_tool.assert_awaited_once_with(
            "chrome_get_web_content",
            {"url": "https://example.test", "textContent": True},
            timeout=None,
        )

    async def test_get_web_content_html_requests_html_mode(self) -> None:
        tools, client = _tools_with_result(_result({"text": '{"htmlContent":"<p>ok</p>"}'}))
        assert await tools.get_web_content_html("https://example.test") == "<p>ok</p>"
        args = client.call_tool.call_args.args[1]
        assert args == {"url": "https://example.test", "htmlContent": True}

    async def test_decode_failure_is_wrapped_with_url(self) -> None:
        tools, _ = _tools_with_result(_result({"image": "..."}))
        with pytest.raises(BrowserToolError, match="https://example.test") as excinfo:
            await tools.get_web_content_html("https://example.test")
        assert isinstance(excinfo.value.cause, DecodeError)

    async def test_network_request_sends_only_set_fields(self) -> None:
        tools, client = _tools_with_result(_result({"text": "{}"}))
        await tools.network_request(NetworkRequestOptions(url="https://example.test/api"))
        assert client.call_tool.call_args.args == (
            "chrome_network_request", {"url": "https://example.test/api"},
        )

    async def test_network_request_full_options(self) -> None:
        tools, client = _tools_with_result(_result({"text": "{}"}))
        await tools.network_request(NetworkRequestOptions(
            url="https://example.test/api",
            method="POST",
            headers={"Content-Type": "application/json"},
            body='{"a":1}',
        ))
        assert client.call_tool.call_args.args[1] == {
            "url": "https://example.test/api",
            "method": "POST",
            "headers": {"Content-Type": "application/json"},
            "body": '{"a":1}',
        }

    async def test_form_interactions(self) -> None:
        tools, client = _tools_with_result(_result({"text": "done"}))
        await tools.fill("#handle", "tourist")
        await tools.click("#submit")
        await tools.keyboard("Enter")

        calls = [c.args for c in client.call_tool.call_args_list]
        assert calls == [
            ("chrome_fill_or_select", {"selector": "#handle", "value": "tourist"}),
            ("chrome_click_element", {"selector": "#submit"}),
            ("chrome_keyboard", {"keys": "Enter"}),
        ]

    async def test_tab_and_capture_tools(self) -> None:
        tools, client = _tools_with_result(_result({"text": "{}"}))
        await tools.get_windows_and_tabs()
        await tools.network_capture_start("https://example.test")
        await tools.network_capture_stop()

        names = [c.args[0] for c in client.call_tool.call_args_list]
        assert names == [
            CHROME_TOOLS.get_windows_and_tabs,
            CHROME_TOOLS.network_capture_start,
            CHROME_TOOLS.network_capture_stop,
        ]

    async def test_is_error_result_raises_with_message(self) -> None:
        tools, _ = _tools_with_result(_result({"text": "element not found"}, is_error=True))
        with pytest.raises(BrowserToolError, match="element not found") as excinfo:
            await tools.click("#missing")
        assert excinfo.value.operation == "click"
        assert excinfo.value.target == "#missing"
        assert isinstance(excinfo.value.cause, ToolExecutionError)

    async def test_transport_error_is_wrapped_with_context(self) -> None:
        tools, _ = _tools_with_result(TransportError("server returned status 502"))
        with pytest.raises(BrowserToolError, match="502") as excinfo:
            await tools.navigate("https://example.test")
        assert "navigate https://example.test" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, TransportError)
        assert not excinfo.value.timed_out

    async def test_timeout_stays_distinguishable(self) -> None:
        tools, _ = _tools_with_result(CorrelationTimeoutError("receive timeout"))
        with pytest.raises(BrowserToolError) as excinfo:
            await tools.fill("#a", "b")
        assert excinfo.value.timed_out

    async def test_state_error_is_wrapped(self) -> None:
        tools, _ = _tools_with_result(NotInitializedError())
        with pytest.raises(BrowserToolError, match="not initialized"):
            await tools.navigate("https://example.test")

    async def test_per_call_timeout_is_forwarded(self) -> None:
        client = MagicMock(spec=MCPClient)
        client.call_tool = AsyncMock(return_value=_result({"text": "ok"}))
        await BrowserTools(client, timeout=12.5).navigate("https://example.test")
        assert client.call_tool.call_args.kwargs == {"timeout": 12.5}


class TestBrowserToolsEndToEnd:
    async def test_navigate_succeeds_against_fake_host(self) -> None:
        async with MCPClient(fake_host_transport("browser")) as client:
            await BrowserTools(client).navigate("https://example.test")

    async def test_html_is_unwrapped_from_fake_host(self) -> None:
        async with MCPClient(fake_host_transport("browser")) as client:
            html = await BrowserTools(client).get_web_content_html("https://example.test")
        assert html == "<p>ok</p>"

    async def test_is_error_from_fake_host_surfaces_message(self) -> None:
        async with MCPClient(fake_host_transport("browser-error")) as client:
            with pytest.raises(BrowserToolError, match="boom"):
                await BrowserTools(client).navigate("https://example.test")
