"""Tests for MCPClient with mocked and fake-host transports."""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any
from unittest.mock import AsyncMock

import pytest

from browser_relay.protocols.errors import (
    ClientClosedError,
    CorrelationTimeoutError,
    DecodeError,
    NotInitializedError,
    RPCError,
)
from browser_relay.protocols.mcp.client import PROTOCOL_VERSION, MCPClient
from browser_relay.protocols.mcp.models import JsonRpcMessage
from tests.fakes.hosts import fake_host_transport, initialize_reply, mock_transport, tool_reply


def _sent(transport: Any, index: int) -> JsonRpcMessage:
    return transport.request.call_args_list[index].args[0]


class TestMCPClientInitialize:
    async def test_initialize_performs_handshake(self) -> None:
        transport = mock_transport()
        client = MCPClient(transport)
        info = await client.initialize()

        transport.connect.assert_awaited_once()
        sent = _sent(transport, 0)
        assert sent.method == "initialize"
        assert sent.id == 1
        assert sent.params == {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": {"name": "browser-relay", "version": "0.1.0"},
        }
        assert client.initialized
        assert info.server_info["name"] == "mock-host"

    async def test_initialize_error_leaves_client_uninitialized(self) -> None:
        transport = mock_transport([
            {"jsonrpc": "2.0", "id": 1, "error": {"code": -32600, "message": "bad version"}},
        ])
        client = MCPClient(transport)
        with pytest.raises(RPCError, match="bad version") as excinfo:
            await client.initialize()
        assert excinfo.value.code == -32600
        assert not client.initialized

    async def test_reinitialize_is_harmless(self) -> None:
        transport = mock_transport([initialize_reply(1), initialize_reply(2)])
        client = MCPClient(transport)
        await client.initialize()
        await client.initialize()
        assert client.initialized
        assert _sent(transport, 1).id == 2

    async def test_context_manager_initializes_and_closes(self) -> None:
        transport = mock_transport()
        async with MCPClient(transport) as client:
            assert client.initialized
        transport.close.assert_awaited_once()
        assert client.closed


class TestMCPClientState:
    async def test_call_tool_before_initialize_fails_without_io(self) -> None:
        transport = mock_transport()
        client = MCPClient(transport)
        with pytest.raises(NotInitializedError, match="not initialized"):
            await client.call_tool("chrome_navigate", {"url": "https://example.test"})
        transport.connect.assert_not_awaited()
        transport.request.assert_not_awaited()
        transport.send.assert_not_awaited()

    async def test_list_tools_before_initialize_fails(self) -> None:
        client = MCPClient(mock_transport())
        with pytest.raises(NotInitializedError):
            await client.list_tools()

    async def test_calls_after_close_fail(self) -> None:
        transport = mock_transport()
        client = MCPClient(transport)
        await client.initialize()
        await client.close()

        with pytest.raises(ClientClosedError):
            await client.call_tool("chrome_navigate", {})
        with pytest.raises(ClientClosedError):
            await client.initialize()
        assert not client.initialized

    async def test_close_is_idempotent(self) -> None:
        transport = mock_transport()
        client = MCPClient(transport)
        await client.close()
        await client.close()
        transport.close.assert_awaited_once()


class TestMCPClientRequestIds:
    def test_ids_are_strictly_increasing(self) -> None:
        client = MCPClient(mock_transport())
        ids = [client.next_request_id() for _ in range(5)]
        assert ids == [1, 2, 3, 4, 5]

    def test_concurrent_threads_never_share_an_id(self) -> None:
        client = MCPClient(mock_transport())
        count = 2000
        with ThreadPoolExecutor(max_workers=16) as pool:
            ids = list(pool.map(lambda _: client.next_request_id(), range(count)))
        assert len(set(ids)) == count
        assert sorted(ids) == list(range(1, count + 1))

    async def test_concurrent_calls_use_distinct_ids(self) -> None:
        transport = mock_transport()
        client = MCPClient(transport)
        await client.initialize()

        async def _echo(message: JsonRpcMessage) -> JsonRpcMessage:
            await asyncio.sleep(0)
            return JsonRpcMessage.from_wire(tool_reply(int(message.id), [{"text": "ok"}]))  # type: ignore[arg-type]

        transport.request = AsyncMock(side_effect=_echo)
        await asyncio.gather(*(client.call_tool("t", {"i": i}) for i in range(10)))

        ids = [call.args[0].id for call in transport.request.call_args_list]
        assert sorted(ids) == list(range(2, 12))


class TestMCPClientCalls:
    async def test_call_tool_sends_name_and_arguments(self) -> None:
        transport = mock_transport([initialize_reply(), tool_reply(2, [{"text": "ok"}])])
        async with MCPClient(transport) as client:
            result = await client.call_tool("chrome_navigate", {"url": "https://example.test"})

        sent = _sent(transport, 1)
        assert sent.method == "tools/call"
        assert sent.id == 2
        assert sent.params == {"name": "chrome_navigate", "arguments": {"url": "https://example.test"}}
        assert result.content == [{"text": "ok"}]
        assert result.is_error is False

    async def test_is_error_result_is_returned_not_raised(self) -> None:
        transport = mock_transport([initialize_reply(), tool_reply(2, [{"text": "boom"}], True)])
        async with MCPClient(transport) as client:
            result = await client.call_tool("chrome_click_element", {"selector": "#go"})
        assert result.is_error
        assert result.error_message() == "boom"

    async def test_rpc_error_preserves_code_and_message(self) -> None:
        transport = mock_transport([
            initialize_reply(),
            {"jsonrpc": "2.0", "id": 2, "error": {"code": -32602, "message": "Invalid params", "data": {"field": "url"}}},
        ])
        async with MCPClient(transport) as client:
            with pytest.raises(RPCError) as excinfo:
                await client.call_tool("chrome_navigate", {})
        assert excinfo.value.code == -32602
        assert excinfo.value.message == "Invalid params"
        assert excinfo.value.data == {"field": "url"}

    async def test_undecodable_result_raises_decode_error(self) -> None:
        transport = mock_transport([
            initialize_reply(),
            {"jsonrpc": "2.0", "id": 2, "result": {"content": 12}},
        ])
        async with MCPClient(transport) as client:
            with pytest.raises(DecodeError):
                await client.call_tool("chrome_navigate", {"url": "u"})

    async def test_list_tools_and_ping(self) -> None:
        listing = {"jsonrpc": "2.0", "id": 2, "result": {"tools": [{"name": "chrome_navigate"}]}}
        transport = mock_transport([initialize_reply(), listing, {**listing, "id": 3}])
        async with MCPClient(transport) as client:
            tools = await client.list_tools()
            await client.ping()

        assert [t.name for t in tools] == ["chrome_navigate"]
        assert _sent(transport, 1).method == "tools/list"
        assert _sent(transport, 2).method == "tools/list"

    async def test_timeout_raises_correlation_timeout(self) -> None:
        transport = mock_transport()
        client = MCPClient(transport)
        await client.initialize()

        async def _hang(message: JsonRpcMessage) -> JsonRpcMessage:
            await asyncio.sleep(10)
            raise AssertionError("unreachable")

        transport.request = AsyncMock(side_effect=_hang)
        with pytest.raises(CorrelationTimeoutError, match="timed out") as excinfo:
            await client.call_tool("chrome_navigate", {"url": "u"}, timeout=0.05)
        assert excinfo.value.request_id == 2


class TestMCPClientWithFakeHost:
    async def test_full_session_over_stdio(self) -> None:
        async with MCPClient(fake_host_transport("browser")) as client:
            assert client.server_info is not None
            assert client.server_info.server_info["name"] == "fake-host"
            tools = await client.list_tools()
            result = await client.call_tool("chrome_navigate", {"url": "https://example.test"})

        assert {t.name for t in tools} == {"chrome_navigate", "chrome_get_web_content"}
        assert result.content == [{"text": "ok"}]

    async def test_unknown_method_is_rpc_error(self) -> None:
        async with MCPClient(fake_host_transport("browser")) as client:
            with pytest.raises(RPCError, match="Method not found"):
                await client._request("resources/list")
