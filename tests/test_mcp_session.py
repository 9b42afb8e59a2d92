from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from guiscript.mcp_client.jsonrpc import JsonRpcError, JsonRpcMessage
from guiscript.mcp_client.session import McpSession, McpTimeoutError
from guiscript.mcp_client.transport import McpTransportError


class ScriptedTransport:
    """Replies to each request with whatever ``responder`` returns for it."""

    def __init__(self, responder: Callable[[JsonRpcMessage], Any]) -> None:
        self.responder = responder
        self.sent: list[JsonRpcMessage] = []
        self.incoming: asyncio.Queue[Any] = asyncio.Queue()
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def send(self, message: JsonRpcMessage) -> None:
        self.sent.append(message)
        if message.is_notification:
            return
        reply = self.responder(message)
        for item in reply if isinstance(reply, list) else [reply]:
            if item is not None:
                await self.incoming.put(item)

    async def recv(self) -> dict:
        item = await self.incoming.get()
        if isinstance(item, Exception):
            raise item
        return item


def _result(message: JsonRpcMessage, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": message.id, "result": result}


def _mcp_server(message: JsonRpcMessage) -> Any:
    if message.method == "initialize":
        return _result(message, {"serverInfo": {"name": "chrome_devtools", "version": "1.0"}})
    if message.method == "tools/list":
        return _result(message, {"tools": [{"name": "navigate_page"}, {"name": "resize_page"}, {}]})
    if message.method == "tools/call":
        if message.params["name"] == "explode":
            return {"jsonrpc": "2.0", "id": message.id, "error": {"code": -32602, "message": "Unknown tool"}}
        return _result(message, {"content": [{"type": "text", "text": f"called {message.params['name']}"}]})
    return None


def _run(body: Callable[[McpSession, ScriptedTransport], Any], responder=_mcp_server, timeout: float = 1.0) -> Any:
    async def main() -> Any:
        transport = ScriptedTransport(responder)
        session = McpSession(transport, timeout_seconds=timeout)
        await session.start()
        try:
            return await body(session, transport)
        finally:
            await session.stop()
            assert transport.stopped

    return asyncio.run(main())


def test_initialize_handshake_sends_initialized_notification() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        result = await session.initialize()
        return result, [message.method for message in transport.sent]

    result, methods = _run(body)
    assert result["serverInfo"]["name"] == "chrome_devtools"
    assert methods == ["initialize", "notifications/initialized"]


def test_list_tools_returns_named_tools() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        return await session.list_tools()

    assert _run(body) == ["navigate_page", "resize_page"]


def test_call_tool_wraps_name_and_arguments() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        result = await session.call_tool("resize_page", {"width": 1, "height": 2})
        return result, transport.sent[-1].params

    result, params = _run(body)
    assert result["content"][0]["text"] == "called resize_page"
    assert params == {"name": "resize_page", "arguments": {"width": 1, "height": 2}}


def test_error_response_raises_json_rpc_error() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        await session.call_tool("explode", {})

    with pytest.raises(JsonRpcError, match="Unknown tool"):
        _run(body)


def test_unanswered_request_times_out() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        await session.request("ping")

    with pytest.raises(McpTimeoutError, match="No reply to ping"):
        _run(body, responder=lambda message: None, timeout=0.05)


def test_closed_transport_fails_pending_requests() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        await session.request("tools/list")

    with pytest.raises(McpTransportError, match="closed"):
        _run(body, responder=lambda message: McpTransportError("MCP server closed its output"))


def _garbage() -> json.JSONDecodeError:
    return json.JSONDecodeError("Expecting value", "npm notice: booting", 0)


def test_non_json_output_is_skipped() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        return await session.list_tools()

    def responder(message: JsonRpcMessage) -> list[Any]:
        return [_garbage(), _mcp_server(message)]

    assert _run(body, responder=responder) == ["navigate_page", "resize_page"]


def test_response_with_unusable_id_is_skipped() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        return await session.call_tool("resize_page", {"width": 1, "height": 2})

    def responder(message: JsonRpcMessage) -> list[Any]:
        stray = {"jsonrpc": "2.0", "id": "not-a-number", "result": {}}
        return [stray, _mcp_server(message)]

    result = _run(body, responder=responder)
    assert result["content"][0]["text"] == "called resize_page"


def test_dead_reader_fails_requests_fast_and_stop_stays_quiet() -> None:
    async def body(session: McpSession, transport: ScriptedTransport) -> Any:
        await transport.incoming.put(RuntimeError("reader crashed"))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        await session.request("tools/list")

    with pytest.raises(McpTransportError, match="no longer reading"):
        _run(body, timeout=5.0)
