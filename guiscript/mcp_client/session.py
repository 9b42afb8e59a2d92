from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Protocol

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .jsonrpc import JsonRpcError, JsonRpcMessage, is_notification, is_response, notification, request, unwrap
from .transport import McpTransportError


logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-06-18"
CLIENT_INFO = {"name": "guiscript", "version": "0.1.0"}


class McpTimeoutError(McpTransportError):
    pass


class Transport(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def send(self, message: JsonRpcMessage) -> None: ...

    async def recv(self) -> dict: ...


class McpSession:
    def __init__(self, transport: Transport, timeout_seconds: float = 20.0) -> None:
        self.transport = transport
        self.timeout_seconds = timeout_seconds
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._reader_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        await self.transport.start()
        self._reader_task = asyncio.create_task(self._reader_loop())

    async def stop(self) -> None:
        if self._reader_task is not None:
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                try:
                    await self._reader_task
                except Exception as exc:
                    logger.warning(f"MCP reader stopped with {type(exc).__name__}: {exc}")
            self._reader_task = None
        self._fail_pending(McpTransportError("MCP session stopped"))
        await asyncio.wait_for(self.transport.stop(), timeout=12)

    @retry(
        retry=retry_if_exception_type(McpTimeoutError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def initialize(self) -> Any:
        result = await self.request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "clientInfo": CLIENT_INFO,
                "capabilities": {},
            },
        )
        await self.transport.send(notification("notifications/initialized"))
        server = (result or {}).get("serverInfo", {})
        logger.info(f"Connected to MCP server {server.get('name', '?')} {server.get('version', '')}".rstrip())
        return result

    async def list_tools(self) -> list[str]:
        result = await self.request("tools/list", {})
        return [tool["name"] for tool in (result or {}).get("tools", []) if tool.get("name")]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        logger.debug(f"call_tool {name} {arguments}")
        return await self.request("tools/call", {"name": name, "arguments": arguments})

    async def request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        if self._reader_task is not None and self._reader_task.done():
            raise McpTransportError("MCP session is no longer reading replies")
        message = request(method, params)
        assert message.id is not None
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[message.id] = future
        try:
            await self.transport.send(message)
            return await asyncio.wait_for(future, timeout=self.timeout_seconds)
        except TimeoutError as exc:
            raise McpTimeoutError(f"No reply to {method} within {self.timeout_seconds:g}s") from exc
        finally:
            self._pending.pop(message.id, None)

    async def _reader_loop(self) -> None:
        while True:
            try:
                payload = await self.transport.recv()
            except McpTransportError as exc:
                self._fail_pending(exc)
                raise
            except (ValueError, JsonRpcError) as exc:
                # npx and the server itself may print notices on stdout.
                logger.warning(f"Skipping unreadable MCP output: {exc}")
                continue
            if is_response(payload):
                try:
                    msg_id = int(payload["id"])
                except (TypeError, ValueError):
                    logger.warning(f"Skipping response with unusable id {payload['id']!r}")
                    continue
                future = self._pending.pop(msg_id, None)
                if future is None or future.done():
                    continue
                try:
                    future.set_result(unwrap(payload))
                except Exception as exc:
                    future.set_exception(exc)
            elif is_notification(payload):
                logger.debug(f"notification {payload.get('method')}")

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()
