from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from .jsonrpc import JsonRpcMessage, decode


logger = logging.getLogger(__name__)


class McpTransportError(RuntimeError):
    pass


class StdioTransport:
    """Newline-delimited JSON-RPC over the stdin/stdout of an MCP server process."""

    def __init__(self, command: str, args: list[str], cwd: str | None = None) -> None:
        self.command = command
        self.args = args
        self.cwd = cwd
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        logger.debug(f"Starting MCP server: {self.command} {' '.join(self.args)}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                cwd=self.cwd or str(Path.cwd()),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise McpTransportError(f"Cannot start MCP server {self.command!r}: {exc}") from exc
        self._stderr_task = asyncio.create_task(self._drain_stderr())

    async def stop(self) -> None:
        process = self._process
        if process is None:
            return
        self._process = None
        if process.stdin is not None:
            process.stdin.close()
            with contextlib.suppress(ConnectionError, BrokenPipeError):
                await process.stdin.wait_closed()
        if process.returncode is None:
            process.terminate()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(process.wait(), timeout=5)
        if process.returncode is None:
            logger.warning(f"MCP server (pid {process.pid}) ignored SIGTERM, killing it")
            process.kill()
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(process.wait(), timeout=5)
        if self._stderr_task is not None:
            self._stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._stderr_task
            self._stderr_task = None

    async def send(self, message: JsonRpcMessage) -> None:
        if self._process is None or self._process.stdin is None:
            raise McpTransportError("Transport is not started")
        self._process.stdin.write(message.encode())
        await self._process.stdin.drain()

    async def recv(self) -> dict:
        if self._process is None or self._process.stdout is None:
            raise McpTransportError("Transport is not started")
        line = await self._process.stdout.readline()
        if not line:
            raise McpTransportError("MCP server closed its output")
        return decode(line)

    async def _drain_stderr(self) -> None:
        # The server logs to stderr; an undrained pipe eventually blocks it.
        assert self._process is not None and self._process.stderr is not None
        stream = self._process.stderr
        while True:
            line = await stream.readline()
            if not line:
                return
            logger.debug(f"[mcp] {line.decode('utf-8', errors='replace').rstrip()}")
