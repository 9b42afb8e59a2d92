from __future__ import annotations

import contextlib
import logging
import os
import shlex
import shutil
from collections.abc import AsyncIterator

import httpx

from guiscript.browser.devtools_adapter import DevToolsAdapter
from guiscript.config import RunnerConfig
from guiscript.mcp_client.session import McpSession
from guiscript.mcp_client.transport import McpTransportError, StdioTransport


logger = logging.getLogger(__name__)

_SESSION_TARGET_FLAGS = {"-u", "--browserUrl", "-w", "--wsEndpoint", "--userDataDir"}
_EXECUTABLE_FLAGS = {"-e", "--executablePath"}

REQUIRED_TOOLS = ("navigate_page", "resize_page", "evaluate_script", "list_pages", "close_page")


def server_args(config: RunnerConfig) -> list[str]:
    args = shlex.split(config.server_args)

    if config.browser_url and not _has_flag(args, {"-u", "--browserUrl"}):
        args.extend(["--browserUrl", config.browser_url])

    if "--isolated" not in args and not _has_flag(args, _SESSION_TARGET_FLAGS):
        args.append("--isolated")

    if not config.browser_url and not _has_flag(args, _EXECUTABLE_FLAGS):
        executable = resolve_browser_executable(config.chrome_path)
        if executable:
            args.extend(["--executablePath", executable])

    return args


def _has_flag(args: list[str], flags: set[str]) -> bool:
    return any(token in flags or token.split("=", 1)[0] in flags for token in args)


def resolve_browser_executable(configured: str | None = None) -> str | None:
    if configured and os.path.exists(configured):
        return configured
    for name in ("google-chrome", "google-chrome-stable", "chromium", "chromium-browser"):
        found = shutil.which(name)
        if found:
            return found
    return None


def resolve_command(command: str) -> str:
    candidate = command.strip().strip('"')
    resolved = shutil.which(candidate)
    if resolved:
        return resolved
    raise McpTransportError(
        f"MCP server command not found: {command}. Ensure Node.js/npx is installed and available in PATH."
    )


async def probe_browser(browser_url: str, timeout_seconds: float = 5.0) -> dict:
    """Check that a remote-debugging Chrome is listening at ``browser_url``."""
    async with httpx.AsyncClient(timeout=timeout_seconds) as client:
        try:
            response = await client.get(f"{browser_url}/json/version")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise McpTransportError(f"No debuggable browser at {browser_url}: {exc}") from exc
    info = response.json()
    logger.info(f"Attaching to {info.get('Browser', 'browser')} at {browser_url}")
    return info


async def check_tools(session: McpSession) -> list[str]:
    tools = await session.list_tools()
    missing = [name for name in REQUIRED_TOOLS if name not in tools]
    if missing:
        raise McpTransportError(f"MCP server lacks required tools: {', '.join(missing)}")
    return tools


@contextlib.asynccontextmanager
async def browser_session(config: RunnerConfig) -> AsyncIterator[DevToolsAdapter]:
    """Start an MCP-driven browser and tear it down whatever happens inside."""
    if config.browser_url:
        await probe_browser(config.browser_url)

    transport = StdioTransport(resolve_command(config.server_command), server_args(config))
    session = McpSession(transport, timeout_seconds=config.step_timeout_seconds)
    await session.start()
    adapter = DevToolsAdapter(session, page_ready_timeout_ms=config.page_ready_timeout_ms)
    try:
        await session.initialize()
        await check_tools(session)
        yield adapter
    finally:
        try:
            closed = await adapter.close_all_pages()
            logger.debug(f"Closed pages {closed}")
        except Exception as exc:
            logger.warning(f"Could not close pages: {exc}")
        try:
            await session.stop()
        except Exception as exc:
            logger.warning(f"Could not stop MCP server cleanly: {exc}")
