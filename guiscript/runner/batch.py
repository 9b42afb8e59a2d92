from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import AsyncContextManager

from guiscript.browser.session import browser_session
from guiscript.config import RunnerConfig
from guiscript.errors import BrowserError, GuiScriptError, ScriptTimeout
from guiscript.mcp_client.jsonrpc import JsonRpcError
from guiscript.mcp_client.transport import McpTransportError
from guiscript.runner.executor import Browser, ScriptExecutor
from guiscript.runner.results import BatchResult, ScriptResult
from guiscript.script.commands import Script
from guiscript.script.parser import load_script


logger = logging.getLogger(__name__)

SCRIPT_SUFFIX = ".goml"

SessionFactory = Callable[[RunnerConfig], AsyncContextManager[Browser]]


def collect_scripts(paths: Iterable[str | Path]) -> list[Path]:
    """Expand directories to their ``*.goml`` files, sorted; keep files as given."""
    scripts: list[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            scripts.extend(sorted(path.rglob(f"*{SCRIPT_SUFFIX}")))
        else:
            scripts.append(path)
    return scripts


async def run_script(
    script: Script,
    config: RunnerConfig,
    session_factory: SessionFactory = browser_session,
) -> ScriptResult:
    result = ScriptResult(name=script.name, commands=len(script.commands))
    executor: ScriptExecutor | None = None
    started = time.monotonic()

    async def _drive() -> None:
        nonlocal executor
        async with session_factory(config) as browser:
            executor = ScriptExecutor(browser)
            await executor.run(script.commands)

    try:
        await asyncio.wait_for(_drive(), timeout=config.script_timeout_seconds)
    except TimeoutError:
        result.failures.append(ScriptTimeout(config.script_timeout_seconds))
    except GuiScriptError as exc:
        result.failures.append(exc)
    except (McpTransportError, JsonRpcError) as exc:
        result.failures.append(BrowserError("mcp", str(exc)))
    finally:
        result.elapsed_seconds = time.monotonic() - started
        if executor is not None:
            result.executed = executor.executed

    level = logging.INFO if result.success else logging.WARNING
    logger.log(level, f"{script.name}: {'ok' if result.success else 'FAILED'} ({result.elapsed_seconds:.2f}s)")
    return result


async def run_batch(
    paths: Iterable[str | Path],
    config: RunnerConfig,
    session_factory: SessionFactory = browser_session,
    on_result: Callable[[ScriptResult], None] | None = None,
) -> BatchResult:
    """Run scripts one after another; a failing script never stops the batch."""
    batch = BatchResult()
    for path in collect_scripts(paths):
        try:
            script = load_script(path, config.variables)
        except (GuiScriptError, OSError, UnicodeDecodeError) as exc:
            failure = exc if isinstance(exc, GuiScriptError) else GuiScriptError(f"{path}: {exc}")
            result = ScriptResult(name=str(path), failures=[failure])
        else:
            result = await run_script(script, config, session_factory)
        batch.scripts.append(result)
        if on_result is not None:
            on_result(result)
    return batch
