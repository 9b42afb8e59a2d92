from __future__ import annotations

import logging
from typing import Protocol

from guiscript.errors import NavigationError, ScriptFailure
from guiscript.runner.assertions import DomQuery, assert_count, assert_property
from guiscript.script.commands import (
    AssertCount,
    AssertProperty,
    Command,
    Navigate,
    SetTextVisible,
    SetViewport,
)


logger = logging.getLogger(__name__)


class Browser(DomQuery, Protocol):
    async def open_url(self, url: str) -> object: ...

    async def set_viewport(self, width: int, height: int) -> None: ...

    async def set_text_visible(self, visible: bool) -> None: ...


class ScriptExecutor:
    """Runs commands in declaration order against one browser.

    Text starts hidden and stays in whatever state the last ``show-text``
    left it, across navigations.
    """

    def __init__(self, browser: Browser) -> None:
        self.browser = browser
        self.text_visible = False
        self.current_url: str | None = None
        self.executed = 0

    async def run(self, commands: list[Command]) -> int:
        for command in commands:
            logger.debug(f"line {command.line}: {command.to_script()}")
            try:
                await self.execute(command)
            except ScriptFailure as exc:
                raise exc.at_line(command.line)
            self.executed += 1
        return self.executed

    async def execute(self, command: Command) -> None:
        if isinstance(command, Navigate):
            await self.browser.open_url(command.url)
            self.current_url = command.url
            if not self.text_visible:
                await self.browser.set_text_visible(False)
        elif isinstance(command, SetTextVisible):
            self.text_visible = command.visible
            if self.current_url is not None:
                await self.browser.set_text_visible(command.visible)
        elif isinstance(command, SetViewport):
            await self.browser.set_viewport(command.width, command.height)
        elif isinstance(command, AssertCount):
            self._require_page()
            await assert_count(self.browser, command)
        elif isinstance(command, AssertProperty):
            self._require_page()
            await assert_property(self.browser, command)
        else:
            raise TypeError(f"Unsupported command: {command!r}")

    def _require_page(self) -> None:
        if self.current_url is None:
            raise NavigationError("about:blank", "no page loaded; add a goto before assertions")
