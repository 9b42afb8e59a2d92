from __future__ import annotations

from typing import Any


class GuiScriptError(Exception):
    """Base class for everything guiscript raises on purpose."""


class ParseError(GuiScriptError):
    def __init__(self, message: str, line: int, column: int = 1, source: str = "<string>") -> None:
        self.message = message
        self.line = line
        self.column = column
        self.source = source
        super().__init__(f"{source}:{line}:{column}: {message}")


class ScriptFailure(GuiScriptError):
    """A script stopped passing. Fatal to the script, never to the batch."""

    line: int | None = None

    def at_line(self, line: int) -> "ScriptFailure":
        self.line = line
        return self

    def describe(self) -> str:
        if self.line is None:
            return str(self)
        return f"line {self.line}: {self}"


class NavigationError(ScriptFailure):
    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"cannot load {url!r}: {reason}")


class ElementNotFoundError(ScriptFailure):
    def __init__(self, selector: str, reason: str = "no element matches") -> None:
        self.selector = selector
        self.reason = reason
        super().__init__(f"{reason}: {selector!r}")


class CountMismatch(ScriptFailure):
    def __init__(self, selector: str, expected: int, actual: int) -> None:
        self.selector = selector
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected} element(s) matching {selector!r}, found {actual}")


class PropertyMismatch(ScriptFailure):
    def __init__(
        self,
        selector: str,
        property: str,
        expected: str,
        actual: Any,
        index: int = 0,
    ) -> None:
        self.selector = selector
        self.property = property
        self.expected = expected
        self.actual = actual
        self.index = index
        super().__init__(
            f"{selector!r}[{index}].{property}: expected {expected!r}, got {actual!r}"
        )


class AssertionFailures(ScriptFailure):
    def __init__(self, failures: list[ScriptFailure]) -> None:
        self.failures = list(failures)
        details = "\n".join(f"  - {failure}" for failure in self.failures)
        super().__init__(f"{len(self.failures)} assertion(s) failed:\n{details}")


class ScriptTimeout(ScriptFailure):
    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"script did not finish within {seconds:g}s")


class BrowserError(ScriptFailure):
    def __init__(self, tool: str, reason: str) -> None:
        self.tool = tool
        self.reason = reason
        super().__init__(f"browser tool {tool!r} failed: {reason}")
