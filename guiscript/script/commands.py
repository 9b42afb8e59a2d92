from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(slots=True, frozen=True)
class Navigate:
    url: str
    line: int = field(default=0, compare=False)

    def to_script(self) -> str:
        return f"goto: {self.url}"


@dataclass(slots=True, frozen=True)
class SetTextVisible:
    visible: bool
    line: int = field(default=0, compare=False)

    def to_script(self) -> str:
        return f"show-text: {'true' if self.visible else 'false'}"


@dataclass(slots=True, frozen=True)
class SetViewport:
    width: int
    height: int
    line: int = field(default=0, compare=False)

    def to_script(self) -> str:
        return f"size: ({self.width}, {self.height})"


@dataclass(slots=True, frozen=True)
class AssertCount:
    selector: str
    count: int
    line: int = field(default=0, compare=False)

    def to_script(self) -> str:
        return f"assert-count: ({quote(self.selector)}, {self.count})"


@dataclass(slots=True, frozen=True)
class AssertProperty:
    selector: str
    properties: dict[str, str]
    line: int = field(default=0, compare=False)

    def to_script(self) -> str:
        pairs = ", ".join(f"{quote(name)}: {quote(value)}" for name, value in self.properties.items())
        return f"assert-property: ({quote(self.selector)}, {{{pairs}}})"


Command = Union[Navigate, SetTextVisible, SetViewport, AssertCount, AssertProperty]


@dataclass(slots=True)
class Script:
    name: str
    commands: list[Command] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.commands)


_QUOTE_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def quote(value: str) -> str:
    return '"' + "".join(_QUOTE_ESCAPES.get(ch, ch) for ch in value) + '"'


def serialize(commands: list[Command]) -> str:
    """Render commands back to script text, one directive per line."""
    return "".join(command.to_script() + "\n" for command in commands)
