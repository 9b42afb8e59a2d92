from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from guiscript.errors import ParseError
from guiscript.script.commands import (
    AssertCount,
    AssertProperty,
    Command,
    Navigate,
    Script,
    SetTextVisible,
    SetViewport,
)
from guiscript.script.tokens import Token, tokenize


_DIRECTIVE_RE = re.compile(r"^\s*([a-z][a-z-]*)\s*:(.*)$")
_VARIABLE_RE = re.compile(r"\|([A-Za-z_][A-Za-z0-9_]*)\|")


class _Line:
    """Cursor over the tokens of one directive's arguments."""

    def __init__(self, tokens: list[Token], line: int, source: str) -> None:
        self.tokens = tokens
        self.line = line
        self.source = source
        self.pos = 0

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type != "EOF":
            self.pos += 1
        return token

    def expect(self, token_type: str, what: str) -> Token:
        token = self.peek()
        if token.type != token_type:
            raise self.error(f"Expected {what}, found {_describe(token)}", token)
        return self.advance()

    def error(self, message: str, token: Token | None = None) -> ParseError:
        column = (token or self.peek()).column
        return ParseError(message, self.line, column, self.source)

    def value(self) -> Any:
        token = self.peek()
        if token.type == "LPAREN":
            return self._sequence()
        if token.type == "LBRACE":
            return self._mapping()
        if token.type in {"STRING", "NUMBER"}:
            return self.advance().value
        if token.type == "IDENT" and token.value in {"true", "false"}:
            return self.advance().value == "true"
        raise self.error(f"Expected a value, found {_describe(token)}", token)

    def _sequence(self) -> tuple[Any, ...]:
        self.expect("LPAREN", "'('")
        items: list[Any] = []
        while self.peek().type != "RPAREN":
            items.append((self.peek(), self.value()))
            if self.peek().type == "COMMA":
                self.advance()
            elif self.peek().type != "RPAREN":
                raise self.error(f"Expected ',' or ')', found {_describe(self.peek())}")
        self.advance()
        return tuple(items)

    def _mapping(self) -> dict[str, Any]:
        self.expect("LBRACE", "'{'")
        entries: dict[str, Any] = {}
        while self.peek().type != "RBRACE":
            key = self.expect("STRING", "a quoted property name")
            self.expect("COLON", "':'")
            value_token = self.peek()
            value = self.value()
            if isinstance(value, (tuple, dict, bool)):
                raise self.error("Property values must be strings or numbers", value_token)
            if key.value in entries:
                raise self.error(f"Duplicate property {key.value!r}", key)
            entries[str(key.value)] = value
            if self.peek().type == "COMMA":
                self.advance()
            elif self.peek().type != "RBRACE":
                raise self.error(f"Expected ',' or '}}', found {_describe(self.peek())}")
        self.advance()
        return entries

    def finish(self) -> None:
        token = self.peek()
        if token.type != "EOF":
            raise self.error(f"Unexpected {_describe(token)} after arguments", token)


def _describe(token: Token) -> str:
    if token.type == "EOF":
        return "end of line"
    return repr(token.value)


class ScriptParser:
    def __init__(self, variables: Mapping[str, str] | None = None, source: str = "<string>") -> None:
        self.variables = dict(variables or {})
        self.source = source
        self._handlers: dict[str, Callable[[str, int, int], Command]] = {
            "goto": self._goto,
            "show-text": self._show_text,
            "size": self._size,
            "assert-count": self._assert_count,
            "assert-property": self._assert_property,
        }

    def parse(self, text: str) -> list[Command]:
        commands: list[Command] = []
        # Only \n ends a directive; other Unicode line breaks may sit inside strings.
        for line_no, raw_line in enumerate(text.split("\n"), start=1):
            raw_line = raw_line.removesuffix("\r")
            stripped = raw_line.strip()
            if not stripped or stripped.startswith("//"):
                continue
            match = _DIRECTIVE_RE.match(raw_line)
            if match is None:
                raise ParseError(f"Not a directive: {stripped!r}", line_no, 1, self.source)
            name = match.group(1)
            handler = self._handlers.get(name)
            if handler is None:
                raise ParseError(
                    f"Unknown directive {name!r}", line_no, match.start(1) + 1, self.source
                )
            commands.append(handler(match.group(2), line_no, match.start(2)))
        return commands

    def _goto(self, rest: str, line: int, offset: int) -> Command:
        url = rest.strip()
        if not url:
            raise ParseError("goto expects a URL", line, offset + 1, self.source)
        return Navigate(self._substitute(url, line, offset), line=line)

    def _show_text(self, rest: str, line: int, offset: int) -> Command:
        cursor = self._cursor(rest, line, offset)
        token = cursor.peek()
        value = cursor.value()
        if not isinstance(value, bool):
            raise cursor.error("show-text expects true or false", token)
        cursor.finish()
        return SetTextVisible(value, line=line)

    def _size(self, rest: str, line: int, offset: int) -> Command:
        cursor = self._cursor(rest, line, offset)
        (width_token, width), (height_token, height) = self._tuple(cursor, 2, "(<width>, <height>)")
        cursor.finish()
        return SetViewport(
            self._integer(width, width_token, cursor, minimum=1),
            self._integer(height, height_token, cursor, minimum=1),
            line=line,
        )

    def _assert_count(self, rest: str, line: int, offset: int) -> Command:
        cursor = self._cursor(rest, line, offset)
        (selector_token, selector), (count_token, count) = self._tuple(
            cursor, 2, "(<selector>, <integer>)"
        )
        cursor.finish()
        return AssertCount(
            self._selector(selector, selector_token, cursor),
            self._integer(count, count_token, cursor, minimum=0),
            line=line,
        )

    def _assert_property(self, rest: str, line: int, offset: int) -> Command:
        cursor = self._cursor(rest, line, offset)
        (selector_token, selector), (props_token, props) = self._tuple(
            cursor, 2, "(<selector>, {<property>: <value>, ...})"
        )
        cursor.finish()
        if not isinstance(props, dict):
            raise cursor.error("Expected a {property: value} object", props_token)
        if not props:
            raise cursor.error("assert-property needs at least one property", props_token)
        expected = {
            name: self._substitute(str(value), line, props_token.column - 1)
            for name, value in props.items()
        }
        return AssertProperty(self._selector(selector, selector_token, cursor), expected, line=line)

    def _cursor(self, rest: str, line: int, offset: int) -> _Line:
        return _Line(tokenize(rest, line, offset, self.source), line, self.source)

    @staticmethod
    def _tuple(cursor: _Line, arity: int, shape: str) -> tuple[tuple[Token, Any], ...]:
        start = cursor.peek()
        if start.type != "LPAREN":
            raise cursor.error(f"Expected {shape}", start)
        items = cursor.value()
        if len(items) != arity:
            raise cursor.error(f"Expected {shape}, got {len(items)} argument(s)", start)
        return items

    def _selector(self, value: Any, token: Token, cursor: _Line) -> str:
        if not isinstance(value, str) or token.type != "STRING":
            raise cursor.error("Selector must be a quoted string", token)
        if not value.strip():
            raise cursor.error("Selector must not be empty", token)
        return self._substitute(value, cursor.line, token.column - 1)

    @staticmethod
    def _integer(value: Any, token: Token, cursor: _Line, minimum: int) -> int:
        if token.type != "NUMBER" or not str(value).lstrip("-").isdigit():
            raise cursor.error(f"Expected an integer, found {_describe(token)}", token)
        number = int(value)
        if number < minimum:
            raise cursor.error(f"Expected an integer >= {minimum}, found {number}", token)
        return number

    def _substitute(self, text: str, line: int, offset: int) -> str:
        def replace(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in self.variables:
                raise ParseError(
                    f"Unknown variable {name!r}", line, offset + match.start() + 1, self.source
                )
            return self.variables[name]

        return _VARIABLE_RE.sub(replace, text)


def parse_script(
    text: str,
    variables: Mapping[str, str] | None = None,
    source: str = "<string>",
) -> list[Command]:
    return ScriptParser(variables, source).parse(text)


def load_script(path: str | Path, variables: Mapping[str, str] | None = None) -> Script:
    script_path = Path(path)
    text = script_path.read_text(encoding="utf-8")
    return Script(name=str(script_path), commands=parse_script(text, variables, str(script_path)))
