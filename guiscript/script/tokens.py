from __future__ import annotations

from dataclasses import dataclass

from guiscript.errors import ParseError


_PUNCTUATION_TOKENS = {
    "(": "LPAREN",
    ")": "RPAREN",
    "{": "LBRACE",
    "}": "RBRACE",
    ",": "COMMA",
    ":": "COLON",
}

_ESCAPE_TABLE = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    '"': '"',
    "'": "'",
    "\\": "\\",
}


@dataclass(frozen=True)
class Token:
    type: str
    value: object
    column: int

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"Token({self.type}, {self.value!r}, col {self.column})"


def tokenize(text: str, line: int, offset: int = 0, source: str = "<string>") -> list[Token]:
    """Split the argument part of a directive into tokens.

    ``offset`` is the column of ``text[0]`` minus one, so reported columns
    point into the original script line.
    """
    tokens: list[Token] = []
    i = 0
    while i < len(text):
        ch = text[i]
        column = offset + i + 1
        if ch.isspace():
            i += 1
            continue
        token_type = _PUNCTUATION_TOKENS.get(ch)
        if token_type is not None:
            tokens.append(Token(token_type, ch, column))
            i += 1
            continue
        if ch in {'"', "'"}:
            value, consumed = _read_string(text, i, line, column, source)
            tokens.append(Token("STRING", value, column))
            i += consumed
            continue
        if ch.isdigit() or (ch == "-" and i + 1 < len(text) and text[i + 1].isdigit()):
            end = i + 1
            while end < len(text) and (text[end].isdigit() or text[end] == "."):
                end += 1
            literal = text[i:end]
            if literal.count(".") > 1 or literal.endswith("."):
                raise ParseError(f"Malformed number {literal!r}", line, column, source)
            tokens.append(Token("NUMBER", literal, column))
            i = end
            continue
        if ch.isalpha() or ch == "_":
            end = i + 1
            while end < len(text) and (text[end].isalnum() or text[end] in "_-"):
                end += 1
            tokens.append(Token("IDENT", text[i:end], column))
            i = end
            continue
        raise ParseError(f"Unexpected character {ch!r}", line, column, source)
    tokens.append(Token("EOF", None, offset + len(text) + 1))
    return tokens


def _read_string(text: str, start: int, line: int, column: int, source: str) -> tuple[str, int]:
    delimiter = text[start]
    chars: list[str] = []
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            if i + 1 >= len(text):
                break
            escaped = _ESCAPE_TABLE.get(text[i + 1])
            if escaped is None:
                raise ParseError(f"Unknown escape sequence \\{text[i + 1]}", line, column + i - start, source)
            chars.append(escaped)
            i += 2
            continue
        if ch == delimiter:
            return "".join(chars), i - start + 1
        chars.append(ch)
        i += 1
    raise ParseError("Unterminated string", line, column, source)
