"""Tokenizer for the expression language."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

from lore.types import DefinitionError


class TokenType(Enum):
    NAME = "name"
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"
    OPERATOR = "operator"
    COMMA = "comma"


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    value: float | bool | str | None
    position: int


# Longest operators first so '===' is never read as '==' followed by '='.
OPERATORS = (
    "===", "!==", "==", "!=", ">=", "<=", "&&", "||",
    ">", "<", "&", "|", "!", "+", "-", "*", "/", "%", "(", ")", "?", ":",
)

_WORD = r"[A-Za-z_$][A-Za-z0-9_$]*"
_TOKEN_RE = re.compile(
    r"(?P<ws>\s+)"
    r"|(?P<number>\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)"
    rf"|(?P<name>{_WORD}(?:\.{_WORD})*)"
    r"|(?P<string>'(?:\\['\\]|[^'\\])*')"
    r"|(?P<comma>,)"
    r"|(?P<operator>" + "|".join(re.escape(op) for op in OPERATORS) + ")"
)

_KEYWORDS: dict[str, tuple[TokenType, float | bool]] = {
    "true": (TokenType.BOOLEAN, True),
    "false": (TokenType.BOOLEAN, False),
    "Infinity": (TokenType.NUMBER, math.inf),
    "NaN": (TokenType.NUMBER, math.nan),
}


def _unescape(body: str) -> str:
    return re.sub(r"\\(['\\])", r"\1", body)


def tokenize(source: str) -> list[Token]:
    """Split *source* into tokens. Whitespace is dropped."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(source):
        m = _TOKEN_RE.match(source, pos)
        if m is None:
            raise DefinitionError(
                f"unexpected character {source[pos]!r} at position {pos} "
                f"in expression '{source}'"
            )
        group = m.lastgroup
        text = m.group()
        if group == "number":
            tokens.append(Token(TokenType.NUMBER, text, float(text), pos))
        elif group == "name":
            if text in _KEYWORDS:
                ttype, value = _KEYWORDS[text]
                tokens.append(Token(ttype, text, value, pos))
            else:
                tokens.append(Token(TokenType.NAME, text, text, pos))
        elif group == "string":
            tokens.append(Token(TokenType.STRING, text, _unescape(text[1:-1]), pos))
        elif group == "comma":
            tokens.append(Token(TokenType.COMMA, text, None, pos))
        elif group == "operator":
            tokens.append(Token(TokenType.OPERATOR, text, None, pos))
        pos = m.end()
    return tokens
