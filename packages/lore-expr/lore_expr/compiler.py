"""Expression compiler: source text -> tree of closures over a function table.

Grammar, lowest to highest precedence::

    ternary   := or ('?' ternary ':' ternary)?
    or        := and ('||' and)*
    and       := bitor ('&&' bitor)*
    bitor     := bitand ('|' bitand)*
    bitand    := equality ('&' equality)*
    equality  := relation (('==' | '!=' | '===' | '!==') relation)*
    relation  := additive (('<' | '<=' | '>' | '>=') additive)*
    additive  := term (('+' | '-') term)*
    term      := unary (('*' | '/' | '%') unary)*
    unary     := ('!' | '-' | '+') unary | primary
    primary   := NUMBER | BOOLEAN | STRING | NAME | NAME '(' args ')' | '(' ternary ')'
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from lore.types import DefinitionError, EvaluationError
from lore_expr import values as v
from lore_expr.tokens import Token, TokenType, tokenize

if TYPE_CHECKING:
    from lore_expr.functions import FunctionTable

logger = logging.getLogger(__name__)

Evaluator = Callable[["FunctionTable"], Any]
Source = str | int | float


@dataclass(frozen=True)
class CompiledExpression:
    """Immutable compiled form of one expression source."""

    source: Source
    fn: Evaluator

    def evaluate(self, table: FunctionTable) -> float:
        """Evaluate to a number. NaN and non-numeric results are errors."""
        result = self.fn(table)
        if isinstance(result, bool):
            return 1.0 if result else 0.0
        if isinstance(result, str) or not isinstance(result, (int, float)):
            raise EvaluationError(
                f"expression '{self.source}' evaluated to non-number {result!r}"
            )
        if math.isnan(result):
            raise EvaluationError(f"expression '{self.source}' evaluated to NaN")
        return result

    def test(self, table: FunctionTable) -> bool:
        return self.evaluate(table) != 0


def constant(value: int | float) -> CompiledExpression:
    return CompiledExpression(value, lambda table: value)


def compile_expression(
    source: str, has_function: Callable[[str], bool]
) -> CompiledExpression:
    """Compile *source*. Calls must name a function for which *has_function* holds."""
    tokens = tokenize(source)
    if not tokens:
        raise DefinitionError("empty expression")
    parser = _Parser(source, tokens, has_function)
    return CompiledExpression(source, parser.parse())


_BINARY: dict[str, Callable[[Any, Any], Any]] = {
    "+": lambda a, b: (
        v.to_text(a) + v.to_text(b)
        if isinstance(a, str) or isinstance(b, str)
        else v.to_number(a) + v.to_number(b)
    ),
    "-": lambda a, b: v.to_number(a) - v.to_number(b),
    "*": lambda a, b: v.to_number(a) * v.to_number(b),
    "/": lambda a, b: v.divide(v.to_number(a), v.to_number(b)),
    "%": lambda a, b: v.remainder(v.to_number(a), v.to_number(b)),
    "<": lambda a, b: _compare(a, b, lambda x, y: x < y),
    "<=": lambda a, b: _compare(a, b, lambda x, y: x <= y),
    ">": lambda a, b: _compare(a, b, lambda x, y: x > y),
    ">=": lambda a, b: _compare(a, b, lambda x, y: x >= y),
    "==": v.loose_equals,
    "!=": lambda a, b: not v.loose_equals(a, b),
    "===": v.strict_equals,
    "!==": lambda a, b: not v.strict_equals(a, b),
    "&": lambda a, b: v.to_int32(v.to_int32(a) & v.to_int32(b)),
    "|": lambda a, b: v.to_int32(v.to_int32(a) | v.to_int32(b)),
}

_LEVELS: tuple[tuple[str, ...], ...] = (
    ("|",),
    ("&",),
    ("==", "!=", "===", "!=="),
    ("<", "<=", ">", ">="),
    ("+", "-"),
    ("*", "/", "%"),
)


def _compare(a: Any, b: Any, op: Callable[[Any, Any], bool]) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return op(a, b)
    return op(v.to_number(a), v.to_number(b))


def _binary(op: str, left: Evaluator, right: Evaluator) -> Evaluator:
    fn = _BINARY[op]
    return lambda table: fn(left(table), right(table))


class _Parser:
    def __init__(
        self,
        source: str,
        tokens: list[Token],
        has_function: Callable[[str], bool],
    ) -> None:
        self._source = source
        self._tokens = tokens
        self._pos = 0
        self._has_function = has_function

    def parse(self) -> Evaluator:
        node = self._ternary()
        if self._pos < len(self._tokens):
            raise self._error(f"unexpected '{self._tokens[self._pos].text}'")
        return node

    # --- Token helpers ---

    def _peek(self) -> Token | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _match(self, *ops: str) -> str | None:
        tok = self._peek()
        if tok is not None and tok.type == TokenType.OPERATOR and tok.text in ops:
            self._pos += 1
            return tok.text
        return None

    def _expect(self, op: str) -> None:
        if self._match(op) is None:
            tok = self._peek()
            found = "end of input" if tok is None else f"'{tok.text}'"
            raise self._error(f"expected '{op}' but found {found}")

    def _error(self, message: str) -> DefinitionError:
        tok = self._peek()
        pos = len(self._source) if tok is None else tok.position
        return DefinitionError(f"{message} at position {pos} in expression '{self._source}'")

    # --- Grammar ---

    def _ternary(self) -> Evaluator:
        cond = self._or()
        if self._match("?") is None:
            return cond
        yes = self._ternary()
        self._expect(":")
        no = self._ternary()
        return lambda table: yes(table) if v.truthy(cond(table)) else no(table)

    def _or(self) -> Evaluator:
        left = self._and()
        while self._match("||"):
            right = self._and()
            left = _short_or(left, right)
        return left

    def _and(self) -> Evaluator:
        left = self._binary_level(0)
        while self._match("&&"):
            right = self._binary_level(0)
            left = _short_and(left, right)
        return left

    def _binary_level(self, level: int) -> Evaluator:
        if level == len(_LEVELS):
            return self._unary()
        left = self._binary_level(level + 1)
        while True:
            op = self._match(*_LEVELS[level])
            if op is None:
                return left
            right = self._binary_level(level + 1)
            left = _binary(op, left, right)

    def _unary(self) -> Evaluator:
        op = self._match("!", "-", "+")
        if op is None:
            return self._primary()
        operand = self._unary()
        if op == "!":
            return lambda table: not v.truthy(operand(table))
        if op == "-":
            return lambda table: -v.to_number(operand(table))
        return lambda table: v.to_number(operand(table))

    def _primary(self) -> Evaluator:
        tok = self._peek()
        if tok is None:
            raise self._error("unexpected end of expression")
        if tok.type in (TokenType.NUMBER, TokenType.BOOLEAN, TokenType.STRING):
            self._pos += 1
            value = tok.value
            return lambda table: value
        if tok.type == TokenType.NAME:
            self._pos += 1
            if self._match("("):
                return self._call(tok)
            name = tok.text
            return lambda table: table.get_var(name)
        if self._match("("):
            inner = self._ternary()
            self._expect(")")
            return inner
        raise self._error(f"unexpected '{tok.text}'")

    def _call(self, name_tok: Token) -> Evaluator:
        name = name_tok.text
        if not self._has_function(name):
            raise DefinitionError(
                f"unsupported function '{name}' at position {name_tok.position} "
                f"in expression '{self._source}'"
            )
        args: list[Evaluator] = []
        if self._match(")") is None:
            while True:
                args.append(self._ternary())
                tok = self._peek()
                if tok is not None and tok.type == TokenType.COMMA:
                    self._pos += 1
                    continue
                self._expect(")")
                break
        arg_fns = tuple(args)
        return lambda table: table.call(name, *(a(table) for a in arg_fns))


def _short_or(left: Evaluator, right: Evaluator) -> Evaluator:
    def fn(table: FunctionTable) -> Any:
        a = left(table)
        return a if v.truthy(a) else right(table)
    return fn


def _short_and(left: Evaluator, right: Evaluator) -> Evaluator:
    def fn(table: FunctionTable) -> Any:
        a = left(table)
        return right(table) if v.truthy(a) else a
    return fn


class ExpressionEngine:
    """Compiles expressions against one function table and caches by source.

    The cache key is the exact source text: textually different but
    equivalent expressions compile separately.
    """

    def __init__(self, table: FunctionTable) -> None:
        self._table = table
        self._cache: dict[str, CompiledExpression] = {}

    @property
    def table(self) -> FunctionTable:
        return self._table

    def compile(self, source: Source | CompiledExpression) -> CompiledExpression:
        if isinstance(source, CompiledExpression):
            return source
        if isinstance(source, (int, float)):
            return constant(source)
        if not isinstance(source, str):
            raise DefinitionError(f"expression must be a string or number, got {source!r}")
        cached = self._cache.get(source)
        if cached is not None:
            return cached
        compiled = compile_expression(source, self._table.has)
        self._cache[source] = compiled
        logger.debug("compiled expression %r", source)
        return compiled

    def eval(self, source: Source | CompiledExpression) -> float:
        return self.compile(source).evaluate(self._table)

    def test(self, source: Source | CompiledExpression) -> bool:
        return self.eval(source) != 0

    def has_function(self, name: str) -> bool:
        return self._table.has(name)

    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()
