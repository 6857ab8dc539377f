"""lore-expr - Expression language compiler for the lore rule engine."""
from __future__ import annotations

from lore_expr.compiler import (
    CompiledExpression,
    ExpressionEngine,
    compile_expression,
    constant,
)
from lore_expr.functions import FunctionTable, math_functions
from lore_expr.tokens import Token, TokenType, tokenize

__all__ = [
    "CompiledExpression",
    "ExpressionEngine",
    "FunctionTable",
    "Token",
    "TokenType",
    "compile_expression",
    "constant",
    "math_functions",
    "tokenize",
]
