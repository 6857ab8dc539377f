"""Condition variants and their evaluation."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from lore_expr import CompiledExpression

if TYPE_CHECKING:
    from lore_event.types import EvaluationContext


@dataclass(frozen=True)
class Expr:
    """True iff the expression evaluates to a non-zero number."""

    expression: CompiledExpression


@dataclass(frozen=True)
class Not:
    condition: Condition


@dataclass(frozen=True)
class AllOf:
    """True iff every child holds. Stops at the first false child."""

    conditions: tuple[Condition, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AnyOf:
    """True iff some child holds. Stops at the first true child."""

    conditions: tuple[Condition, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SomeOf:
    """True iff the number of true children lies in [min, max].

    Every child is evaluated. ``max`` of None means the number of children.
    """

    conditions: tuple[Condition, ...] = field(default_factory=tuple)
    min: Union[float, CompiledExpression] = 1
    max: Union[float, CompiledExpression, None] = None


Condition = Union[Expr, Not, AllOf, AnyOf, SomeOf]


def check(condition: Condition, ctx: EvaluationContext) -> bool:
    if isinstance(condition, Expr):
        return ctx.test(condition.expression)
    if isinstance(condition, Not):
        return not check(condition.condition, ctx)
    if isinstance(condition, AllOf):
        return all(check(c, ctx) for c in condition.conditions)
    if isinstance(condition, AnyOf):
        return any(check(c, ctx) for c in condition.conditions)
    if isinstance(condition, SomeOf):
        hits = [check(c, ctx) for c in condition.conditions].count(True)
        lo = ctx.eval(condition.min)
        hi = len(condition.conditions) if condition.max is None else ctx.eval(condition.max)
        return lo <= hits <= hi
    raise TypeError(f"unknown condition {condition!r}")


def check_all(conditions: tuple[Condition, ...] | list[Condition], ctx: EvaluationContext) -> bool:
    for condition in conditions:
        if not check(condition, ctx):
            return False
    return True
