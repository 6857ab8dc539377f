"""Modifier combination algebra.

Stacks are combined per target::

    absolute          += amount * count
    relative_to_base  += amount * count
    relative          *= (1 + amount) ** count
    assignment         = first Assignment met in iteration order

An attribute then resolves as ``clamp((base * (1 + rtb) + abs) * relative)``
and a plain effect value as ``abs * relative``. An Assignment short-circuits
both and is returned as-is.
"""
from __future__ import annotations

from typing import Callable, Iterable

from lore_expr import CompiledExpression

from lore_effect.types import Attribute, CombinedAmounts, EffectProvider, ModifierType

AmountEvaluator = Callable[[CompiledExpression], float]
Stack = tuple[EffectProvider, int]


def combine(
    stacks: Iterable[Stack],
    target: str,
    evaluate: AmountEvaluator | None = None,
) -> CombinedAmounts:
    """Aggregate every modifier aimed at *target* across *stacks*."""
    absolute = 0.0
    relative = 1.0
    relative_to_base = 0.0
    for provider, count in stacks:
        for modifier in provider.modifiers:
            if modifier.target != target:
                continue
            amount = _amount(modifier.amount, evaluate)
            if modifier.type == ModifierType.ASSIGNMENT:
                return CombinedAmounts(absolute, relative, relative_to_base, amount)
            if modifier.type == ModifierType.ABSOLUTE:
                absolute += amount * count
            elif modifier.type == ModifierType.RELATIVE:
                relative *= (1 + amount) ** count
            elif modifier.type == ModifierType.RELATIVE_TO_BASE:
                relative_to_base += amount * count
    return CombinedAmounts(absolute, relative, relative_to_base)


def attribute_value(attribute: Attribute, combined: CombinedAmounts) -> float:
    if combined.assignment is not None:
        return combined.assignment
    value = attribute.base_value * (1 + combined.relative_to_base)
    value = value + combined.absolute
    value = value * combined.relative
    return min(max(value, attribute.min_value), attribute.max_value)


def effect_value(combined: CombinedAmounts) -> float:
    if combined.assignment is not None:
        return combined.assignment
    return combined.absolute * combined.relative


def _amount(amount: float | CompiledExpression, evaluate: AmountEvaluator | None) -> float:
    if isinstance(amount, CompiledExpression):
        if evaluate is None:
            raise ValueError(f"modifier amount '{amount.source}' needs an evaluator")
        return evaluate(amount)
    return amount
