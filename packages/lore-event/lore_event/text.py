"""Message text sources: constant, random pick, or condition-selected."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from lore.rng import weighted_sample
from lore.types import EvaluationError
from lore_expr import CompiledExpression

from lore_event.conditions import Condition, check

if TYPE_CHECKING:
    from lore_event.types import EvaluationContext


@dataclass(frozen=True)
class ConstantText:
    text: str


@dataclass(frozen=True)
class RandomText:
    """One of ``texts``, uniformly or by ``weights`` when given."""

    texts: tuple[str, ...]
    weights: tuple[Union[float, CompiledExpression], ...] | None = None


@dataclass(frozen=True)
class ConditionalText:
    """First branch whose condition holds, else ``default``."""

    default: str
    branches: tuple[tuple[Condition, str], ...] = field(default_factory=tuple)


TextSource = Union[ConstantText, RandomText, ConditionalText]


def resolve_text(source: TextSource, ctx: EvaluationContext) -> str:
    if isinstance(source, ConstantText):
        return source.text
    if isinstance(source, RandomText):
        if source.weights is None:
            return source.texts[math.floor(ctx.random() * len(source.texts))]
        weights = [ctx.eval(w) for w in source.weights]
        try:
            return source.texts[weighted_sample(weights, ctx.random)]
        except ValueError as exc:
            raise EvaluationError(f"invalid text weights {weights}: {exc}") from exc
    if isinstance(source, ConditionalText):
        for condition, text in source.branches:
            if check(condition, ctx):
                return text
        return source.default
    raise TypeError(f"unknown text source {source!r}")


def text_keys(source: TextSource) -> list[str]:
    """Every text a source can produce, in declaration order."""
    if isinstance(source, ConstantText):
        return [source.text]
    if isinstance(source, RandomText):
        return list(source.texts)
    if isinstance(source, ConditionalText):
        return [text for _, text in source.branches] + [source.default]
    raise TypeError(f"unknown text source {source!r}")
