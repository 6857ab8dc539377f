"""Attribute, modifier and effect-provider definitions."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from lore_expr import CompiledExpression


class ModifierType(Enum):
    ABSOLUTE = "Absolute"
    RELATIVE = "Relative"
    RELATIVE_TO_BASE = "RelativeToBase"
    ASSIGNMENT = "Assignment"


@dataclass(frozen=True)
class Attribute:
    """A derived numeric value with a base and inclusive bounds."""

    id: str
    base_value: float
    min_value: float = -math.inf
    max_value: float = math.inf

    def __post_init__(self) -> None:
        if self.min_value > self.max_value:
            raise ValueError(
                f"attribute '{self.id}': min {self.min_value} exceeds max {self.max_value}"
            )


@dataclass(frozen=True)
class Modifier:
    target: str
    type: ModifierType
    amount: Union[float, CompiledExpression]


@dataclass(frozen=True)
class Item:
    """Inventory effect provider."""

    id: str
    rarity: int = 0
    icon: str = ""
    modifiers: tuple[Modifier, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Status:
    """Status effect provider. Duration is in ticks; inf never expires."""

    id: str
    duration: float = math.inf
    icon: str = ""
    modifiers: tuple[Modifier, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise ValueError(f"status '{self.id}': duration must be > 0, got {self.duration}")


EffectProvider = Union[Item, Status]


@dataclass(frozen=True)
class CombinedAmounts:
    """Per-type aggregate of every matching modifier for one target.

    ``relative`` is the multiplicative accumulator, starting at 1.
    ``assignment`` is set when an Assignment modifier applied.
    """

    absolute: float = 0.0
    relative: float = 1.0
    relative_to_base: float = 0.0
    assignment: float | None = None
