"""lore-effect - Attributes, effect providers and the modifier algebra."""
from __future__ import annotations

from lore_effect.collection import (
    COLLECTION_CHANGED,
    EffectProviderCollection,
    Inventory,
    StatusTable,
)
from lore_effect.definitions import parse_attribute, parse_item, parse_modifier, parse_status
from lore_effect.modifiers import attribute_value, combine, effect_value
from lore_effect.registry import Registry
from lore_effect.types import (
    Attribute,
    CombinedAmounts,
    EffectProvider,
    Item,
    Modifier,
    ModifierType,
    Status,
)

__all__ = [
    "Attribute",
    "COLLECTION_CHANGED",
    "CombinedAmounts",
    "EffectProvider",
    "EffectProviderCollection",
    "Inventory",
    "Item",
    "Modifier",
    "ModifierType",
    "Registry",
    "Status",
    "StatusTable",
    "attribute_value",
    "combine",
    "effect_value",
    "parse_attribute",
    "parse_item",
    "parse_modifier",
    "parse_status",
]
