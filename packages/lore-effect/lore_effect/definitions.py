"""Parse attribute, item and status records into definitions.

Record shapes::

    attribute: {id, baseValue, minValue?, maxValue?}
    item:      {id, rarity?, icon?, effects?: [modifier, ...]}
    status:    {id, duration?, icon?, effects?: [modifier, ...]}
    modifier:  {target, type, amount}

``type`` is one of Absolute, Relative, RelativeToBase, Assignment.
``amount`` is a number or an expression string.
"""
from __future__ import annotations

import math
from typing import Any

from lore.types import DefinitionError
from lore_expr import ExpressionEngine

from lore_effect.registry import Registry
from lore_effect.types import Attribute, Item, Modifier, ModifierType, Status


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_id(record: Any, kind: str) -> str:
    if not isinstance(record, dict):
        raise DefinitionError(f"{kind} definition must be a mapping, got {record!r}")
    id = record.get("id")
    if not isinstance(id, str) or not id:
        raise DefinitionError(f"{kind} definition is missing a string 'id'")
    return id


def _optional_number(record: dict[str, Any], key: str, default: float, owner: str) -> float:
    if key not in record:
        return default
    value = record[key]
    if not _is_number(value) or math.isnan(value):
        raise DefinitionError(f"{owner}: '{key}' must be a valid number, got {value!r}")
    return value


def parse_attribute(record: Any) -> Attribute:
    id = _require_id(record, "attribute")
    owner = f"attribute '{id}'"
    if "baseValue" not in record:
        raise DefinitionError(f"{owner}: missing required field 'baseValue'")
    base = _optional_number(record, "baseValue", 0.0, owner)
    lo = _optional_number(record, "minValue", -math.inf, owner)
    hi = _optional_number(record, "maxValue", math.inf, owner)
    if lo > hi:
        raise DefinitionError(f"{owner}: minValue {lo} exceeds maxValue {hi}")
    return Attribute(id, base, lo, hi)


def parse_modifier(
    record: Any,
    owner: str,
    compiler: ExpressionEngine | None = None,
    attributes: Registry[Attribute] | None = None,
) -> Modifier:
    if not isinstance(record, dict):
        raise DefinitionError(f"{owner}: modifier must be a mapping, got {record!r}")
    target = record.get("target")
    if not isinstance(target, str) or not target:
        raise DefinitionError(f"{owner}: modifier is missing a string 'target'")
    try:
        mtype = ModifierType(record.get("type"))
    except ValueError:
        raise DefinitionError(
            f"{owner}: unknown modifier type {record.get('type')!r} for '{target}'"
        ) from None
    if mtype == ModifierType.RELATIVE_TO_BASE and (
        attributes is None or not attributes.has(target)
    ):
        raise DefinitionError(
            f"{owner}: RelativeToBase modifier needs an attribute target, got '{target}'"
        )
    if "amount" not in record:
        raise DefinitionError(f"{owner}: modifier for '{target}' is missing 'amount'")
    amount = record["amount"]
    if _is_number(amount):
        return Modifier(target, mtype, amount)
    if isinstance(amount, str) and compiler is not None:
        return Modifier(target, mtype, compiler.compile(amount))
    raise DefinitionError(f"{owner}: modifier amount for '{target}' must be a number")


def _parse_modifiers(
    record: dict[str, Any],
    owner: str,
    compiler: ExpressionEngine | None,
    attributes: Registry[Attribute] | None,
) -> tuple[Modifier, ...]:
    effects = record.get("effects", [])
    if not isinstance(effects, list):
        raise DefinitionError(f"{owner}: 'effects' must be a list")
    return tuple(parse_modifier(e, owner, compiler, attributes) for e in effects)


def _optional_icon(record: dict[str, Any], owner: str) -> str:
    icon = record.get("icon", "")
    if not isinstance(icon, str):
        raise DefinitionError(f"{owner}: 'icon' must be a string")
    return icon


def parse_item(
    record: Any,
    compiler: ExpressionEngine | None = None,
    attributes: Registry[Attribute] | None = None,
) -> Item:
    id = _require_id(record, "item")
    owner = f"item '{id}'"
    rarity = _optional_number(record, "rarity", 0, owner)
    return Item(
        id=id,
        rarity=int(rarity),
        icon=_optional_icon(record, owner),
        modifiers=_parse_modifiers(record, owner, compiler, attributes),
    )


def parse_status(
    record: Any,
    compiler: ExpressionEngine | None = None,
    attributes: Registry[Attribute] | None = None,
) -> Status:
    id = _require_id(record, "status")
    owner = f"status '{id}'"
    duration = _optional_number(record, "duration", math.inf, owner)
    if duration <= 0:
        raise DefinitionError(f"{owner}: 'duration' must be > 0, got {duration}")
    return Status(
        id=id,
        duration=duration,
        icon=_optional_icon(record, owner),
        modifiers=_parse_modifiers(record, owner, compiler, attributes),
    )
