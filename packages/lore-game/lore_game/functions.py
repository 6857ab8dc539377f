"""Game-state functions exposed to expressions."""
from __future__ import annotations

from typing import TYPE_CHECKING

from lore_expr import FunctionTable, math_functions

if TYPE_CHECKING:
    from lore_game.engine import GameEngine


def game_function_table(engine: GameEngine) -> FunctionTable:
    """Math helpers plus read-only queries over *engine*'s state.

    Bare names in expressions resolve through ``getVar``.
    """
    variables = engine.variables
    inventory = engine.inventory
    status_table = engine.status_table
    scheduler = engine.scheduler

    table = FunctionTable(variables.get_var, math_functions(engine.random))
    table.register_all(
        {
            "getVar": variables.get_var,
            "itemCount": inventory.count,
            "hasItem": lambda id: inventory.count(id) > 0,
            "hasStatus": lambda id: status_table.count(id) > 0,
            "eventOccurred": scheduler.occurred,
            "eventCount": scheduler.occurrence_count,
            "effectValue": engine.effect_value,
            "attributeValue": engine.attribute_value,
        }
    )
    return table
