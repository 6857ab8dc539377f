"""lore-game - Host engine driving a lore story tick by tick."""
from __future__ import annotations

from lore_game.config import GameConfig
from lore_game.engine import GameEnd, GameEngine
from lore_game.functions import game_function_table

__all__ = [
    "GameConfig",
    "GameEnd",
    "GameEngine",
    "game_function_table",
]
