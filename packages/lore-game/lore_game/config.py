"""Game configuration dataclass."""
from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GameConfig:
    """Immutable configuration for a GameEngine.

    Attributes:
        initial_seed: Seed of the random source. A fresh one is drawn from
            the OS when None.
        initialization_trigger: Trigger enqueued by ``start()``.
        tick_trigger: Trigger enqueued by every ``step()``.
        item_max_stack: Cap for inventory stacks.
        restart_on_end: Restart automatically once the game has ended. A
            win restarts with a new seed, a loss replays the same one.
    """

    initial_seed: str | None = None
    initialization_trigger: str = "Initialization"
    tick_trigger: str = "Tick"
    item_max_stack: float = math.inf
    restart_on_end: bool = True

    def __post_init__(self) -> None:
        if not self.initialization_trigger or not self.tick_trigger:
            raise ValueError("trigger ids must not be empty")
        if self.item_max_stack < 1:
            raise ValueError(f"item_max_stack must be >= 1, got {self.item_max_stack}")
