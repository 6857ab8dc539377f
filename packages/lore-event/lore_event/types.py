"""Events, pending triggers, flow results and execution contexts."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Protocol, Union

from lore.types import EndGameState

if TYPE_CHECKING:
    from lore.variables import VariableStore
    from lore_effect import Inventory, StatusTable
    from lore_expr import CompiledExpression, ExpressionEngine

    from lore_event.actions import Action, ActionList
    from lore_event.conditions import Condition
    from lore_event.scheduler import EventScheduler

    Amount = Union[float, CompiledExpression]


class Flow(Enum):
    """Result of executing an action."""

    CONTINUE = "continue"
    STOP_LOCAL = "stop_local"
    STOP_GLOBAL = "stop_global"


@dataclass(frozen=True)
class GameEvent:
    """Immutable event definition.

    Runtime facets (enabled flag, occurrence count) live in the scheduler.
    """

    id: str
    trigger: str
    actions: ActionList
    conditions: tuple[Condition, ...] = field(default_factory=tuple)
    probability: Amount = 1.0
    exclusions: tuple[str, ...] = field(default_factory=tuple)
    once: bool = False
    disabled_by_default: bool = False


@dataclass(frozen=True)
class PendingTrigger:
    trigger_id: str
    priority: int
    sequence: int
    probability: float = 1.0


class ActionProxy(Protocol):
    """User-facing side of display actions. Both calls may suspend."""

    async def display_message(
        self, message: str, confirm: str, icon: str = "", fx: str = ""
    ) -> None: ...

    async def display_choices(
        self, message: str, choices: list[tuple[str, int]], icon: str = ""
    ) -> int: ...


@dataclass(frozen=True)
class EvaluationContext:
    """Everything a condition needs: expressions and a random draw."""

    expressions: ExpressionEngine
    random: Callable[[], float]

    def eval(self, expression: Amount | str) -> float:
        return self.expressions.eval(expression)

    def test(self, expression: Amount | str) -> bool:
        return self.expressions.eval(expression) != 0


@dataclass(frozen=True)
class ExecutionContext(EvaluationContext):
    """Evaluation context plus the state actions are allowed to mutate."""

    proxy: ActionProxy
    variables: VariableStore
    inventory: Inventory
    status_table: StatusTable
    scheduler: EventScheduler
    set_end_game: Callable[[EndGameState, str], None]
    end_game_state: Callable[[], EndGameState]
    on_action_executed: Callable[[Action], None] | None = None

    def game_over(self) -> bool:
        return self.end_game_state() != EndGameState.NONE
