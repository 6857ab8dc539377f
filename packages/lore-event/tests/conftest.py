"""Shared fixtures: a fully wired execution context with a scripted UI proxy."""
from __future__ import annotations

from typing import Any

import pytest

from lore import EndGameState, VariableStore
from lore_effect import Inventory, Item, Registry, Status, StatusTable
from lore_event import (
    Action,
    ActionList,
    Condition,
    EventLoader,
    EventScheduler,
    ExecutionContext,
    Flow,
    default_action_factory,
    default_condition_factory,
)
from lore_expr import ExpressionEngine, FunctionTable, math_functions


class FakeProxy:
    """Records what was displayed and answers choices from a script."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self.prompts: list[tuple[str, list[tuple[str, int]]]] = []
        self.answers: list[int] = []

    async def display_message(self, message: str, confirm: str, icon: str = "", fx: str = "") -> None:
        self.messages.append((message, confirm))

    async def display_choices(self, message: str, choices: list[tuple[str, int]], icon: str = "") -> int:
        self.prompts.append((message, choices))
        return self.answers.pop(0)


class Harness:
    def __init__(self) -> None:
        self.variables = VariableStore()
        self.items: Registry[Item] = Registry("item")
        self.items.add_all([Item("sword"), Item("coin")])
        self.statuses: Registry[Status] = Registry("status")
        self.statuses.add_all([Status("poisoned", duration=2), Status("blessed")])
        self.inventory = Inventory(self.items)
        self.status_table = StatusTable(self.statuses)
        self.scheduler = EventScheduler()
        self.draws: list[float] = []
        self.hits: list[float] = []

        table = FunctionTable(self.variables.get_var, math_functions(self.random))
        table.register("itemCount", self.inventory.count)
        table.register("hit", self._hit)
        self.expressions = ExpressionEngine(table)
        self.conditions = default_condition_factory(self.expressions)
        self.actions = default_action_factory(self.expressions, self.conditions)
        self.loader = EventLoader(self.conditions, self.actions)

        self.proxy = FakeProxy()
        self.end_state = EndGameState.NONE
        self.ending = ""
        self.executed: list[Action] = []
        self.ctx = ExecutionContext(
            expressions=self.expressions,
            random=self.random,
            proxy=self.proxy,
            variables=self.variables,
            inventory=self.inventory,
            status_table=self.status_table,
            scheduler=self.scheduler,
            set_end_game=self._set_end_game,
            end_game_state=lambda: self.end_state,
            on_action_executed=self.executed.append,
        )

    def random(self) -> float:
        """Next scripted draw, or 0.5 once the script runs out."""
        return self.draws.pop(0) if self.draws else 0.5

    def _hit(self, value: float = 1) -> float:
        self.hits.append(value)
        return value

    def _set_end_game(self, state: EndGameState, ending: str) -> None:
        self.end_state = state
        self.ending = ending

    def condition(self, record: Any) -> Condition:
        return self.conditions.from_record(record)

    def action_list(self, records: list[Any]) -> ActionList:
        return self.actions.from_records(records)

    async def run(self, records: list[Any]) -> Flow:
        return await self.action_list(records).run(self.ctx)

    def load(self, text: str) -> None:
        self.scheduler.register_all(self.loader.load_from_string(text))

    async def drain(self) -> int:
        passes = 0
        while await self.scheduler.process_next_trigger(self.ctx):
            passes += 1
        return passes


@pytest.fixture
def harness() -> Harness:
    return Harness()
