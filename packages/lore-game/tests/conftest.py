from __future__ import annotations

from typing import Any, Callable

import pytest

from lore_game import GameConfig, GameEngine

STORY = """
attributes:
  - {id: strength, baseValue: 10, minValue: 0, maxValue: 100}
items:
  - id: sword
    effects:
      - {target: strength, type: Absolute, amount: 5}
  - id: charm
    effects:
      - {target: luck, type: Relative, amount: 0.5}
      - {target: luck, type: Absolute, amount: 2}
status:
  - id: blessed
    duration: 2
    effects:
      - {target: strength, type: RelativeToBase, amount: 0.5}
events:
  - id: setup
    trigger: Initialization
    actions:
      - {id: UpdateVariables, updates: {day: 0, rain: 0}}
  - id: new_day
    trigger: Tick
    actions:
      - {id: UpdateVariable, variable: day, value: "day + 1"}
      - id: CoinFlip
        probability: 0.5
        success:
          - {id: UpdateVariable, variable: rain, value: "rain + 1"}
  - id: blessing
    trigger: Tick
    once: true
    actions:
      - {id: SetStatus, statusId: blessed, on: true}
      - {id: DisplayMessage, message: "You feel blessed", confirm: Thanks}
  - id: victory
    trigger: Tick
    conditions: [{id: Expression, expression: "day >= 3"}]
    actions:
      - {id: EndGame, message: "You made it", confirm: Again, winning: true, endingType: triumph}
"""


class ScriptedProxy:
    def __init__(self) -> None:
        self.messages: list[str] = []
        self.answers: list[int] = []

    async def display_message(self, message: str, confirm: str, icon: str = "", fx: str = "") -> None:
        self.messages.append(message)

    async def display_choices(self, message: str, choices: list[tuple[str, int]], icon: str = "") -> int:
        return self.answers.pop(0)


@pytest.fixture
def proxy() -> ScriptedProxy:
    return ScriptedProxy()


@pytest.fixture
def make_engine(proxy: ScriptedProxy) -> Callable[..., GameEngine]:
    def make(seed: str = "lore-tests", **config: Any) -> GameEngine:
        engine = GameEngine(GameConfig(initial_seed=seed, **config), proxy)
        engine.load_yaml(STORY)
        return engine

    return make


@pytest.fixture
def engine(make_engine: Callable[..., GameEngine]) -> GameEngine:
    return make_engine()
