"""GameEngine - wires the stores, content and scheduler into a game loop."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

import yaml

from lore import (
    DefinitionError,
    EndGameState,
    NotificationQueue,
    RandomSource,
    SnapshotError,
    UsageError,
    VariableStore,
)
from lore.rng import new_seed as _new_seed
from lore_effect import (
    Attribute,
    CombinedAmounts,
    Inventory,
    Item,
    Registry,
    Status,
    StatusTable,
    attribute_value,
    combine,
    effect_value,
    parse_attribute,
    parse_item,
    parse_status,
)
from lore_event import (
    Action,
    ActionFactory,
    ActionProxy,
    ConditionFactory,
    EventLoader,
    EventScheduler,
    ExecutionContext,
    PendingTrigger,
    default_action_factory,
    default_condition_factory,
    load_content,
)
from lore_expr import ExpressionEngine

from lore_game.config import GameConfig
from lore_game.functions import game_function_table

logger = logging.getLogger(__name__)

_SNAPSHOT_VERSION = 1
_SECTIONS = ("attributes", "items", "status", "events")


@dataclass(frozen=True)
class GameEnd:
    """Passed to ``on_game_end`` observers."""

    state: EndGameState
    ending_type: str


class GameEngine:
    def __init__(self, config: GameConfig | None = None, proxy: ActionProxy | None = None) -> None:
        if proxy is None:
            raise ValueError("a GameEngine needs an action proxy")
        self._config = config if config is not None else GameConfig()
        self._proxy = proxy
        self._notifications = NotificationQueue()
        self._variables = VariableStore(self._notifications)
        self._attributes: Registry[Attribute] = Registry("attribute")
        self._items: Registry[Item] = Registry("item")
        self._statuses: Registry[Status] = Registry("status")
        self._inventory = Inventory(self._items, self._config.item_max_stack, self._notifications)
        self._status_table = StatusTable(self._statuses, self._notifications)
        self._random = RandomSource(self._config.initial_seed)
        self._scheduler = EventScheduler()
        self._expressions = ExpressionEngine(game_function_table(self))
        self._conditions = default_condition_factory(self._expressions)
        self._actions = default_action_factory(self._expressions, self._conditions)
        self._loader = EventLoader(self._conditions, self._actions)

        self._end_state = EndGameState.NONE
        self._ending_type = ""
        self._started = False
        self._action_hooks: list[Callable[[Action], None]] = []
        self._end_hooks: list[Callable[[GameEnd], None]] = []

        self._ctx = ExecutionContext(
            expressions=self._expressions,
            random=self._random,
            proxy=self._proxy,
            variables=self._variables,
            inventory=self._inventory,
            status_table=self._status_table,
            scheduler=self._scheduler,
            set_end_game=self._set_end_game,
            end_game_state=lambda: self._end_state,
            on_action_executed=self._action_executed,
        )

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def proxy(self) -> ActionProxy:
        return self._proxy

    @property
    def notifications(self) -> NotificationQueue:
        return self._notifications

    @property
    def variables(self) -> VariableStore:
        return self._variables

    @property
    def random(self) -> RandomSource:
        return self._random

    @property
    def attributes(self) -> Registry[Attribute]:
        return self._attributes

    @property
    def items(self) -> Registry[Item]:
        return self._items

    @property
    def statuses(self) -> Registry[Status]:
        return self._statuses

    @property
    def inventory(self) -> Inventory:
        return self._inventory

    @property
    def status_table(self) -> StatusTable:
        return self._status_table

    @property
    def expressions(self) -> ExpressionEngine:
        return self._expressions

    @property
    def conditions(self) -> ConditionFactory:
        return self._conditions

    @property
    def actions(self) -> ActionFactory:
        return self._actions

    @property
    def scheduler(self) -> EventScheduler:
        return self._scheduler

    @property
    def end_state(self) -> EndGameState:
        return self._end_state

    @property
    def ending_type(self) -> str:
        return self._ending_type

    @property
    def game_over(self) -> bool:
        return self._end_state != EndGameState.NONE

    @property
    def started(self) -> bool:
        return self._started

    # --- Content ---

    def load(self, definitions: dict[str, Any]) -> None:
        """Load ``{attributes, items, status, events}`` record lists.

        Attributes are registered first so item and status modifiers can
        refer to them.
        """
        if not isinstance(definitions, dict):
            raise DefinitionError("game definitions must be a mapping")
        unknown = set(definitions) - set(_SECTIONS)
        if unknown:
            raise DefinitionError(f"unknown definition sections: {sorted(unknown)}")
        for section in _SECTIONS:
            if definitions.get(section) is None:
                logger.warning("missing %s definitions, none loaded", section)
            elif not isinstance(definitions[section], list):
                raise DefinitionError(f"'{section}' must be a list")

        for record in definitions.get("attributes") or []:
            self._attributes.add(parse_attribute(record))
        for record in definitions.get("items") or []:
            self._items.add(parse_item(record, self._expressions, self._attributes))
        for record in definitions.get("status") or []:
            self._statuses.add(parse_status(record, self._expressions, self._attributes))
        events = self._loader.parse_events(definitions.get("events") or [])
        self._scheduler.register_all(events)
        logger.info(
            "loaded %d attributes, %d items, %d statuses, %d events",
            len(self._attributes),
            len(self._items),
            len(self._statuses),
            len(events),
        )

    def load_yaml(self, text: str) -> None:
        try:
            data = load_content(text)
        except yaml.YAMLError as exc:
            raise DefinitionError(f"invalid game YAML: {exc}") from exc
        self.load(data if data is not None else {})

    # --- Observers ---

    def on_action_executed(self, hook: Callable[[Action], None]) -> None:
        self._action_hooks.append(hook)

    def on_game_end(self, hook: Callable[[GameEnd], None]) -> None:
        self._end_hooks.append(hook)

    def _action_executed(self, action: Action) -> None:
        for hook in self._action_hooks:
            hook(action)

    def _set_end_game(self, state: EndGameState, ending_type: str) -> None:
        self._end_state = state
        if ending_type:
            self._ending_type = ending_type

    # --- Lifecycle ---

    def start(self, new_seed: bool = False) -> None:
        """Start or restart the game.

        With *new_seed* the random source is reseeded from the OS, otherwise
        the current seed's sequence is replayed from its beginning.
        """
        self._variables.reset()
        self._inventory.clear()
        self._status_table.clear()
        self._end_state = EndGameState.NONE
        self._ending_type = ""
        self._random.reset(_new_seed() if new_seed else None)
        self._scheduler.reset()
        self._scheduler.trigger(self._config.initialization_trigger)
        self._started = True
        logger.info("game started with seed %s", self._random.seed)

    def trigger(self, trigger_id: str, probability: float = 1.0, priority: int = 0) -> PendingTrigger:
        return self._scheduler.trigger(trigger_id, probability, priority)

    async def run_pending(self) -> int:
        """Process queued triggers until none is left or the game ends.

        Returns the number of triggers processed.
        """
        processed = 0
        while not self.game_over and await self._scheduler.process_next_trigger(self._ctx):
            processed += 1
        return processed

    async def step(self) -> EndGameState:
        """Advance one tick.

        Returns the end state reached during this tick, NONE if the game
        goes on. Statuses only age on ticks that did not end the game.
        """
        if not self._started:
            raise UsageError("start() must be called before step()")
        if self.game_over:
            raise UsageError("the game has ended; call start() to play again")
        self._scheduler.trigger(self._config.tick_trigger)
        await self.run_pending()
        state = self._end_state
        if state != EndGameState.NONE:
            self._finish(state)
        else:
            for status_id in self._status_table.tick():
                logger.debug("status %s expired", status_id)
        self._notifications.drain()
        return state

    def _finish(self, state: EndGameState) -> None:
        logger.info("game ended: %s (%s)", state.value, self._ending_type or "-")
        end = GameEnd(state, self._ending_type)
        for hook in self._end_hooks:
            hook(end)
        if self._config.restart_on_end:
            self.start(new_seed=state == EndGameState.WIN)

    # --- Queries ---

    def combined(self, target: str) -> CombinedAmounts:
        """Inventory stacks first, then active statuses."""
        stacks = self._inventory.stacks() + self._status_table.stacks()
        return combine(stacks, target, self._expressions.eval)

    def effect_value(self, target: str) -> float:
        return effect_value(self.combined(target))

    def attribute_value(self, attribute_id: str) -> float:
        return attribute_value(self._attributes.get(attribute_id), self.combined(attribute_id))

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "version": _SNAPSHOT_VERSION,
            "started": self._started,
            "end_state": self._end_state.value,
            "ending_type": self._ending_type,
            "random": self._random.snapshot(),
            "variables": self._variables.snapshot(),
            "inventory": self._inventory.snapshot(),
            "status_table": self._status_table.snapshot(),
            "scheduler": self._scheduler.snapshot(),
        }

    def restore(self, data: dict[str, Any]) -> None:
        """Restore runtime state. Content must be loaded first."""
        version = data.get("version")
        if version != _SNAPSHOT_VERSION:
            raise SnapshotError(
                f"Unsupported snapshot version {version!r}, expected {_SNAPSHOT_VERSION}"
            )
        try:
            end_state = EndGameState(data["end_state"])
            ending_type = str(data["ending_type"])
            started = bool(data["started"])
            sections = [data[key] for key in ("random", "variables", "inventory", "status_table", "scheduler")]
        except (KeyError, ValueError) as exc:
            raise SnapshotError(f"malformed game snapshot: {exc}") from exc
        random_state, variables, inventory, status_table, scheduler = sections

        self._random.restore(random_state)
        self._variables.restore(variables)
        self._inventory.restore(inventory)
        self._status_table.restore(status_table)
        self._scheduler.restore(scheduler)
        self._end_state = end_state
        self._ending_type = ending_type
        self._started = started
