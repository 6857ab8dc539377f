"""Action variants, action lists and the async executor.

Every action yields a Flow. A list stops on STOP_LOCAL and reports CONTINUE
to its caller; STOP_GLOBAL propagates through every enclosing list. Once an
end-game state is set, the running list returns STOP_GLOBAL after the action
that set it.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, Sequence, Union

from lore.rng import weighted_sample
from lore.types import EndGameState, EvaluationError, UsageError
from lore_expr import CompiledExpression

from lore_event.conditions import Condition, check
from lore_event.text import TextSource, resolve_text, text_keys
from lore_event.types import Flow

if TYPE_CHECKING:
    from lore_event.types import ExecutionContext, GameEvent

logger = logging.getLogger(__name__)

Amount = Union[float, CompiledExpression]


class ActionList:
    """Ordered actions with sequential execution.

    A list cannot be started again while it is still executing.
    """

    def __init__(self, actions: Sequence[Action] = ()) -> None:
        self._actions: tuple[Action, ...] = tuple(actions)
        self._executing = False

    @property
    def actions(self) -> tuple[Action, ...]:
        return self._actions

    @property
    def executing(self) -> bool:
        return self._executing

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[Action]:
        return iter(self._actions)

    def __repr__(self) -> str:
        return f"ActionList({list(self._actions)!r})"

    async def run(self, ctx: ExecutionContext) -> Flow:
        if self._executing:
            raise UsageError("action list is already executing")
        self._executing = True
        try:
            for action in self._actions:
                flow = await execute(action, ctx)
                if ctx.on_action_executed is not None:
                    ctx.on_action_executed(action)
                if flow == Flow.STOP_LOCAL:
                    return Flow.CONTINUE
                if flow == Flow.STOP_GLOBAL or ctx.game_over():
                    return Flow.STOP_GLOBAL
            return Flow.CONTINUE
        finally:
            self._executing = False


def _empty() -> ActionList:
    return ActionList()


# --- Display ---


@dataclass(frozen=True)
class Log:
    message: str


@dataclass(frozen=True)
class DisplayMessage:
    message: TextSource
    confirm: TextSource
    icon: str = ""
    fx: str = ""


@dataclass(frozen=True)
class DisplayRandomMessage:
    """Shows one of ``messages``, picked uniformly."""

    messages: tuple[TextSource, ...]
    confirm: TextSource
    icon: str = ""


@dataclass(frozen=True)
class Choice:
    message: TextSource
    requirement: Condition | None = None
    actions: ActionList = field(default_factory=_empty)


@dataclass(frozen=True)
class DisplayChoices:
    """Offers the choices whose requirement holds and runs the one picked."""

    message: TextSource
    choices: tuple[Choice, ...]
    icon: str = ""


# --- Control flow ---


@dataclass(frozen=True)
class WeightedGroup:
    weight: Amount
    actions: ActionList


@dataclass(frozen=True)
class Random:
    """Runs exactly one group, picked by weight."""

    groups: tuple[WeightedGroup, ...]


@dataclass(frozen=True)
class CoinFlip:
    probability: Amount
    success: ActionList = field(default_factory=_empty)
    fail: ActionList = field(default_factory=_empty)


@dataclass(frozen=True)
class Branch:
    condition: Condition
    actions: ActionList


@dataclass(frozen=True)
class Switch:
    """First branch whose condition holds runs; no fallthrough."""

    branches: tuple[Branch, ...]


@dataclass(frozen=True)
class Loop:
    """Repeats ``body`` until ``stop_condition`` holds.

    ``max_iterations`` of 0 means unbounded. With
    ``check_stop_condition_at_end`` the body runs before the first check.
    """

    body: ActionList
    stop_condition: Condition | None = None
    max_iterations: int = 0
    check_stop_condition_at_end: bool = False


@dataclass(frozen=True)
class Stop:
    """Stops the enclosing list, or the whole event when ``is_global``."""

    is_global: bool = False


# --- State mutation ---


@dataclass(frozen=True)
class UpdateVariable:
    variable: str
    value: Amount


@dataclass(frozen=True)
class UpdateVariables:
    updates: tuple[tuple[str, Amount], ...]


@dataclass(frozen=True)
class UpdateVariableLimits:
    variable: str
    lower: Amount = -math.inf
    upper: Amount = math.inf


@dataclass(frozen=True)
class GiveItem:
    """Adds a positive amount; a negative amount removes its magnitude."""

    item_id: str
    amount: Amount = 1


@dataclass(frozen=True)
class UpdateItemAmounts:
    updates: tuple[tuple[str, Amount], ...]


@dataclass(frozen=True)
class SetStatus:
    status_id: str
    on: bool = True


# --- Scheduler ---


@dataclass(frozen=True)
class TriggerSpec:
    id: str
    probability: Amount = 1.0
    priority: int = 0


@dataclass(frozen=True)
class TriggerEvents:
    """Enqueues triggers; nothing runs until the scheduler pops them."""

    triggers: tuple[TriggerSpec, ...]


@dataclass(frozen=True)
class EnableEvents:
    event_ids: tuple[str, ...]


@dataclass(frozen=True)
class DisableEvents:
    event_ids: tuple[str, ...]


@dataclass(frozen=True)
class EndGame:
    message: TextSource
    confirm: TextSource
    winning: bool = False
    ending_type: str = ""
    fx: str = ""


Action = Union[
    Log,
    DisplayMessage,
    DisplayRandomMessage,
    DisplayChoices,
    Random,
    CoinFlip,
    Switch,
    Loop,
    Stop,
    UpdateVariable,
    UpdateVariables,
    UpdateVariableLimits,
    GiveItem,
    UpdateItemAmounts,
    SetStatus,
    TriggerEvents,
    EnableEvents,
    DisableEvents,
    EndGame,
]


# --- Execution ---


async def execute(action: Action, ctx: ExecutionContext) -> Flow:
    """Execute one action against *ctx*."""
    if isinstance(action, Log):
        logger.info("%s", action.message)
        return Flow.CONTINUE
    if isinstance(action, DisplayMessage):
        await ctx.proxy.display_message(
            resolve_text(action.message, ctx),
            resolve_text(action.confirm, ctx),
            action.icon,
            action.fx,
        )
        return Flow.CONTINUE
    if isinstance(action, DisplayRandomMessage):
        index = math.floor(ctx.random() * len(action.messages))
        await ctx.proxy.display_message(
            resolve_text(action.messages[index], ctx),
            resolve_text(action.confirm, ctx),
            action.icon,
        )
        return Flow.CONTINUE
    if isinstance(action, DisplayChoices):
        return await _display_choices(action, ctx)
    if isinstance(action, Random):
        weights = [ctx.eval(g.weight) for g in action.groups]
        try:
            index = weighted_sample(weights, ctx.random)
        except ValueError as exc:
            raise EvaluationError(f"invalid Random weights {weights}: {exc}") from exc
        return await action.groups[index].actions.run(ctx)
    if isinstance(action, CoinFlip):
        p = max(ctx.eval(action.probability), 0.0)
        branch = action.success if ctx.random() < p else action.fail
        return await branch.run(ctx)
    if isinstance(action, Switch):
        for b in action.branches:
            if check(b.condition, ctx):
                return await b.actions.run(ctx)
        return Flow.CONTINUE
    if isinstance(action, Loop):
        return await _loop(action, ctx)
    if isinstance(action, Stop):
        return Flow.STOP_GLOBAL if action.is_global else Flow.STOP_LOCAL
    if isinstance(action, UpdateVariable):
        ctx.variables.set_var(action.variable, ctx.eval(action.value))
        return Flow.CONTINUE
    if isinstance(action, UpdateVariables):
        for name, value in action.updates:
            ctx.variables.set_var(name, ctx.eval(value))
        return Flow.CONTINUE
    if isinstance(action, UpdateVariableLimits):
        lower = ctx.eval(action.lower)
        upper = ctx.eval(action.upper)
        try:
            ctx.variables.set_var_limits(action.variable, lower, upper)
        except ValueError as exc:
            raise EvaluationError(str(exc)) from exc
        return Flow.CONTINUE
    if isinstance(action, GiveItem):
        _give_item(action.item_id, ctx.eval(action.amount), ctx)
        return Flow.CONTINUE
    if isinstance(action, UpdateItemAmounts):
        for item_id, amount in action.updates:
            _give_item(item_id, ctx.eval(amount), ctx)
        return Flow.CONTINUE
    if isinstance(action, SetStatus):
        if action.on:
            ctx.status_table.add(action.status_id)
        else:
            ctx.status_table.remove(action.status_id)
        return Flow.CONTINUE
    if isinstance(action, TriggerEvents):
        for spec in action.triggers:
            ctx.scheduler.trigger(spec.id, ctx.eval(spec.probability), spec.priority)
        return Flow.CONTINUE
    if isinstance(action, EnableEvents):
        for event_id in action.event_ids:
            ctx.scheduler.enable(event_id)
        return Flow.CONTINUE
    if isinstance(action, DisableEvents):
        for event_id in action.event_ids:
            ctx.scheduler.disable(event_id)
        return Flow.CONTINUE
    if isinstance(action, EndGame):
        await ctx.proxy.display_message(
            resolve_text(action.message, ctx),
            resolve_text(action.confirm, ctx),
            "",
            action.fx,
        )
        state = EndGameState.WIN if action.winning else EndGameState.LOSS
        ctx.set_end_game(state, action.ending_type)
        return Flow.CONTINUE
    raise TypeError(f"unknown action {action!r}")


async def _display_choices(action: DisplayChoices, ctx: ExecutionContext) -> Flow:
    offered: list[tuple[str, int]] = []
    for i, choice in enumerate(action.choices):
        if choice.requirement is None or check(choice.requirement, ctx):
            offered.append((resolve_text(choice.message, ctx), i))
    if not offered:
        raise EvaluationError("no choice is available: every requirement failed")
    picked = await ctx.proxy.display_choices(
        resolve_text(action.message, ctx), offered, action.icon
    )
    if picked not in {i for _, i in offered}:
        raise UsageError(f"choice {picked!r} was not offered")
    return await action.choices[picked].actions.run(ctx)


async def _loop(action: Loop, ctx: ExecutionContext) -> Flow:
    iterations = 0
    while action.max_iterations == 0 or iterations < action.max_iterations:
        if (
            not action.check_stop_condition_at_end
            and action.stop_condition is not None
            and check(action.stop_condition, ctx)
        ):
            break
        flow = await action.body.run(ctx)
        iterations += 1
        if flow == Flow.STOP_GLOBAL:
            return Flow.STOP_GLOBAL
        if (
            action.check_stop_condition_at_end
            and action.stop_condition is not None
            and check(action.stop_condition, ctx)
        ):
            break
    return Flow.CONTINUE


def _give_item(item_id: str, amount: float, ctx: ExecutionContext) -> None:
    if math.isinf(amount) or not float(amount).is_integer():
        raise EvaluationError(f"item amount for '{item_id}' must be an integer, got {amount}")
    n = int(amount)
    if n > 0:
        ctx.inventory.add(item_id, n)
    elif n < 0:
        ctx.inventory.remove(item_id, -n)


def event_text_keys(event: GameEvent) -> list[str]:
    """Every message text an event can display, without duplicates."""
    keys: list[str] = []
    for key in _list_keys(event.actions):
        if key not in keys:
            keys.append(key)
    return keys


def _list_keys(actions: ActionList) -> Iterator[str]:
    for action in actions:
        yield from _action_keys(action)


def _action_keys(action: Action) -> Iterator[str]:
    if isinstance(action, (DisplayMessage, EndGame)):
        yield from text_keys(action.message)
        yield from text_keys(action.confirm)
    elif isinstance(action, DisplayRandomMessage):
        for message in action.messages:
            yield from text_keys(message)
        yield from text_keys(action.confirm)
    elif isinstance(action, DisplayChoices):
        yield from text_keys(action.message)
        for choice in action.choices:
            yield from text_keys(choice.message)
            yield from _list_keys(choice.actions)
    elif isinstance(action, Random):
        for group in action.groups:
            yield from _list_keys(group.actions)
    elif isinstance(action, CoinFlip):
        yield from _list_keys(action.success)
        yield from _list_keys(action.fail)
    elif isinstance(action, Switch):
        for branch in action.branches:
            yield from _list_keys(branch.actions)
    elif isinstance(action, Loop):
        yield from _list_keys(action.body)
