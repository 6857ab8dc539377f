"""lore-event - Conditions, actions, events and the trigger scheduler."""
from __future__ import annotations

from lore_event.actions import (
    Action,
    ActionList,
    Branch,
    Choice,
    CoinFlip,
    DisableEvents,
    DisplayChoices,
    DisplayMessage,
    DisplayRandomMessage,
    EnableEvents,
    EndGame,
    GiveItem,
    Log,
    Loop,
    Random,
    SetStatus,
    Stop,
    Switch,
    TriggerEvents,
    TriggerSpec,
    UpdateItemAmounts,
    UpdateVariable,
    UpdateVariableLimits,
    UpdateVariables,
    WeightedGroup,
    event_text_keys,
    execute,
)
from lore_event.conditions import AllOf, AnyOf, Condition, Expr, Not, SomeOf, check, check_all
from lore_event.factory import (
    ActionFactory,
    ConditionFactory,
    default_action_factory,
    default_condition_factory,
)
from lore_event.loader import ContentLoader, EventLoader, load_content
from lore_event.scheduler import EventScheduler
from lore_event.text import (
    ConditionalText,
    ConstantText,
    RandomText,
    TextSource,
    resolve_text,
    text_keys,
)
from lore_event.types import (
    ActionProxy,
    EvaluationContext,
    ExecutionContext,
    Flow,
    GameEvent,
    PendingTrigger,
)

__all__ = [
    "Action",
    "ActionFactory",
    "ActionList",
    "ActionProxy",
    "AllOf",
    "AnyOf",
    "Branch",
    "Choice",
    "CoinFlip",
    "Condition",
    "ConditionFactory",
    "ConditionalText",
    "ContentLoader",
    "ConstantText",
    "DisableEvents",
    "DisplayChoices",
    "DisplayMessage",
    "DisplayRandomMessage",
    "EnableEvents",
    "EndGame",
    "EvaluationContext",
    "EventLoader",
    "EventScheduler",
    "ExecutionContext",
    "Expr",
    "Flow",
    "GameEvent",
    "GiveItem",
    "Log",
    "Loop",
    "Not",
    "PendingTrigger",
    "Random",
    "RandomText",
    "SetStatus",
    "SomeOf",
    "Stop",
    "Switch",
    "TextSource",
    "TriggerEvents",
    "TriggerSpec",
    "UpdateItemAmounts",
    "UpdateVariable",
    "UpdateVariableLimits",
    "UpdateVariables",
    "WeightedGroup",
    "check",
    "check_all",
    "default_action_factory",
    "default_condition_factory",
    "event_text_keys",
    "execute",
    "load_content",
    "resolve_text",
    "text_keys",
]
