"""Tagged-record deserializers for conditions and actions.

Every record is a mapping whose ``id`` names its kind, e.g.
``{"id": "UpdateVariable", "variable": "gold", "value": "gold + 1"}``.
An unknown kind or a missing/mistyped field raises DefinitionError.
"""
from __future__ import annotations

from typing import Any, Callable

from lore.types import DefinitionError
from lore_expr import CompiledExpression, ExpressionEngine

from lore_event import actions as a
from lore_event import conditions as c
from lore_event.text import ConditionalText, ConstantText, RandomText, TextSource

ConditionDeserializer = Callable[[dict[str, Any], "ConditionFactory"], c.Condition]
ActionDeserializer = Callable[[dict[str, Any], "ActionFactory"], a.Action]

_MISSING = object()


def _tag_of(record: Any, kind: str) -> str:
    if not isinstance(record, dict):
        raise DefinitionError(f"{kind} definition must be a mapping, got {record!r}")
    tag = record.get("id")
    if not isinstance(tag, str):
        raise DefinitionError(f"{kind} definition is missing a string 'id': {record!r}")
    return tag


def get_field(record: dict[str, Any], key: str, default: Any = _MISSING) -> Any:
    """Fetch ``record[key]``; a missing key without default is a DefinitionError."""
    if key in record and record[key] is not None:
        return record[key]
    if default is _MISSING:
        raise DefinitionError(f"{record.get('id')}: missing required field '{key}'")
    return default


def _typed(record: dict[str, Any], key: str, types: type | tuple[type, ...],
           expected: str, default: Any = _MISSING) -> Any:
    value = get_field(record, key, default)
    if value is default and default is not _MISSING:
        return value
    if not isinstance(value, types):
        raise DefinitionError(f"{record.get('id')}: field '{key}' must be {expected}, got {value!r}")
    return value


def string_field(record: dict[str, Any], key: str, default: Any = _MISSING) -> str:
    return _typed(record, key, str, "a string", default)


def bool_field(record: dict[str, Any], key: str, default: Any = _MISSING) -> bool:
    return _typed(record, key, bool, "a boolean", default)


def list_field(record: dict[str, Any], key: str, default: Any = _MISSING) -> list[Any]:
    return _typed(record, key, list, "a list", default)


def dict_field(record: dict[str, Any], key: str, default: Any = _MISSING) -> dict[str, Any]:
    return _typed(record, key, dict, "a mapping", default)


def _expression(compiler: ExpressionEngine, value: Any, where: str) -> CompiledExpression:
    if isinstance(value, (str, int, float)):
        try:
            return compiler.compile(value)
        except DefinitionError as exc:
            raise DefinitionError(f"{where}: {exc}") from exc
    raise DefinitionError(f"{where} must be a number or an expression string, got {value!r}")


# --- Conditions ---


class ConditionFactory:
    """Builds conditions from tagged records."""

    def __init__(self, compiler: ExpressionEngine) -> None:
        self._compiler = compiler
        self._deserializers: dict[str, ConditionDeserializer] = {}

    @property
    def compiler(self) -> ExpressionEngine:
        return self._compiler

    def register(self, tag: str, fn: ConditionDeserializer) -> None:
        """Register a deserializer for *tag*. Overwrites if tag exists."""
        self._deserializers[tag] = fn

    def tags(self) -> list[str]:
        return list(self._deserializers)

    def from_record(self, record: Any) -> c.Condition:
        tag = _tag_of(record, "condition")
        fn = self._deserializers.get(tag)
        if fn is None:
            raise DefinitionError(f"no deserializer defined for condition '{tag}'")
        return fn(record, self)

    def from_records(self, records: Any) -> tuple[c.Condition, ...]:
        if not isinstance(records, list):
            raise DefinitionError(f"expected a list of conditions, got {records!r}")
        return tuple(self.from_record(r) for r in records)

    def expression(self, record: dict[str, Any], key: str, default: Any = _MISSING) -> CompiledExpression:
        value = get_field(record, key, default)
        return _expression(self._compiler, value, f"{record.get('id')}: field '{key}'")

    def inline(self, value: Any, where: str) -> c.Condition:
        """A condition given either as an expression or as a tagged record."""
        if isinstance(value, dict):
            return self.from_record(value)
        return c.Expr(_expression(self._compiler, value, where))


def _expr_condition(record: dict[str, Any], f: ConditionFactory) -> c.Condition:
    return c.Expr(f.expression(record, "expression"))


def _not_condition(record: dict[str, Any], f: ConditionFactory) -> c.Condition:
    return c.Not(f.inline(get_field(record, "condition"), "Not: field 'condition'"))


def _all_condition(record: dict[str, Any], f: ConditionFactory) -> c.Condition:
    return c.AllOf(f.from_records(list_field(record, "conditions")))


def _any_condition(record: dict[str, Any], f: ConditionFactory) -> c.Condition:
    return c.AnyOf(f.from_records(list_field(record, "conditions")))


def _some_condition(record: dict[str, Any], f: ConditionFactory) -> c.Condition:
    children = f.from_records(list_field(record, "conditions"))
    lo = f.expression(record, "min", 1)
    hi = f.expression(record, "max") if record.get("max") is not None else None
    return c.SomeOf(children, lo, hi)


def default_condition_factory(compiler: ExpressionEngine) -> ConditionFactory:
    factory = ConditionFactory(compiler)
    factory.register("Expression", _expr_condition)
    factory.register("Not", _not_condition)
    factory.register("All", _all_condition)
    factory.register("Any", _any_condition)
    factory.register("Some", _some_condition)
    return factory


# --- Actions ---


class ActionFactory:
    """Builds actions from tagged records."""

    def __init__(self, compiler: ExpressionEngine, conditions: ConditionFactory) -> None:
        self._compiler = compiler
        self._conditions = conditions
        self._deserializers: dict[str, ActionDeserializer] = {}

    @property
    def compiler(self) -> ExpressionEngine:
        return self._compiler

    @property
    def conditions(self) -> ConditionFactory:
        return self._conditions

    def register(self, tag: str, fn: ActionDeserializer) -> None:
        """Register a deserializer for *tag*. Overwrites if tag exists."""
        self._deserializers[tag] = fn

    def tags(self) -> list[str]:
        return list(self._deserializers)

    def from_record(self, record: Any) -> a.Action:
        tag = _tag_of(record, "action")
        fn = self._deserializers.get(tag)
        if fn is None:
            raise DefinitionError(f"no deserializer defined for action '{tag}'")
        return fn(record, self)

    def from_records(self, records: Any) -> a.ActionList:
        if not isinstance(records, list):
            raise DefinitionError(f"expected a list of actions, got {records!r}")
        return a.ActionList([self.from_record(r) for r in records])

    def action_list(self, record: dict[str, Any], key: str, required: bool = True) -> a.ActionList:
        if required:
            return self.from_records(list_field(record, key))
        return self.from_records(list_field(record, key, []))

    def expression(self, record: dict[str, Any], key: str, default: Any = _MISSING) -> CompiledExpression:
        value = get_field(record, key, default)
        return _expression(self._compiler, value, f"{record.get('id')}: field '{key}'")

    def text(self, record: dict[str, Any], key: str, default: Any = _MISSING) -> TextSource:
        return self.text_source(get_field(record, key, default), f"{record.get('id')}: field '{key}'")

    def text_source(self, value: Any, where: str) -> TextSource:
        """Parse a text given as a string, a list or a conditional mapping."""
        if isinstance(value, str):
            return ConstantText(value)
        if isinstance(value, list):
            return self._random_text(value, where)
        if isinstance(value, dict):
            default = value.get("default")
            if not isinstance(default, str):
                raise DefinitionError(f"{where}: conditional text needs a string 'default'")
            branches = []
            for branch in value.get("branches") or []:
                if not isinstance(branch, dict) or not isinstance(branch.get("text"), str):
                    raise DefinitionError(f"{where}: each branch needs a 'condition' and a string 'text'")
                if "condition" not in branch:
                    raise DefinitionError(f"{where}: branch '{branch['text']}' is missing 'condition'")
                cond = self._conditions.inline(branch["condition"], where)
                branches.append((cond, branch["text"]))
            return ConditionalText(default, tuple(branches))
        raise DefinitionError(f"{where} must be a string, a list or a mapping, got {value!r}")

    def _random_text(self, value: list[Any], where: str) -> TextSource:
        if not value:
            raise DefinitionError(f"{where}: random text needs at least one option")
        texts: list[str] = []
        weights: list[CompiledExpression] = []
        weighted = False
        for option in value:
            if isinstance(option, str):
                texts.append(option)
                weights.append(self._compiler.compile(1))
            elif isinstance(option, dict) and isinstance(option.get("text"), str):
                weighted = True
                texts.append(option["text"])
                weights.append(_expression(self._compiler, option.get("weight", 1), where))
            else:
                raise DefinitionError(f"{where}: invalid random text option {option!r}")
        return RandomText(tuple(texts), tuple(weights) if weighted else None)


def _log(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.Log(string_field(record, "message"))


def _display_message(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.DisplayMessage(
        message=f.text(record, "message"),
        confirm=f.text(record, "confirm"),
        icon=string_field(record, "icon", ""),
        fx=string_field(record, "fx", ""),
    )


def _display_random_message(record: dict[str, Any], f: ActionFactory) -> a.Action:
    messages = list_field(record, "messages")
    if not messages:
        raise DefinitionError("DisplayRandomMessage: field 'messages' must not be empty")
    return a.DisplayRandomMessage(
        messages=tuple(f.text_source(m, "DisplayRandomMessage: field 'messages'") for m in messages),
        confirm=f.text(record, "confirm"),
        icon=string_field(record, "icon", ""),
    )


def _display_choices(record: dict[str, Any], f: ActionFactory) -> a.Action:
    choices = []
    for entry in list_field(record, "choices"):
        if not isinstance(entry, dict):
            raise DefinitionError(f"DisplayChoices: choice must be a mapping, got {entry!r}")
        entry = {"id": "DisplayChoices", **entry}
        requirement = None
        if entry.get("requirement") is not None:
            requirement = f.conditions.inline(entry["requirement"], "DisplayChoices: field 'requirement'")
        choices.append(
            a.Choice(
                message=f.text(entry, "message"),
                requirement=requirement,
                actions=f.action_list(entry, "actions", required=False),
            )
        )
    if not choices:
        raise DefinitionError("DisplayChoices: field 'choices' must not be empty")
    return a.DisplayChoices(
        message=f.text(record, "message"),
        choices=tuple(choices),
        icon=string_field(record, "icon", ""),
    )


def _random(record: dict[str, Any], f: ActionFactory) -> a.Action:
    groups = []
    for entry in list_field(record, "groups"):
        if not isinstance(entry, dict):
            raise DefinitionError(f"Random: group must be a mapping, got {entry!r}")
        entry = {"id": "Random", **entry}
        groups.append(a.WeightedGroup(f.expression(entry, "weight"), f.action_list(entry, "actions")))
    if not groups:
        raise DefinitionError("Random: field 'groups' must not be empty")
    return a.Random(tuple(groups))


def _coin_flip(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.CoinFlip(
        probability=f.expression(record, "probability"),
        success=f.action_list(record, "success", required=False),
        fail=f.action_list(record, "fail", required=False),
    )


def _switch(record: dict[str, Any], f: ActionFactory) -> a.Action:
    branches = []
    for entry in list_field(record, "branches"):
        if not isinstance(entry, dict):
            raise DefinitionError(f"Switch: branch must be a mapping, got {entry!r}")
        entry = {"id": "Switch", **entry}
        condition = f.conditions.inline(get_field(entry, "condition"), "Switch: field 'condition'")
        branches.append(a.Branch(condition, f.action_list(entry, "actions")))
    return a.Switch(tuple(branches))


def _loop(record: dict[str, Any], f: ActionFactory) -> a.Action:
    stop = None
    if record.get("stopCondition") is not None:
        stop = f.conditions.inline(record["stopCondition"], "Loop: field 'stopCondition'")
    max_iterations = record.get("maxIterations", 0)
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, int) or max_iterations < 0:
        raise DefinitionError(
            f"Loop: field 'maxIterations' must be a non-negative integer, got {max_iterations!r}"
        )
    return a.Loop(
        body=f.action_list(record, "actions"),
        stop_condition=stop,
        max_iterations=max_iterations,
        check_stop_condition_at_end=bool_field(record, "checkStopConditionAtEnd", False),
    )


def _stop(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.Stop(bool_field(record, "global", False))


def _update_variable(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.UpdateVariable(string_field(record, "variable"), f.expression(record, "value"))


def _updates(record: dict[str, Any], f: ActionFactory) -> tuple[tuple[str, CompiledExpression], ...]:
    updates = dict_field(record, "updates")
    return tuple(
        (str(name), _expression(f.compiler, value, f"{record['id']}: update of '{name}'"))
        for name, value in updates.items()
    )


def _update_variables(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.UpdateVariables(_updates(record, f))


def _update_variable_limits(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.UpdateVariableLimits(
        variable=string_field(record, "variable"),
        lower=f.expression(record, "lowerBound", "-Infinity"),
        upper=f.expression(record, "upperBound", "Infinity"),
    )


def _give_item(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.GiveItem(string_field(record, "itemId"), f.expression(record, "amount", 1))


def _update_item_amounts(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.UpdateItemAmounts(_updates(record, f))


def _set_status(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.SetStatus(string_field(record, "statusId"), bool_field(record, "on"))


def _trigger_events(record: dict[str, Any], f: ActionFactory) -> a.Action:
    specs = []
    for entry in list_field(record, "events"):
        if isinstance(entry, str):
            specs.append(a.TriggerSpec(entry))
            continue
        if not isinstance(entry, dict):
            raise DefinitionError(f"TriggerEvents: invalid trigger {entry!r}")
        trigger_id = entry.get("id")
        if not isinstance(trigger_id, str) or not trigger_id:
            raise DefinitionError(f"TriggerEvents: each trigger needs a string 'id', got {entry!r}")
        entry = {**entry, "id": "TriggerEvents"}
        priority = entry.get("priority", 0)
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise DefinitionError(f"TriggerEvents: field 'priority' must be an integer, got {priority!r}")
        specs.append(
            a.TriggerSpec(
                id=trigger_id,
                probability=f.expression(entry, "probability", 1),
                priority=priority,
            )
        )
    return a.TriggerEvents(tuple(specs))


def _event_ids(record: dict[str, Any]) -> tuple[str, ...]:
    ids = list_field(record, "eventIds")
    for id in ids:
        if not isinstance(id, str):
            raise DefinitionError(f"{record['id']}: event ids must be strings, got {id!r}")
    return tuple(ids)


def _enable_events(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.EnableEvents(_event_ids(record))


def _disable_events(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.DisableEvents(_event_ids(record))


def _end_game(record: dict[str, Any], f: ActionFactory) -> a.Action:
    return a.EndGame(
        message=f.text(record, "message"),
        confirm=f.text(record, "confirm"),
        winning=bool_field(record, "winning"),
        ending_type=string_field(record, "endingType", ""),
        fx=string_field(record, "fx", ""),
    )


def default_action_factory(
    compiler: ExpressionEngine, conditions: ConditionFactory | None = None
) -> ActionFactory:
    factory = ActionFactory(compiler, conditions or default_condition_factory(compiler))
    factory.register("Log", _log)
    factory.register("DisplayMessage", _display_message)
    factory.register("DisplayRandomMessage", _display_random_message)
    factory.register("DisplayChoices", _display_choices)
    factory.register("Random", _random)
    factory.register("CoinFlip", _coin_flip)
    factory.register("Switch", _switch)
    factory.register("Loop", _loop)
    factory.register("Stop", _stop)
    factory.register("UpdateVariable", _update_variable)
    factory.register("UpdateVariables", _update_variables)
    factory.register("UpdateVariableLimits", _update_variable_limits)
    factory.register("GiveItem", _give_item)
    factory.register("UpdateItemAmounts", _update_item_amounts)
    factory.register("SetStatus", _set_status)
    factory.register("TriggerEvents", _trigger_events)
    factory.register("EnableEvents", _enable_events)
    factory.register("DisableEvents", _disable_events)
    factory.register("EndGame", _end_game)
    return factory
