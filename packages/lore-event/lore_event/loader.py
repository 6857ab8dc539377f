"""Builds GameEvents from records or YAML text."""
from __future__ import annotations

import logging
import re
from typing import Any

import yaml

from lore.types import DefinitionError

from lore_event.factory import ActionFactory, ConditionFactory, bool_field, list_field
from lore_event.types import GameEvent

logger = logging.getLogger(__name__)

_BOOL_TAG = "tag:yaml.org,2002:bool"


class ContentLoader(yaml.SafeLoader):
    """SafeLoader that only reads true/false as booleans.

    Plain YAML 1.1 also turns on/off/yes/no into booleans, which breaks
    content keys such as SetStatus's ``on``.
    """


ContentLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
ContentLoader.add_implicit_resolver(
    _BOOL_TAG, re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"), list("tTfF")
)


def load_content(text: str) -> Any:
    return yaml.load(text, Loader=ContentLoader)


class EventLoader:
    """Event records look like::

        id: rainstorm
        trigger: Tick
        conditions: [{id: Expression, expression: "day > 3"}]
        probability: 0.25          # number or expression, default 1
        exclusions: [drought]
        once: false
        disabled: false
        actions: [...]
    """

    def __init__(self, conditions: ConditionFactory, actions: ActionFactory) -> None:
        self._conditions = conditions
        self._actions = actions

    def load_from_string(self, text: str) -> list[GameEvent]:
        """Parse a YAML document holding a list of event records."""
        try:
            data = load_content(text)
        except yaml.YAMLError as exc:
            raise DefinitionError(f"invalid event YAML: {exc}") from exc
        return self.parse_events(data if data is not None else [])

    def parse_events(self, records: Any) -> list[GameEvent]:
        if not isinstance(records, list):
            raise DefinitionError("expecting a list of event definitions")
        events = [self.parse_event(r) for r in records]
        logger.info("parsed %d events", len(events))
        return events

    def parse_event(self, record: Any) -> GameEvent:
        if not isinstance(record, dict):
            raise DefinitionError(f"event definition must be a mapping, got {record!r}")
        event_id = record.get("id")
        if not isinstance(event_id, str) or not event_id:
            raise DefinitionError(f"event definition is missing a string 'id': {record!r}")
        try:
            return self._parse(event_id, record)
        except DefinitionError as exc:
            raise DefinitionError(f"event '{event_id}': {exc}") from exc

    def _parse(self, event_id: str, record: dict[str, Any]) -> GameEvent:
        trigger = record.get("trigger")
        if not isinstance(trigger, str) or not trigger:
            raise DefinitionError("missing required field 'trigger'")
        if "actions" not in record:
            raise DefinitionError("missing required field 'actions'")
        probability = record.get("probability", 1.0)
        if isinstance(probability, bool) or not isinstance(probability, (int, float, str)):
            raise DefinitionError("'probability' must be a number or an expression string")
        exclusions = list_field(record, "exclusions", [])
        if not all(isinstance(e, str) for e in exclusions):
            raise DefinitionError("'exclusions' must be a list of event ids")
        return GameEvent(
            id=event_id,
            trigger=trigger,
            actions=self._actions.from_records(record["actions"]),
            conditions=self._conditions.from_records(record.get("conditions") or []),
            probability=(
                probability
                if isinstance(probability, (int, float))
                else self._conditions.compiler.compile(probability)
            ),
            exclusions=tuple(exclusions),
            once=bool_field(record, "once", False),
            disabled_by_default=bool_field(record, "disabled", False),
        )
