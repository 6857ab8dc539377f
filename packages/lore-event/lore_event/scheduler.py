"""EventScheduler: event registry plus the pending-trigger queue."""
from __future__ import annotations

import heapq
import logging
from typing import TYPE_CHECKING, Any

from lore.types import SnapshotError, UnknownIdError, UsageError

from lore_event.conditions import check_all
from lore_event.types import Flow, GameEvent, PendingTrigger

if TYPE_CHECKING:
    from lore_event.types import ExecutionContext

logger = logging.getLogger(__name__)


class EventScheduler:
    """Owns every event, indexes them per trigger and runs trigger passes.

    Triggers are popped by priority (highest first), then by the order
    they were enqueued. Events of one trigger run in registration order.
    """

    def __init__(self) -> None:
        self._events: dict[str, GameEvent] = {}
        self._by_trigger: dict[str, list[str]] = {}
        self._disabled: dict[str, bool] = {}
        self._occurrences: dict[str, int] = {}
        self._queue: list[tuple[int, int, PendingTrigger]] = []
        self._sequence = 0
        self._ongoing_trigger: PendingTrigger | None = None

    # --- Registration ---

    def register(self, event: GameEvent) -> None:
        """Register an event. Duplicate ids are a usage error."""
        if event.id in self._events:
            raise UsageError(f"event '{event.id}' is already registered")
        self._events[event.id] = event
        self._by_trigger.setdefault(event.trigger, []).append(event.id)
        self._disabled[event.id] = event.disabled_by_default
        self._occurrences[event.id] = 0

    def register_all(self, events: list[GameEvent]) -> None:
        for event in events:
            self.register(event)

    def unregister(self, event_id: str) -> None:
        self._require_idle("unregister")
        event = self.event(event_id)
        del self._events[event_id]
        self._by_trigger[event.trigger].remove(event_id)
        if not self._by_trigger[event.trigger]:
            del self._by_trigger[event.trigger]
        del self._disabled[event_id]
        del self._occurrences[event_id]

    # --- Queries ---

    def has(self, event_id: str) -> bool:
        return event_id in self._events

    def event(self, event_id: str) -> GameEvent:
        """Look up an event. Raises UnknownIdError if not registered."""
        if event_id not in self._events:
            raise UnknownIdError("event", event_id)
        return self._events[event_id]

    def events(self, trigger_id: str | None = None) -> list[GameEvent]:
        """All events, or those of *trigger_id*, in registration order."""
        if trigger_id is None:
            return list(self._events.values())
        return [self._events[id] for id in self._by_trigger.get(trigger_id, [])]

    def is_disabled(self, event_id: str) -> bool:
        self.event(event_id)
        return self._disabled[event_id]

    def occurrence_count(self, event_id: str) -> int:
        self.event(event_id)
        return self._occurrences[event_id]

    def occurred(self, event_id: str) -> bool:
        return self.occurrence_count(event_id) > 0

    @property
    def in_pass(self) -> bool:
        return self._ongoing_trigger is not None

    def pending(self) -> list[PendingTrigger]:
        """Queued triggers in the order they will be processed."""
        return [entry[2] for entry in sorted(self._queue)]

    # --- Mutation ---

    def enable(self, event_id: str) -> None:
        self.event(event_id)
        self._disabled[event_id] = False

    def disable(self, event_id: str) -> None:
        self.event(event_id)
        self._disabled[event_id] = True

    def enable_all(self) -> None:
        for event_id in self._disabled:
            self._disabled[event_id] = False

    def trigger(self, trigger_id: str, probability: float = 1.0, priority: int = 0) -> PendingTrigger:
        """Enqueue a trigger. Nothing is evaluated until it is processed."""
        if not trigger_id:
            raise ValueError("trigger id must not be empty")
        pending = PendingTrigger(trigger_id, priority, self._sequence, probability)
        self._sequence += 1
        heapq.heappush(self._queue, (-priority, pending.sequence, pending))
        logger.debug("enqueued trigger %s (priority %d, #%d)", trigger_id, priority, pending.sequence)
        return pending

    def reset(self) -> None:
        """Clear the queue and restore every event's default runtime state."""
        self._require_idle("reset")
        self._queue.clear()
        self._sequence = 0
        for event_id, event in self._events.items():
            self._disabled[event_id] = event.disabled_by_default
            self._occurrences[event_id] = 0

    # --- Processing ---

    async def process_next_trigger(self, ctx: ExecutionContext) -> bool:
        """Pop and run one pending trigger. Returns False if none was queued."""
        if self._ongoing_trigger is not None:
            raise UsageError(
                f"trigger '{self._ongoing_trigger.trigger_id}' is still being processed"
            )
        if not self._queue:
            return False
        _, _, pending = heapq.heappop(self._queue)
        self._ongoing_trigger = pending
        try:
            if not _passes(pending.probability, ctx):
                logger.debug("trigger %s skipped by probability", pending.trigger_id)
                return True
            await self._run_pass(pending.trigger_id, ctx)
        finally:
            self._ongoing_trigger = None
        return True

    async def _run_pass(self, trigger_id: str, ctx: ExecutionContext) -> None:
        excluded: set[str] = set()
        for event_id in list(self._by_trigger.get(trigger_id, [])):
            event = self._events[event_id]
            if self._disabled[event_id] or event_id in excluded:
                continue
            if not check_all(event.conditions, ctx):
                continue
            if not _passes(ctx.eval(event.probability), ctx):
                continue
            excluded.update(event.exclusions)
            self._occurrences[event_id] += 1
            logger.info("event %s fired on %s", event_id, trigger_id)
            flow = await event.actions.run(ctx)
            if event.once:
                self._disabled[event_id] = True
            if ctx.game_over():
                logger.info("pass of %s ended by end-game state (%s)", trigger_id, flow.value)
                break

    def _require_idle(self, operation: str) -> None:
        if self._ongoing_trigger is not None:
            raise UsageError(f"cannot {operation} while a trigger is being processed")

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        """Serialize runtime state (not definitions)."""
        self._require_idle("snapshot")
        return {
            "disabled": [id for id, off in self._disabled.items() if off],
            "occurrences": {id: n for id, n in self._occurrences.items() if n > 0},
            "pending": [
                {
                    "trigger_id": p.trigger_id,
                    "priority": p.priority,
                    "sequence": p.sequence,
                    "probability": p.probability,
                }
                for p in self.pending()
            ],
            "sequence": self._sequence,
        }

    def restore(self, data: dict[str, Any]) -> None:
        """Restore runtime state. Events must be registered first."""
        self._require_idle("restore")
        try:
            disabled = set(data.get("disabled", []))
            occurrences = dict(data.get("occurrences", {}))
            pending = [PendingTrigger(**p) for p in data.get("pending", [])]
            sequence = int(data.get("sequence", 0))
        except (TypeError, ValueError) as exc:
            raise SnapshotError(f"malformed scheduler state: {exc}") from exc
        unknown = (disabled | set(occurrences)) - set(self._events)
        if unknown:
            raise SnapshotError(f"unknown events in snapshot: {sorted(unknown)}")
        for event_id in self._events:
            self._disabled[event_id] = event_id in disabled
            self._occurrences[event_id] = int(occurrences.get(event_id, 0))
        self._queue = [(-p.priority, p.sequence, p) for p in pending]
        heapq.heapify(self._queue)
        self._sequence = max([sequence] + [p.sequence + 1 for p in pending])


def _passes(probability: float, ctx: ExecutionContext) -> bool:
    if probability <= 0:
        return False
    if probability < 1 and ctx.random() > probability:
        return False
    return True
