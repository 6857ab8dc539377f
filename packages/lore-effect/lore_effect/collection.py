"""Effect provider collections: inventory and status table."""
from __future__ import annotations

import math
from typing import Any, Generic, Iterator, TypeVar

from lore.signals import NotificationQueue
from lore.types import SnapshotError, UnknownIdError

from lore_effect.modifiers import AmountEvaluator, combine
from lore_effect.registry import Registry
from lore_effect.types import CombinedAmounts, Item, Status

COLLECTION_CHANGED = "collection_changed"

P = TypeVar("P", Item, Status)


def _check_count(count: Any) -> int:
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ValueError(f"count must be a non-negative integer, got {count!r}")
    return count


class EffectProviderCollection(Generic[P]):
    """Provider id -> stack count, in insertion order.

    Counts are capped at ``max_stack``; stacks reaching zero are removed.
    """

    def __init__(
        self,
        name: str,
        registry: Registry[P],
        max_stack: float = math.inf,
        notifications: NotificationQueue | None = None,
    ) -> None:
        if max_stack < 1:
            raise ValueError(f"max_stack must be >= 1, got {max_stack}")
        self._name = name
        self._registry = registry
        self._max_stack = max_stack
        self._counts: dict[str, int] = {}
        self._notifications = notifications

    @property
    def name(self) -> str:
        return self._name

    @property
    def registry(self) -> Registry[P]:
        return self._registry

    def add(self, id: str, count: int = 1) -> int:
        """Add *count* of provider *id*. Returns the amount actually added."""
        _check_count(count)
        self._registry.get(id)
        if count == 0:
            return 0
        old = self._counts.get(id, 0)
        new = old + count
        if new > self._max_stack:
            new = int(self._max_stack)
        self._set(id, old, new)
        return new - old

    def remove(self, id: str, count: int = 1) -> int:
        """Remove up to *count*. Returns the amount actually removed."""
        _check_count(count)
        self._registry.get(id)
        old = self._counts.get(id, 0)
        if count == 0 or old == 0:
            return 0
        new = max(0, old - count)
        self._set(id, old, new)
        return old - new

    def count(self, id: str) -> int:
        self._registry.get(id)
        return self._counts.get(id, 0)

    def clear(self) -> None:
        self._counts.clear()
        self._post(None, 0, 0, clear=True)

    def ids(self) -> list[str]:
        return list(self._counts)

    def stacks(self) -> list[tuple[P, int]]:
        return [(self._registry.get(id), n) for id, n in self._counts.items()]

    def combined(self, target: str, evaluate: AmountEvaluator | None = None) -> CombinedAmounts:
        return combine(self.stacks(), target, evaluate)

    def __contains__(self, id: object) -> bool:
        return id in self._counts

    def __len__(self) -> int:
        return len(self._counts)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._counts))

    def _set(self, id: str, old: int, new: int) -> None:
        if new == 0:
            self._counts.pop(id, None)
        else:
            self._counts[id] = new
        if old != new:
            self._post(id, old, new)

    def _post(self, id: str | None, old: int, new: int, clear: bool = False) -> None:
        if self._notifications is None:
            return
        self._notifications.post(
            COLLECTION_CHANGED,
            collection=self._name,
            id=id,
            old=old,
            new=new,
            clear=clear,
        )


class Inventory(EffectProviderCollection[Item]):
    def __init__(
        self,
        registry: Registry[Item],
        max_stack: float = math.inf,
        notifications: NotificationQueue | None = None,
    ) -> None:
        super().__init__("inventory", registry, max_stack, notifications)

    def snapshot(self) -> list[list[Any]]:
        """Ordered [[item_id, count], ...]."""
        return [[id, n] for id, n in self._counts.items()]

    def restore(self, data: list[list[Any]]) -> None:
        counts: dict[str, int] = {}
        for entry in data:
            try:
                id, n = entry
                self._registry.get(id)
                counts[id] = _check_count(n)
            except (TypeError, ValueError, UnknownIdError) as exc:
                raise SnapshotError(f"invalid inventory entry {entry!r}: {exc}") from exc
        self._counts = {id: n for id, n in counts.items() if n > 0}
        self._post(None, 0, 0, clear=True)


class StatusTable(EffectProviderCollection[Status]):
    """Active statuses. Each is held at most once with a remaining duration."""

    def __init__(
        self,
        registry: Registry[Status],
        notifications: NotificationQueue | None = None,
    ) -> None:
        super().__init__("status", registry, 1, notifications)
        self._remaining: dict[str, float] = {}

    def add(self, id: str, count: int = 1) -> int:
        """Activate *id*, resetting its remaining duration."""
        added = super().add(id, count)
        if count > 0:
            self._remaining[id] = self._registry.get(id).duration
        return added

    def remove(self, id: str, count: int = 1) -> int:
        removed = super().remove(id, count)
        if id not in self._counts:
            self._remaining.pop(id, None)
        return removed

    def clear(self) -> None:
        self._remaining.clear()
        super().clear()

    def remaining(self, id: str) -> float:
        """Ticks left for *id*; 0 if inactive, inf if it never expires."""
        return self._remaining.get(id, 0)

    def tick(self) -> list[str]:
        """Advance one tick. Returns ids that expired."""
        expired: list[str] = []
        for id in list(self._remaining):
            left = self._remaining[id] - 1
            if left <= 0:
                expired.append(id)
            else:
                self._remaining[id] = left
        for id in expired:
            self.remove(id)
        return expired

    def snapshot(self) -> list[list[Any]]:
        """Ordered [[status_id, remaining], ...]; -1 marks no expiry."""
        return [
            [id, -1 if math.isinf(self._remaining[id]) else self._remaining[id]]
            for id in self._counts
        ]

    def restore(self, data: list[list[Any]]) -> None:
        remaining: dict[str, float] = {}
        for entry in data:
            try:
                id, left = entry
                self._registry.get(id)
            except (TypeError, ValueError, UnknownIdError) as exc:
                raise SnapshotError(f"invalid status entry {entry!r}: {exc}") from exc
            if isinstance(left, bool) or not isinstance(left, (int, float)):
                raise SnapshotError(f"invalid status duration {entry!r}")
            remaining[id] = math.inf if left == -1 else left
        self._counts = {id: 1 for id in remaining}
        self._remaining = remaining
        self._post(None, 0, 0, clear=True)
