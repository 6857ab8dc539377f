"""Post-mutation notification queue, drained explicitly by the host loop."""
from __future__ import annotations

from typing import Any, Callable

Handler = Callable[[str, dict[str, Any]], None]


class NotificationQueue:
    """Collects change notifications and dispatches them on ``drain()``.

    Mutations post here instead of calling observers inline, so observers
    always run after the mutating call has returned.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Handler]] = {}
        self._queue: list[tuple[str, dict[str, Any]]] = []

    def subscribe(self, kind: str, handler: Handler) -> None:
        self._subscribers.setdefault(kind, []).append(handler)

    def unsubscribe(self, kind: str, handler: Handler) -> None:
        handlers = self._subscribers.get(kind)
        if handlers is None:
            return
        if handler in handlers:
            handlers.remove(handler)

    def post(self, kind: str, **data: Any) -> None:
        self._queue.append((kind, data))

    def pending(self) -> int:
        return len(self._queue)

    def drain(self) -> int:
        """Dispatch everything queued so far. Returns the number dispatched.

        Notifications posted by handlers during the drain wait for the next call.
        """
        batch = self._queue
        self._queue = []
        for kind, data in batch:
            for handler in list(self._subscribers.get(kind, [])):
                handler(kind, data)
        return len(batch)

    def clear(self) -> None:
        self._queue.clear()
