"""Definition registries for attributes and effect providers."""
from __future__ import annotations

from typing import Generic, Iterator, TypeVar

from lore.types import DefinitionError, UnknownIdError

from lore_effect.types import Attribute, Item, Status

T = TypeVar("T", Attribute, Item, Status)


class Registry(Generic[T]):
    """Id -> definition map. Definitions are immutable once registered."""

    def __init__(self, kind: str) -> None:
        self._kind = kind
        self._definitions: dict[str, T] = {}

    @property
    def kind(self) -> str:
        return self._kind

    def add(self, definition: T) -> None:
        """Register *definition*. Re-adding the same instance is a no-op."""
        existing = self._definitions.get(definition.id)
        if existing is not None and existing is not definition:
            raise DefinitionError(f"{self._kind} '{definition.id}' is already defined")
        self._definitions[definition.id] = definition

    def add_all(self, definitions: list[T]) -> None:
        for definition in definitions:
            self.add(definition)

    def get(self, id: str) -> T:
        """Look up a definition. Raises UnknownIdError if not defined."""
        if id not in self._definitions:
            raise UnknownIdError(self._kind, id)
        return self._definitions[id]

    def has(self, id: str) -> bool:
        return id in self._definitions

    def ids(self) -> list[str]:
        return list(self._definitions)

    def clear(self) -> None:
        self._definitions.clear()

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._definitions.values()))
