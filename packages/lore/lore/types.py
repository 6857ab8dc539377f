"""Shared error taxonomy and end-game state for the lore engine."""

from __future__ import annotations

from enum import Enum


class LoreError(Exception):
    """Base class for every error raised by the lore packages."""


class DefinitionError(LoreError):
    """Malformed content: event, condition, action, expression or effect."""


class EvaluationError(LoreError):
    """Content evaluated to something unusable (NaN, non-number, no choice)."""


class UnknownIdError(EvaluationError, KeyError):
    """Raised when a variable, attribute, item, status or event id is unknown."""

    def __init__(self, kind: str, id: str) -> None:
        self.kind = kind
        self.id = id
        super().__init__(f"unknown {kind} '{id}'")

    def __str__(self) -> str:
        return str(self.args[0])


class UsageError(LoreError):
    """The engine was driven incorrectly (reentrancy, duplicate ids)."""


class SnapshotError(LoreError):
    """Raised on restore failures (version mismatch, malformed data)."""


class EndGameState(Enum):
    NONE = "none"
    WIN = "win"
    LOSS = "loss"
