"""lore - Core state, errors and randomness for the lore rule engine."""
from __future__ import annotations

from lore.rng import RandomSource, new_seed, weighted_sample
from lore.signals import NotificationQueue
from lore.types import (
    DefinitionError,
    EndGameState,
    EvaluationError,
    LoreError,
    SnapshotError,
    UnknownIdError,
    UsageError,
)
from lore.variables import VARIABLE_CHANGED, VariableStore, decode_number, encode_number

__all__ = [
    "DefinitionError",
    "EndGameState",
    "EvaluationError",
    "LoreError",
    "NotificationQueue",
    "RandomSource",
    "SnapshotError",
    "UnknownIdError",
    "UsageError",
    "VARIABLE_CHANGED",
    "VariableStore",
    "decode_number",
    "encode_number",
    "new_seed",
    "weighted_sample",
]
