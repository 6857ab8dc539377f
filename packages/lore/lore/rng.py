"""Seeded uniform random source and weighted sampling."""
from __future__ import annotations

import math
import os
import random
from typing import Any, Callable, Sequence

from lore.types import SnapshotError


def new_seed() -> str:
    """Fresh printable seed from the OS entropy pool."""
    return os.urandom(8).hex()


class RandomSource:
    """Uniform doubles in [0, 1) from a persistable string seed."""

    def __init__(self, seed: str | None = None) -> None:
        self._seed = seed if seed is not None else new_seed()
        self._rng = random.Random(self._seed)

    @property
    def seed(self) -> str:
        return self._seed

    def next(self) -> float:
        return self._rng.random()

    def __call__(self) -> float:
        return self._rng.random()

    def reset(self, seed: str | None = None) -> None:
        """Reseed with *seed*, or restart the current seed's sequence."""
        if seed is not None:
            self._seed = seed
        self._rng = random.Random(self._seed)

    def snapshot(self) -> dict[str, Any]:
        return {
            "seed": self._seed,
            "state": _serialize_rng_state(self._rng.getstate()),
        }

    def restore(self, data: dict[str, Any]) -> None:
        try:
            seed = data["seed"]
            state = _deserialize_rng_state(data["state"])
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotError(f"malformed random state: {exc}") from exc
        self._seed = str(seed)
        self._rng = random.Random(self._seed)
        self._rng.setstate(state)


def _serialize_rng_state(state: tuple[int, tuple[int, ...], float | None]) -> list[Any]:
    """Convert Random.getstate() tuple to JSON-compatible list."""
    version, internalstate, gauss_next = state
    return [version, list(internalstate), gauss_next]


def _deserialize_rng_state(data: list[Any]) -> tuple[int, tuple[int, ...], float | None]:
    version, internalstate, gauss_next = data
    return (version, tuple(internalstate), gauss_next)


def weighted_sample(weights: Sequence[float], random_fn: Callable[[], float]) -> int:
    """Pick an index with probability proportional to its weight.

    The chosen index is the smallest ``i`` whose cumulative interval
    ``[cw[i], cw[i+1])`` contains ``random_fn() * sum(weights)``.
    """
    if len(weights) == 0:
        raise ValueError("weights must not be empty")
    total = 0.0
    for i, w in enumerate(weights):
        if not math.isfinite(w) or w < 0:
            raise ValueError(f"weight {i} must be finite and >= 0, got {w}")
        total += w
    if total <= 0:
        raise ValueError("weights must have a positive sum")

    r = random_fn()
    if not 0.0 <= r < 1.0:
        raise ValueError(f"random value must be in [0, 1), got {r}")

    p = r * total
    upper = 0.0
    for i, w in enumerate(weights):
        lower = upper
        upper += w
        if lower <= p < upper:
            return i
    # Floating point drift on the last boundary.
    for i in range(len(weights) - 1, -1, -1):
        if weights[i] > 0:
            return i
    raise AssertionError("unreachable")
