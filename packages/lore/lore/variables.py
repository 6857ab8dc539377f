"""Bounded numeric variable store."""
from __future__ import annotations

import math
from typing import Any

from lore.signals import NotificationQueue
from lore.types import SnapshotError, UnknownIdError

VARIABLE_CHANGED = "variable_changed"

_NON_FINITE = {"NaN": math.nan, "Infinity": math.inf, "-Infinity": -math.inf}


def encode_number(value: float) -> float | str:
    """Encode non-finite numbers as sentinel strings."""
    if math.isnan(value):
        return "NaN"
    if value == math.inf:
        return "Infinity"
    if value == -math.inf:
        return "-Infinity"
    return value


def decode_number(value: Any) -> float:
    if isinstance(value, str):
        if value not in _NON_FINITE:
            raise SnapshotError(f"invalid number sentinel '{value}'")
        return _NON_FINITE[value]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SnapshotError(f"expected a number, got {value!r}")
    return value


class VariableStore:
    """Named numeric variables with optional inclusive bounds.

    Every set clamps to the variable's bounds. Effective changes are posted
    to the notification queue given at construction, if any.
    """

    def __init__(self, notifications: NotificationQueue | None = None) -> None:
        self._values: dict[str, float] = {}
        self._limits: dict[str, tuple[float, float]] = {}
        self._notifications = notifications

    def has_var(self, name: str) -> bool:
        return name in self._values

    def names(self) -> list[str]:
        return list(self._values)

    def get_var(self, name: str, check_existence: bool = True) -> float | None:
        """Return the value of *name*.

        Raises UnknownIdError for a missing variable when *check_existence*
        is set; otherwise returns None.
        """
        if name not in self._values:
            if check_existence:
                raise UnknownIdError("variable", name)
            return None
        return self._values[name]

    def set_var(self, name: str, value: float, check_existence: bool = False) -> None:
        if check_existence and name not in self._values:
            raise UnknownIdError("variable", name)
        lb, ub = self.get_var_limits(name)
        self._assign(name, _clamp(value, lb, ub))

    def get_var_limits(self, name: str) -> tuple[float, float]:
        return self._limits.get(name, (-math.inf, math.inf))

    def set_var_limits(self, name: str, lb: float, ub: float) -> None:
        """Set inclusive bounds and clamp the current value, if any."""
        if math.isnan(lb) or math.isnan(ub):
            raise ValueError(f"limits of '{name}' must not be NaN")
        if lb > ub:
            raise ValueError(f"lower bound {lb} of '{name}' exceeds upper bound {ub}")
        self._limits[name] = (lb, ub)
        if name in self._values:
            self._assign(name, _clamp(self._values[name], lb, ub))

    def reset(self) -> None:
        """Drop every value and every bound."""
        self._values.clear()
        self._limits.clear()
        if self._notifications is not None:
            self._notifications.post(VARIABLE_CHANGED, clear=True, name=None, old=None, new=None)

    def _assign(self, name: str, value: float) -> None:
        old = self._values.get(name)
        self._values[name] = value
        if self._notifications is None or _same(old, value):
            return
        self._notifications.post(VARIABLE_CHANGED, clear=False, name=name, old=old, new=value)

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        """Map of name -> value, or name -> [value, lb, ub] when bounded.

        Bounds set on a variable that has no value yet keep a null value.
        """
        data: dict[str, Any] = {}
        for name, value in self._values.items():
            if name in self._limits:
                lb, ub = self._limits[name]
                data[name] = [encode_number(value), encode_number(lb), encode_number(ub)]
            else:
                data[name] = encode_number(value)
        for name, (lb, ub) in self._limits.items():
            if name not in self._values:
                data[name] = [None, encode_number(lb), encode_number(ub)]
        return data

    def restore(self, data: dict[str, Any]) -> None:
        values: dict[str, float] = {}
        limits: dict[str, tuple[float, float]] = {}
        for name, entry in data.items():
            if isinstance(entry, list):
                if len(entry) != 3:
                    raise SnapshotError(f"variable '{name}' needs [value, lb, ub], got {entry!r}")
                if entry[0] is not None:
                    values[name] = decode_number(entry[0])
                limits[name] = (decode_number(entry[1]), decode_number(entry[2]))
            else:
                values[name] = decode_number(entry)
        self._values = values
        self._limits = limits


def _clamp(value: float, lb: float, ub: float) -> float:
    if value < lb:
        return lb
    if value > ub:
        return ub
    return value


def _same(old: float | None, new: float) -> bool:
    if old is None:
        return False
    if math.isnan(old) and math.isnan(new):
        return True
    return old == new
