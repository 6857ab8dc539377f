"""Host function table visible to compiled expressions."""
from __future__ import annotations

import math
from typing import Any, Callable

from lore.types import UnknownIdError
from lore_expr.values import Value, to_number

HostFn = Callable[..., Any]
VarGetter = Callable[[str], Any]


class FunctionTable:
    """Named host callbacks plus the variable accessor used for bare names."""

    def __init__(
        self,
        get_var: VarGetter,
        functions: dict[str, HostFn] | None = None,
    ) -> None:
        self._get_var = get_var
        self._functions: dict[str, HostFn] = dict(functions or {})

    def register(self, name: str, fn: HostFn) -> None:
        """Register or replace a host function."""
        if not name:
            raise ValueError("function name must not be empty")
        self._functions[name] = fn

    def register_all(self, functions: dict[str, HostFn]) -> None:
        for name, fn in functions.items():
            self.register(name, fn)

    def has(self, name: str) -> bool:
        return name in self._functions

    def names(self) -> list[str]:
        return list(self._functions)

    def call(self, name: str, *args: Value) -> Any:
        fn = self._functions.get(name)
        if fn is None:
            raise UnknownIdError("function", name)
        return fn(*args)

    def get_var(self, name: str) -> Any:
        return self._get_var(name)


def _js_round(x: Value) -> float:
    n = to_number(x)
    if math.isnan(n) or math.isinf(n):
        return n
    return float(math.floor(n + 0.5))


def _js_floor(x: Value) -> float:
    n = to_number(x)
    if math.isnan(n) or math.isinf(n):
        return n
    return float(math.floor(n))


def _js_ceil(x: Value) -> float:
    n = to_number(x)
    if math.isnan(n) or math.isinf(n):
        return n
    return float(math.ceil(n))


def _js_max(*args: Value) -> float:
    result = -math.inf
    for arg in args:
        n = to_number(arg)
        if math.isnan(n):
            return math.nan
        if n > result:
            result = n
    return result


def _js_min(*args: Value) -> float:
    result = math.inf
    for arg in args:
        n = to_number(arg)
        if math.isnan(n):
            return math.nan
        if n < result:
            result = n
    return result


def _clip(x: Value, lo: Value, hi: Value) -> float:
    return _js_min(_js_max(x, lo), hi)


def math_functions(random_fn: Callable[[], float]) -> dict[str, HostFn]:
    """Default math helpers. ``random()`` draws from *random_fn*."""
    return {
        "random": lambda: random_fn(),
        "max": _js_max,
        "min": _js_min,
        "floor": _js_floor,
        "round": _js_round,
        "ceil": _js_ceil,
        "abs": lambda x: abs(to_number(x)),
        "clip": _clip,
    }
