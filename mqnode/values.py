"""Tagged value tree for data crossing an interpreter-state boundary.

Only plain data may travel between nodes. ``classify`` maps a Python value
onto one of the variants below; everything that is not data ends up as
``Unsupported`` and is rejected by the marshaler.
"""

from __future__ import annotations

import inspect
import numbers
import threading
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Bool:
    value: bool


@dataclass(frozen=True)
class Int:
    value: int


@dataclass(frozen=True)
class Float:
    value: float


@dataclass(frozen=True)
class Str:
    value: str | bytes


@dataclass(frozen=True)
class Nil:
    pass


@dataclass(frozen=True)
class Table:
    """A mapping or a sequence; ``source`` is the original container."""

    source: Any
    ordered: bool

    def empty(self) -> dict[Any, Any] | list[Any]:
        return [] if self.ordered else {}

    def items(self) -> Iterator[tuple[Any, Any]]:
        if self.ordered:
            return iter(enumerate(self.source))
        return iter(self.source.items())


@dataclass(frozen=True)
class Unsupported:
    kind: str
    type_name: str

    def describe(self) -> str:
        if self.kind == self.type_name:
            return self.kind
        return f"{self.kind} ({self.type_name})"


Scalar = Union[Bool, Int, Float, Str, Nil]
Value = Union[Bool, Int, Float, Str, Nil, Table, Unsupported]

NIL = Nil()


def classify(value: Any) -> Value:
    # bool before Integral: bool is an int subclass
    if isinstance(value, bool):
        return Bool(value)
    if isinstance(value, numbers.Integral):
        return Int(int(value))
    if isinstance(value, numbers.Real):
        return Float(float(value))
    if isinstance(value, (str, bytes)):
        return Str(value)
    if value is None:
        return NIL
    if isinstance(value, Mapping):
        return Table(value, ordered=False)
    if isinstance(value, (list, tuple)):
        return Table(value, ordered=True)
    return Unsupported(kind_of(value), type(value).__name__)


def kind_of(value: Any) -> str:
    """Name the kind of a value that is not plain data."""
    if (
        inspect.isgenerator(value)
        or inspect.iscoroutine(value)
        or inspect.isasyncgen(value)
    ):
        return "coroutine"
    if isinstance(value, threading.Thread):
        return "thread"
    if callable(value):
        return "function"
    return "userdata"


def materialize(value: Scalar) -> Any:
    """Build a fresh Python value for a scalar variant."""
    match value:
        case Bool(value=v):
            return bool(v)
        case Int(value=v):
            return int(v)
        case Float(value=v):
            return float(v)
        case Str(value=v):
            return bytes(v) if isinstance(v, bytes) else str(v)
        case Nil():
            return None
    raise TypeError(f"not a scalar value: {value!r}")


def is_scalar(value: Value) -> bool:
    return isinstance(value, (Bool, Int, Float, Str, Nil))


__all__ = [
    "NIL",
    "Bool",
    "Float",
    "Int",
    "Nil",
    "Scalar",
    "Str",
    "Table",
    "Unsupported",
    "Value",
    "classify",
    "is_scalar",
    "kind_of",
    "materialize",
]
