"""Deep copy of value trees between interpreter states.

The copy walks the source with an explicit work stack, so nesting depth is
bounded by ``max_depth`` instead of the Python call stack. Every table in the
result is a new container: after a copy the destination shares no mutable
object with the source.
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from mqnode.errors import MarshalTypeError, RecursionLimitExceeded
from mqnode.values import (
    Bool,
    Float,
    Int,
    Nil,
    Str,
    Table,
    Unsupported,
    Value,
    classify,
    materialize,
)

if TYPE_CHECKING:
    from mqnode.interpreter import InterpreterState

logger = logging.getLogger(__name__)


class MarshalMode(enum.Enum):
    NESTED = "nested"  # return the copy for use as a value
    GLOBAL = "global"  # install each entry as a global of the destination


def kind_name(value: Value) -> str:
    match value:
        case Bool():
            return "boolean"
        case Int() | Float():
            return "number"
        case Str():
            return "string"
        case Nil():
            return "nil"
        case Table():
            return "table"
        case Unsupported():
            return value.describe()
    raise TypeError(f"not a value variant: {value!r}")


class Marshaler:
    """Copies plain-data values into another interpreter state."""

    def __init__(self, *, max_depth: int = 256, max_items: int = 1_000_000) -> None:
        self.max_depth = max_depth
        self.max_items = max_items

    def marshal(
        self,
        value: Any,
        destination: "InterpreterState",
        *,
        mode: MarshalMode = MarshalMode.NESTED,
        context: str = "argument",
    ) -> Any:
        if mode is MarshalMode.GLOBAL:
            self.install_globals(value, destination)
            return None
        return self.copy(value, context=context)

    def copy_arguments(self, args: Iterable[Any]) -> tuple[Any, ...]:
        """Copy positional arguments, keeping their order."""
        return tuple(self.copy(arg, context="argument") for arg in args)

    def install_globals(self, mapping: Any, destination: "InterpreterState") -> None:
        root = classify(mapping)
        if not isinstance(root, Table) or root.ordered:
            raise MarshalTypeError(kind_name(root), "globals table")
        copied = self.copy(mapping, context="global")
        for key, item in copied.items():
            destination.set_global(_global_name(key), item)

    def copy(self, value: Any, *, context: str = "argument") -> Any:
        root = classify(value)
        if isinstance(root, Unsupported):
            raise MarshalTypeError(kind_name(root), context)
        if not isinstance(root, Table):
            return materialize(root)

        result = root.empty()
        count = 1
        # entries of a globals table are reported as globals themselves
        entry_context = "global" if context == "global" else "table value"
        stack: list[tuple[Table, dict[Any, Any] | list[Any], int]] = [(root, result, 1)]
        while stack:
            source, target, depth = stack.pop()
            for key, item in source.items():
                count += 1
                if count > self.max_items:
                    raise RecursionLimitExceeded("item", self.max_items)
                copied_key = None if source.ordered else _copy_key(key)
                node = classify(item)
                if isinstance(node, Unsupported):
                    where = entry_context if depth == 1 else "table value"
                    raise MarshalTypeError(kind_name(node), where)
                if isinstance(node, Table):
                    if depth + 1 > self.max_depth:
                        raise RecursionLimitExceeded("depth", self.max_depth)
                    child = node.empty()
                    stack.append((node, child, depth + 1))
                    copied = child
                else:
                    copied = materialize(node)
                if source.ordered:
                    target.append(copied)  # type: ignore[union-attr]
                else:
                    target[copied_key] = copied  # type: ignore[index]
        logger.debug("Copied table with %d values (%s)", count, context)
        return result


def _copy_key(key: Any) -> Any:
    node = classify(key)
    if isinstance(node, (Int, Float, Str)):
        return materialize(node)
    raise MarshalTypeError(kind_name(node), "table key")


def _global_name(key: Any) -> str:
    if isinstance(key, str):
        return key
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="replace")
    if isinstance(key, float) and not math.isfinite(key):
        raise MarshalTypeError("number", "global")
    return "%d" % key


__all__ = ["MarshalMode", "Marshaler", "kind_name"]
