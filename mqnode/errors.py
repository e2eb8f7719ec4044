from __future__ import annotations

from typing import Any


class NodeError(Exception):
    """Base class for every error raised by mqnode."""


class UsageError(NodeError):
    """Raised when the host is invoked or configured incorrectly."""


class ContextCreationError(NodeError):
    """Raised when the shared messaging context cannot be created."""


class LoadError(NodeError):
    """Raised when a program cannot be loaded into an interpreter state."""

    def __init__(self, path: str, reason: str | None = None) -> None:
        self.path = path
        self.reason = reason
        message = f"can not load Python code from {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MarshalTypeError(NodeError, TypeError):
    """Raised when a value of an unsupported kind crosses a state boundary."""

    def __init__(self, kind: str, context: str) -> None:
        self.kind = kind
        self.context = context
        super().__init__(f"{context} must not be {kind}")


class RecursionLimitExceeded(NodeError):
    """Raised when a value tree exceeds the marshaler's depth or item budget."""

    def __init__(self, what: str, limit: int) -> None:
        self.what = what
        self.limit = limit
        super().__init__(
            f"value tree exceeds the {what} limit of {limit}\n"
            "Hint: cyclic tables can not be copied between nodes"
        )


class ThreadCreationError(NodeError):
    """Raised when the thread of a new node can not be started."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"can not create a new node for {path}")


class UnknownSocketPatternError(NodeError, ValueError):
    """Raised when a socket is requested with a pattern name that does not exist."""

    def __init__(self, name: Any, valid: tuple[str, ...]) -> None:
        self.name = name
        self.valid = valid
        super().__init__(
            f"invalid socket pattern {name!r} (expected one of: {', '.join(valid)})"
        )


class StateClosedError(NodeError):
    """Raised when a closed interpreter state is used again."""


class RuntimeScriptError(NodeError):
    """Wraps an error raised by a node's own program.

    Built by the node runtime for reporting only; it never propagates out of
    the node's thread.
    """

    def __init__(self, node_id: int, path: str, cause: BaseException) -> None:
        self.node_id = node_id
        self.path = path
        self.cause = cause
        self.__cause__ = cause
        super().__init__(
            f"node {node_id} ({path}) failed: {type(cause).__name__}: {cause}"
        )


__all__ = [
    "ContextCreationError",
    "LoadError",
    "MarshalTypeError",
    "NodeError",
    "RecursionLimitExceeded",
    "RuntimeScriptError",
    "StateClosedError",
    "ThreadCreationError",
    "UnknownSocketPatternError",
    "UsageError",
]
