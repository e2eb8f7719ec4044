"""Isolated interpreter states and the ``node`` object scripts see."""

from __future__ import annotations

import builtins
import logging
import os
import threading
from types import CodeType
from typing import TYPE_CHECKING, Any

from mqnode.errors import LoadError, StateClosedError

if TYPE_CHECKING:
    import zmq

    from mqnode.context import ContextRef
    from mqnode.services import NodeServices

logger = logging.getLogger(__name__)

__version__ = "1.1.0"

ENTRY_POINT = "main"


class NodeModule:
    """The ``node`` global available in every interpreter state."""

    VERSION = f"node {__version__}"
    DESCRIPTION = "Python nodes connected with ZeroMQ"

    __slots__ = ("_state",)

    def __init__(self, state: "InterpreterState") -> None:
        self._state = state

    def create(self, path: str, *args: Any, env: Any = None) -> int:
        """Start ``path`` as a new node; returns its (informational) id."""
        from mqnode.spawner import spawn

        return spawn(self._state, path, *args, env=env)

    def shared_context(self) -> "ContextRef":
        return self._state.services.context.ref

    def self_id(self) -> tuple[int, int]:
        return threading.get_ident(), os.getpid()

    def socket(self, pattern: str) -> "zmq.Socket":
        return self._state.services.context.socket(pattern)

    def __repr__(self) -> str:
        return f"<node module {self.VERSION}>"


class InterpreterState:
    """One isolated execution environment.

    A state owns its globals namespace, including a private copy of the
    builtins mapping, and the program loaded into it. It must only ever be
    used by one thread at a time; ownership moves with the node that runs it.
    """

    def __init__(self, services: "NodeServices", *, name: str = "__node__") -> None:
        self.services = services
        self.path: str | None = None
        self._program: CodeType | None = None
        self._closed = False
        self.globals: dict[str, Any] = {
            "__name__": name,
            "__builtins__": dict(builtins.__dict__),
            "node": NodeModule(self),
        }

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def loaded(self) -> bool:
        return self._program is not None

    def _ensure_open(self) -> None:
        if self._closed:
            raise StateClosedError("interpreter state is closed")

    def load(self, path: str) -> None:
        self._ensure_open()
        path = os.fspath(path)
        code = self.services.loader(path)
        if not isinstance(code, CodeType):
            raise LoadError(path, "loader did not return a code object")
        self._program = code
        self.path = path
        self.globals["__file__"] = path

    def set_global(self, name: str, value: Any) -> None:
        self._ensure_open()
        self.globals[name] = value

    def get_global(self, name: str, default: Any = None) -> Any:
        return self.globals.get(name, default)

    def call(self, *args: Any) -> Any:
        """Run the loaded program, then its ``main`` entry point if defined."""
        self._ensure_open()
        if self._program is None:
            raise StateClosedError("no program loaded")
        exec(self._program, self.globals)
        entry = self.globals.get(ENTRY_POINT)
        if callable(entry):
            return entry(*args)
        if args:
            logger.warning(
                "%s defines no %s(); discarding %d arguments",
                self.path,
                ENTRY_POINT,
                len(args),
            )
        return None

    def execute(self, source: str, filename: str = "<stdin>") -> None:
        """Compile and run a snippet in this state's namespace."""
        self._ensure_open()
        exec(compile(source, filename, "exec", dont_inherit=True), self.globals)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._program = None
        self.globals.clear()


__all__ = ["ENTRY_POINT", "InterpreterState", "NodeModule"]
