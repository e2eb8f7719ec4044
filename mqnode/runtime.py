"""Thread body of a node."""

from __future__ import annotations

import enum
import logging
import threading
import traceback
from typing import TYPE_CHECKING, Any

import zmq

from mqnode.errors import RuntimeScriptError
from mqnode.housekeeping import HousekeepingEvent

if TYPE_CHECKING:
    from mqnode.interpreter import InterpreterState
    from mqnode.services import NodeServices

logger = logging.getLogger(__name__)


class NodeStatus(enum.Enum):
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CLEANUP = "cleanup"
    TERMINATED = "terminated"


class NodeRuntime:
    """Runs one node's program to completion on its own thread.

    The runtime takes exclusive ownership of ``state`` and ``args``. Errors
    raised by the program are reported on the diagnostic stream and end
    there. Whatever happens, the state is closed and, with housekeeping on,
    exactly one ``NODE_TERMINATED`` is sent once the spawner has announced
    the node.
    """

    def __init__(self, state: "InterpreterState", args: tuple[Any, ...]) -> None:
        self._state: InterpreterState | None = state
        self._args: tuple[Any, ...] | None = args
        self.services: NodeServices = state.services
        self.path = state.path or "<unknown>"
        self.nargs = len(args)
        self.status = NodeStatus.READY
        self.error: RuntimeScriptError | None = None
        self.node_id = 0
        self._announced = threading.Event()

    def announce(self) -> None:
        """Let the termination event go out; called by the spawner."""
        self._announced.set()

    def discard(self) -> None:
        """Release the state of a runtime whose thread never started."""
        if self._state is not None:
            self._state.close()
        self._state = None
        self._args = None

    def run(self) -> None:
        self.node_id = threading.get_ident()
        state, args = self._state, self._args
        self._state = self._args = None
        self.status = NodeStatus.RUNNING
        logger.debug("Node %d running %s with %d arguments", self.node_id, self.path, self.nargs)
        try:
            state.call(*args)
        except (Exception, SystemExit) as exc:
            self.status = NodeStatus.FAILED
            self.error = RuntimeScriptError(self.node_id, self.path, exc)
            self._report(self.error)
        else:
            self.status = NodeStatus.COMPLETED
        finally:
            outcome = self.status
            self.status = NodeStatus.CLEANUP
            state.close()
            del state, args
            self._terminate(outcome)

    def _report(self, error: RuntimeScriptError) -> None:
        cause = error.cause
        lines = traceback.format_exception(type(cause), cause, cause.__traceback__)
        stream = self.services.diagnostics
        print(f"[MQNODE] {error}", file=stream)
        print("".join(lines).rstrip(), file=stream)
        stream.flush()
        logger.warning("%s", error)
        # frames would keep the node's sockets alive past cleanup
        traceback.clear_frames(cause.__traceback__)

    def _terminate(self, outcome: NodeStatus) -> None:
        tracker = self.services.tracker
        if tracker is not None:
            self._announced.wait()
            try:
                tracker.notify(HousekeepingEvent.NODE_TERMINATED)
            except zmq.ZMQError as exc:
                logger.warning("Node %d could not report termination: %s", self.node_id, exc)
        self.status = NodeStatus.TERMINATED
        logger.debug("Node %d terminated (%s)", self.node_id, outcome.value)


__all__ = ["NodeRuntime", "NodeStatus"]
