"""mqnode: run Python programs in separate threads, connected with ZeroMQ.

Each node gets its own interpreter state (a private namespace) and its own
thread. Arguments are deep-copied into the new state, so nodes share nothing
but the ZeroMQ context they use to talk to each other.
"""

from mqnode.config import NodeConfig
from mqnode.context import SOCKET_PATTERNS, ContextRef, MessagingContext
from mqnode.errors import (
    ContextCreationError,
    LoadError,
    MarshalTypeError,
    NodeError,
    RecursionLimitExceeded,
    RuntimeScriptError,
    StateClosedError,
    ThreadCreationError,
    UnknownSocketPatternError,
    UsageError,
)
from mqnode.housekeeping import HousekeepingEvent, HousekeepingTracker
from mqnode.interpreter import InterpreterState, NodeModule, __version__
from mqnode.marshaler import MarshalMode, Marshaler
from mqnode.runtime import NodeRuntime, NodeStatus
from mqnode.services import NodeServices
from mqnode.spawner import spawn, spawn_node

__all__ = [
    "SOCKET_PATTERNS",
    "ContextCreationError",
    "ContextRef",
    "HousekeepingEvent",
    "HousekeepingTracker",
    "InterpreterState",
    "LoadError",
    "MarshalMode",
    "MarshalTypeError",
    "Marshaler",
    "MessagingContext",
    "NodeConfig",
    "NodeError",
    "NodeModule",
    "NodeRuntime",
    "NodeServices",
    "NodeStatus",
    "RecursionLimitExceeded",
    "RuntimeScriptError",
    "StateClosedError",
    "ThreadCreationError",
    "UnknownSocketPatternError",
    "UsageError",
    "__version__",
    "spawn",
    "spawn_node",
]
