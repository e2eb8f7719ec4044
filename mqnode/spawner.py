"""Creation of new nodes."""

from __future__ import annotations

import logging
import os
import threading
from typing import TYPE_CHECKING, Any

import zmq

from mqnode.errors import ThreadCreationError
from mqnode.housekeeping import HousekeepingEvent
from mqnode.interpreter import InterpreterState
from mqnode.marshaler import MarshalMode
from mqnode.runtime import NodeRuntime

if TYPE_CHECKING:
    from mqnode.services import NodeServices

logger = logging.getLogger(__name__)


def spawn(parent: InterpreterState, path: str, *args: Any, env: Any = None) -> int:
    """Start ``path`` as a node sharing the services of ``parent``."""
    return spawn_node(parent.services, path, args, env=env)


def spawn_node(
    services: "NodeServices",
    path: str,
    args: tuple[Any, ...] = (),
    *,
    env: Any = None,
) -> int:
    """Load ``path`` into a fresh interpreter state and run it on a new thread.

    Loading and marshaling happen on the caller's thread; any failure there
    (``LoadError``, ``MarshalTypeError``, ``RecursionLimitExceeded``) closes
    the new state and is raised before a thread exists. ``ThreadCreationError``
    is raised if the thread can not be started. No housekeeping event is
    sent in any of these cases.

    Returns the node id, the new thread's ident. It can not be used to join
    or cancel the node.
    """
    path = os.fspath(path)
    state = InterpreterState(services)
    try:
        state.load(path)
        copied = services.marshaler.copy_arguments(args)
        if env is not None:
            services.marshaler.marshal(env, state, mode=MarshalMode.GLOBAL)
    except BaseException:
        state.close()
        raise

    runtime = NodeRuntime(state, copied)
    del state, copied
    thread = threading.Thread(
        target=runtime.run,
        name=f"mqnode-{os.path.basename(path)}",
        daemon=True,
    )
    try:
        thread.start()
    except RuntimeError as exc:
        runtime.discard()
        raise ThreadCreationError(path) from exc

    node_id = thread.ident or 0
    try:
        if services.tracker is not None:
            services.tracker.notify(HousekeepingEvent.NODE_STARTING)
    except zmq.ZMQError as exc:
        logger.warning("Node %d could not report its start: %s", node_id, exc)
    finally:
        runtime.announce()
    logger.debug("Spawned node %d for %s with %d arguments", node_id, path, runtime.nargs)
    return node_id


__all__ = ["spawn", "spawn_node"]
