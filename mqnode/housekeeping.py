"""Housekeeping channel used by the host to wait for nodes to finish.

Nodes push ``NODE_STARTING`` and ``NODE_TERMINATED`` over a private inproc
endpoint; the host is the only consumer. The drain barrier is best effort:

* ``drain`` checks for pending input exactly once. If nothing has arrived yet
  it returns at once, even if nodes are still running.
* a node started after that check is never waited on.
* a node that never returns keeps ``drain`` blocked forever; there is no
  timeout and no way to cancel it.
"""

from __future__ import annotations

import enum
import logging
import struct
import threading

import zmq

from mqnode.errors import ContextCreationError

logger = logging.getLogger(__name__)

_EVENT = struct.Struct("=i")


class HousekeepingEvent(enum.IntEnum):
    NODE_STARTING = 1
    NODE_TERMINATED = 2

    def encode(self) -> bytes:
        return _EVENT.pack(self.value)

    @classmethod
    def decode(cls, data: bytes) -> "HousekeepingEvent | None":
        if len(data) != _EVENT.size:
            return None
        (value,) = _EVENT.unpack(data)
        try:
            return cls(value)
        except ValueError:
            return None


class HousekeepingTracker:
    """Single-consumer event channel plus the active-node counter."""

    def __init__(self, endpoint: str = "inproc://housekeeping") -> None:
        self.endpoint = endpoint
        self.active = 0
        self.peak = 0
        self.received: list[HousekeepingEvent] = []
        self._push_lock = threading.Lock()
        self._closed = False
        try:
            self._context = zmq.Context()
        except zmq.ZMQError as exc:
            raise ContextCreationError(f"zmq context creation failed (housekeeping): {exc}") from exc
        try:
            # unbounded queues: nodes must never block on an undrained channel
            self._socket = self._context.socket(zmq.PULL)
            self._socket.setsockopt(zmq.RCVHWM, 0)
            self._socket.bind(endpoint)
            # one sending pipe keeps events in the order they were sent
            self._push = self._context.socket(zmq.PUSH)
            self._push.setsockopt(zmq.SNDHWM, 0)
            self._push.connect(endpoint)
        except zmq.ZMQError as exc:
            # destroy closes every socket already made from the private context
            self._context.destroy(linger=0)
            self._closed = True
            raise ContextCreationError(
                f"can not open housekeeping channel at {endpoint}: {exc}"
            ) from exc

    def notify(self, event: HousekeepingEvent) -> None:
        """Send one event; safe to call from any thread."""
        with self._push_lock:
            if self._closed:
                raise zmq.ZMQError(zmq.ETERM)
            self._push.send(event.encode())

    def pending(self, timeout: int = 0) -> bool:
        return bool(self._socket.poll(timeout, zmq.POLLIN))

    def drain(self, timeout: int = 0) -> int:
        """Wait until every node seen so far has terminated.

        Returns the number of events consumed.
        """
        if not self.pending(timeout):
            logger.debug("Housekeeping: nothing pending, not waiting")
            return 0
        consumed = 0
        while True:
            event = HousekeepingEvent.decode(self._socket.recv())
            consumed += 1
            if event is None:
                logger.warning("Housekeeping: ignoring malformed event")
            else:
                self._apply(event)
            if self.active <= 0:
                break
        logger.debug("Housekeeping: drained after %d events", consumed)
        return consumed

    def _apply(self, event: HousekeepingEvent) -> None:
        self.received.append(event)
        match event:
            case HousekeepingEvent.NODE_STARTING:
                self.active += 1
                self.peak = max(self.peak, self.active)
            case HousekeepingEvent.NODE_TERMINATED:
                self.active -= 1
        logger.debug("Housekeeping: %s, %d active", event.name, self.active)

    def close(self) -> None:
        if self._closed:
            return
        with self._push_lock:
            self._closed = True
            self._push.close(linger=0)
        self._socket.close(linger=0)
        self._context.term()

    def __enter__(self) -> "HousekeepingTracker":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["HousekeepingEvent", "HousekeepingTracker"]
